"""Image reference resolution for loosely structured WordPress payloads."""
import posixpath
from typing import Any, Optional
from urllib.parse import urlparse

from wordpress.normalize import clean_text

# Probed in order before falling back to every other value
IMAGE_URL_KEYS = (
    'imageUrl',
    'url',
    'source_url',
    'guid',
    'thumbnail',
    'medium',
    'large',
    'full',
    'original',
)

MIME_EXTENSIONS = (
    ('png', '.png'),
    ('webp', '.webp'),
    ('gif', '.gif'),
    ('svg', '.svg'),
    ('avif', '.avif'),
)

DEFAULT_EXTENSION = '.jpg'
MAX_EXTENSION_LENGTH = 5


def extract_image_url(value: Any) -> Optional[str]:
    """
    Find a single image URL inside an image reference of unknown shape.

    Strings are cleaned and returned. Lists are searched left to right.
    Dicts are searched by the keys in IMAGE_URL_KEYS first, then every
    value in insertion order. The first resolvable value wins.

    Args:
        value: Parsed JSON value (string, list, dict or other)

    Returns:
        Image URL, or None if nothing resolves
    """
    if not value:
        return None

    if isinstance(value, str):
        return clean_text(value)

    if isinstance(value, list):
        for item in value:
            found = extract_image_url(item)
            if found:
                return found
        return None

    if not isinstance(value, dict):
        return None

    for key in IMAGE_URL_KEYS:
        found = extract_image_url(value.get(key))
        if found:
            return found

    for nested in value.values():
        found = extract_image_url(nested)
        if found:
            return found

    return None


def extension_from_mime(mime_type: Optional[str]) -> str:
    if not mime_type:
        return DEFAULT_EXTENSION

    lower = mime_type.lower()
    for marker, extension in MIME_EXTENSIONS:
        if marker in lower:
            return extension
    return DEFAULT_EXTENSION


def extension_from_url(url: str, mime_type: Optional[str] = None) -> str:
    """
    Pick a file extension for a downloaded image.

    Uses the URL path's extension when it looks plausible (1-5 characters
    including the dot), otherwise falls back to the content type.
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return extension_from_mime(mime_type)

    extension = posixpath.splitext(path)[1].lower()
    if 0 < len(extension) <= MAX_EXTENSION_LENGTH:
        return extension
    return extension_from_mime(mime_type)
