"""Text, date and status normalization for WordPress payloads."""
import re
from datetime import datetime, timezone
from typing import Any, Optional

from bs4 import BeautifulSoup

NAMED_ENTITIES = {
    '&amp;': '&',
    '&quot;': '"',
    '&#39;': "'",
    '&apos;': "'",
    '&lt;': '<',
    '&gt;': '>',
    '&nbsp;': ' ',
}

WP_NULL_DATE_PREFIX = '0000-00-00'

DECIMAL_REFERENCE = re.compile(r'&#(\d+);')
HEX_REFERENCE = re.compile(r'&#x([a-fA-F0-9]+);')


def _code_point(value: int) -> str:
    try:
        return chr(value)
    except (ValueError, OverflowError):
        return ''


def decode_entities(text: str) -> str:
    """
    Decode the HTML entities WordPress leaves in rendered titles.

    Named entities from a fixed table are replaced literally, then decimal
    and hex character references are decoded. References outside the
    Unicode range decode to an empty string.

    Args:
        text: Raw text from WordPress

    Returns:
        Decoded text
    """
    output = text
    for entity, value in NAMED_ENTITIES.items():
        output = output.replace(entity, value)

    output = DECIMAL_REFERENCE.sub(
        lambda match: _code_point(int(match.group(1))), output
    )
    output = HEX_REFERENCE.sub(
        lambda match: _code_point(int(match.group(1), 16)), output
    )
    return output


def clean_text(value: Any) -> Optional[str]:
    """
    Decode and trim a free-text field.

    Args:
        value: Raw field value (usually a string)

    Returns:
        Cleaned text, or None when nothing is left
    """
    if not value or isinstance(value, bool):
        return None
    if not isinstance(value, str):
        value = str(value)

    normalized = decode_entities(value).strip()
    return normalized if normalized else None


def clean_html_text(value: Any) -> Optional[str]:
    """Strip markup from an HTML fragment and clean the remaining text."""
    if not value or not isinstance(value, str):
        return clean_text(value)

    text = BeautifulSoup(value, 'html.parser').get_text(separator=' ')
    return clean_text(' '.join(text.split()))


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with millisecond precision."""
    moment = moment.astimezone(timezone.utc)
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f".{moment.microsecond // 1000:03d}Z"
    )


def now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def parse_date(value: Any) -> Optional[str]:
    """
    Parse a WordPress timestamp into canonical ISO 8601 UTC.

    WordPress emits "YYYY-MM-DD HH:MM:SS" and uses "0000-00-00 00:00:00"
    for unset dates. Timestamps without an offset are read as UTC.

    Args:
        value: Raw timestamp string

    Returns:
        Timestamp like "2026-03-15T19:00:00.000Z", or None if absent/invalid
    """
    if not value or not isinstance(value, str):
        return None
    if value.startswith(WP_NULL_DATE_PREFIX):
        return None

    iso = value.strip().replace(' ', 'T', 1)
    try:
        parsed = datetime.fromisoformat(iso)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return format_timestamp(parsed)
    except (ValueError, OverflowError):
        # Offsets at the edge of the supported range cannot convert to UTC
        return None


def normalize_status(value: Any) -> str:
    """Map a WordPress post status onto the internal event status."""
    if value == 'publish':
        return 'published'
    if value in ('cancelled', 'postponed'):
        return value
    return 'draft'
