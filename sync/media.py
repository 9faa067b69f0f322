"""Fetch-and-cache of event images into the media collection."""
import logging
from typing import Optional

import requests

from storage.dynamodb_manager import DuplicateKeyError
from sync.models import MediaCache, MediaResult
from wordpress.images import extension_from_url

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = 'image/jpeg'
IMPORT_TAG = 'wordpress-import'


class MediaAcquirer:
    """Resolves image URLs to media documents, downloading when needed."""

    def __init__(self, store, media_storage, timeout: int = 30):
        """
        Initialize the media acquirer.

        Args:
            store: Document store holding the media collection
            media_storage: Byte storage for downloaded files
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.store = store
        self.media_storage = media_storage
        self.timeout = timeout

    def get_or_create(
        self,
        source_url: str,
        event_id,
        event_title: Optional[str],
        cache: MediaCache
    ) -> Optional[MediaResult]:
        """
        Return the media asset for an image URL, creating it if needed.

        Lookup order is the call-scoped cache, then media documents whose
        `credit` holds the URL, then a download. Download problems are
        logged and yield None.

        Args:
            source_url: Image URL from WordPress
            event_id: WordPress event id, used in alt text and filename
            event_title: Cleaned event title, if any
            cache: URL -> media id map for the current sync run

        Returns:
            MediaResult, or None if the image could not be fetched
        """
        cached = cache.get(source_url)
        if cached is not None:
            return MediaResult(id=cached, created=False)

        existing = self._find_by_source_url(source_url)
        if existing is not None:
            cache.set(source_url, existing)
            return MediaResult(id=existing, created=False)

        try:
            response = requests.get(source_url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(
                f"Unable to fetch image for event {event_id}: {source_url} ({e})"
            )
            return None

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"Image request failed for event {event_id}: {source_url} "
                f"({response.status_code})"
            )
            return None

        mime_type = response.headers.get('content-type') or DEFAULT_MIME_TYPE
        content = response.content
        if not content:
            logger.warning(f"Empty image payload for event {event_id}: {source_url}")
            return None

        filename = f"wp-event-{event_id}{extension_from_url(source_url, mime_type)}"
        storage_key = self.media_storage.put(filename, content, mime_type)

        data = {
            'alt': f"{event_title} image" if event_title else f"Event {event_id} image",
            'credit': source_url,
            'tags': [IMPORT_TAG],
            'filename': filename,
            'mimeType': mime_type,
            'filesize': len(content),
            'storageKey': storage_key,
        }
        try:
            created = self.store.create('media', data)
        except DuplicateKeyError:
            # The winning document points at its own upload
            self._discard(storage_key)
            winner = self._find_by_source_url(source_url)
            if winner is None:
                raise
            cache.set(source_url, winner)
            return MediaResult(id=winner, created=False)

        cache.set(source_url, created['id'])
        logger.info(f"Created media {created['id']} for event {event_id} from {source_url}")
        return MediaResult(id=created['id'], created=True)

    def _find_by_source_url(self, source_url: str) -> Optional[int]:
        existing = self.store.find(
            'media',
            where={'credit': source_url},
            limit=1,
            depth=0
        )
        docs = existing['docs']
        return docs[0]['id'] if docs else None

    def _discard(self, storage_key: str) -> None:
        try:
            self.media_storage.delete(storage_key)
        except Exception as e:
            logger.warning(f"Orphaned media object left at {storage_key}: {e}")
