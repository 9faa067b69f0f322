"""Webhook sync of a single WordPress event."""
import logging
from typing import List, Optional

from sync.media import MediaAcquirer
from sync.models import EventSyncResult, MediaCache
from sync.upserter import EntityUpserter
from wordpress.images import extract_image_url
from wordpress.models import WPEvent
from wordpress.normalize import clean_text

logger = logging.getLogger(__name__)


class EventSyncError(Exception):
    """Raised when the event itself could not be saved."""

    def __init__(self, message: str, result: EventSyncResult):
        super().__init__(message)
        self.result = result


class SyncOrchestrator:
    """
    Sequences the upserts for one incoming WordPress event.

    Stages run in a fixed order: venue, categories, organizers, media,
    event. Failures in every stage but the last are logged and recorded in
    the result; the event is then saved with whatever ids did resolve.
    """

    def __init__(self, upserter: EntityUpserter, media_acquirer: MediaAcquirer):
        self.upserter = upserter
        self.media_acquirer = media_acquirer

    def sync_event(self, event: WPEvent) -> EventSyncResult:
        """
        Sync one event and its related records.

        Args:
            event: WordPress event from the webhook payload

        Returns:
            EventSyncResult describing every stage

        Raises:
            EventSyncError: If the event upsert fails; carries the partial
                result gathered so far
        """
        result = EventSyncResult()
        cache = MediaCache()

        venue_id = self._sync_venue(event, result)
        category_ids = self._sync_categories(event, result)
        organizer_ids = self._sync_organizers(event, result)
        featured_image_id = self._sync_media(event, result, cache)

        try:
            event_result = self.upserter.upsert_event(
                event,
                venue_id=venue_id,
                category_ids=category_ids,
                organizer_ids=organizer_ids,
                featured_image_id=featured_image_id
            )
        except Exception as e:
            logger.error(
                f"Event upsert failed for WP event {event.id}: {e}",
                extra={'error_type': type(e).__name__}
            )
            raise EventSyncError(str(e), result) from e

        result.event = {'id': event_result.id, 'action': event_result.action}
        logger.info(
            f"Synced WP event {event.id} as event {event_result.id} "
            f"({event_result.action})"
        )
        return result

    def _sync_venue(self, event: WPEvent, result: EventSyncResult) -> Optional[int]:
        venue = event.venue
        if venue is None or not venue.id:
            return None

        try:
            upserted = self.upserter.upsert_venue(venue)
        except Exception as e:
            logger.warning(f"Venue upsert failed for WP venue {venue.id}: {e}")
            result.venue = {'id': venue.id, 'error': str(e)}
            return None

        result.venue = {'id': upserted.id}
        return upserted.id

    def _sync_categories(self, event: WPEvent, result: EventSyncResult) -> List[int]:
        category_ids = []
        for category in event.categories:
            try:
                upserted = self.upserter.upsert_category(category)
            except Exception as e:
                logger.warning(f"Category upsert failed for WP category {category.id}: {e}")
                result.categories.append({'wpId': category.id, 'error': str(e)})
                continue

            category_ids.append(upserted.id)
            result.categories.append({'wpId': category.id, 'id': upserted.id})
        return category_ids

    def _sync_organizers(self, event: WPEvent, result: EventSyncResult) -> List[int]:
        organizer_ids = []
        for organizer in event.organizers:
            try:
                upserted = self.upserter.upsert_organizer(organizer)
            except Exception as e:
                logger.warning(f"Organizer upsert failed for WP organizer {organizer.id}: {e}")
                result.organizers.append({'wpId': organizer.id, 'error': str(e)})
                continue

            organizer_ids.append(upserted.id)
            result.organizers.append({'wpId': organizer.id, 'id': upserted.id})
        return organizer_ids

    def _sync_media(
        self,
        event: WPEvent,
        result: EventSyncResult,
        cache: MediaCache
    ) -> Optional[int]:
        source_url = extract_image_url(event.imageUrl) or extract_image_url(event.image)
        if not source_url:
            return None

        try:
            media = self.media_acquirer.get_or_create(
                source_url,
                event.id,
                clean_text(event.title),
                cache
            )
        except Exception as e:
            logger.warning(f"Media fetch failed for WP event {event.id}: {e}")
            result.media = {'id': 0, 'created': False, 'error': str(e)}
            return None

        if media is None:
            return None

        result.media = {'id': media.id, 'created': media.created}
        return media.id
