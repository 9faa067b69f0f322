"""Upserts of WordPress records into CMS collections."""
import logging
from typing import Any, Dict, List, Optional

from storage.dynamodb_manager import DuplicateKeyError
from sync.models import CREATED, UPDATED, UpsertResult
from wordpress.models import WPCategory, WPEvent, WPOrganizer, WPVenue
from wordpress.normalize import (
    clean_html_text,
    clean_text,
    normalize_status,
    parse_date,
)

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY = 'Canada'
DEFAULT_TIMEZONE = 'America/Halifax'

# Keeps an existing category parent untouched
UNSET = object()


class MissingStartDateError(ValueError):
    """Raised when an event has no usable start_date."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


class EntityUpserter:
    """
    Creates or updates CMS documents from WordPress records.

    Every entity is matched on `sync.externalId`, the string form of its
    WordPress id. A create that loses a race to a concurrent sync of the
    same record is retried as an update of the winner.
    """

    def __init__(self, store, now_iso: str):
        """
        Args:
            store: Document store (find/create/update)
            now_iso: Timestamp used when a record has no modification time
        """
        self.store = store
        self.now_iso = now_iso

    def upsert_venue(self, venue: WPVenue) -> UpsertResult:
        external_id = str(venue.id)
        coordinates = None
        if _is_number(venue.geo_lng) and _is_number(venue.geo_lat):
            coordinates = [venue.geo_lng, venue.geo_lat]

        data = {
            'name': clean_text(venue.venue) or f"Venue {external_id}",
            'slug': clean_text(venue.slug) or f"venue-{external_id}",
            'address': {
                'street': clean_text(venue.address),
                'city': clean_text(venue.city),
                'state': clean_text(
                    _first_present(venue.province, venue.stateprovince, venue.state)
                ),
                'zip': clean_text(venue.zip),
                'country': clean_text(venue.country) or DEFAULT_COUNTRY,
            },
            'coordinates': coordinates,
            'website': clean_text(venue.website),
            'phone': clean_text(venue.phone),
            'sync': {
                'externalId': external_id,
                'lastSyncedAt': parse_date(venue.modified) or self.now_iso,
            },
        }
        return self._upsert('venues', external_id, data)

    def upsert_category(self, category: WPCategory, parent_id: Any = UNSET) -> UpsertResult:
        """
        Upsert a category.

        Args:
            category: WordPress category
            parent_id: Internal id of the parent category, or None to clear
                it. Left as is when not given.
        """
        external_id = str(category.id)
        data = {
            'name': clean_text(category.name) or f"Category {external_id}",
            'slug': clean_text(category.slug) or f"category-{external_id}",
            'description': clean_html_text(category.description),
            'sync': {
                'externalId': external_id,
                'lastSyncedAt': self.now_iso,
            },
        }
        if parent_id is not UNSET:
            data['parent'] = parent_id
        return self._upsert('categories', external_id, data)

    def set_category_parent(self, category_id: int, parent_id: Optional[int]) -> None:
        self.store.update('categories', category_id, {'parent': parent_id})

    def upsert_organizer(self, organizer: WPOrganizer) -> UpsertResult:
        external_id = str(organizer.id)
        data = {
            'name': clean_text(organizer.organizer) or f"Organizer {external_id}",
            'slug': clean_text(organizer.slug) or f"organizer-{external_id}",
            'email': clean_text(organizer.email),
            'website': clean_text(organizer.website),
            'sync': {
                'externalId': external_id,
                'lastSyncedAt': parse_date(organizer.modified) or self.now_iso,
            },
        }
        return self._upsert('organizers', external_id, data)

    def upsert_event(
        self,
        event: WPEvent,
        venue_id: Optional[int] = None,
        category_ids: Optional[List[int]] = None,
        organizer_ids: Optional[List[int]] = None,
        featured_image_id: Optional[int] = None
    ) -> UpsertResult:
        """
        Upsert an event with already-resolved relationship ids.

        Args:
            event: WordPress event
            venue_id: Internal venue id
            category_ids: Internal category ids
            organizer_ids: Internal organizer ids
            featured_image_id: Internal media id

        Returns:
            UpsertResult with the internal event id

        Raises:
            MissingStartDateError: If start_date is missing or invalid
        """
        external_id = str(event.id)
        start_date_time = parse_date(event.start_date)
        if not start_date_time:
            raise MissingStartDateError(
                f"Missing or invalid start_date for event {external_id}"
            )

        data = {
            'title': clean_text(event.title) or f"Event {external_id}",
            'slug': clean_text(event.slug) or f"event-{external_id}",
            'isVirtual': bool(event.is_virtual),
            'virtualUrl': clean_text(event.virtual_url),
            'startDateTime': start_date_time,
            'endDateTime': parse_date(event.end_date),
            'isAllDay': bool(event.all_day),
            'timezone': clean_text(event.timezone) or DEFAULT_TIMEZONE,
            'venue': venue_id,
            'website': clean_text(event.website),
            'featuredImage': featured_image_id,
            'categories': list(category_ids or []),
            'organizers': list(organizer_ids or []),
            'status': normalize_status(event.status),
            'featured': bool(event.featured),
            'sync': {
                'source': 'wordpress',
                'externalId': external_id,
                'lastSyncedAt': parse_date(event.modified) or self.now_iso,
            },
        }
        return self._upsert('events', external_id, data)

    def _find_by_external_id(self, collection: str, external_id: str) -> Optional[Dict[str, Any]]:
        existing = self.store.find(
            collection,
            where={'sync.externalId': external_id},
            limit=1,
            depth=0
        )
        docs = existing['docs']
        return docs[0] if docs else None

    def _upsert(self, collection: str, external_id: str, data: Dict[str, Any]) -> UpsertResult:
        existing = self._find_by_external_id(collection, external_id)
        if existing:
            updated = self.store.update(collection, existing['id'], data)
            logger.debug(f"Updated {collection} {updated['id']} (external {external_id})")
            return UpsertResult(id=updated['id'], action=UPDATED)

        try:
            created = self.store.create(collection, data)
        except DuplicateKeyError:
            winner = self._find_by_external_id(collection, external_id)
            if not winner:
                raise
            logger.warning(
                f"Concurrent create of {collection} external {external_id}; "
                f"updating {winner['id']} instead"
            )
            updated = self.store.update(collection, winner['id'], data)
            return UpsertResult(id=updated['id'], action=UPDATED)

        logger.debug(f"Created {collection} {created['id']} (external {external_id})")
        return UpsertResult(id=created['id'], action=CREATED)
