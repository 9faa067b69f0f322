"""Bulk import of WordPress export files."""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from sync.media import MediaAcquirer
from sync.models import ImportStats, MediaCache
from sync.upserter import EntityUpserter
from wordpress.images import extract_image_url
from wordpress.models import WPCategory, WPEvent, WPOrganizer, WPVenue
from wordpress.normalize import clean_text, parse_date

logger = logging.getLogger(__name__)


class ImportDataError(Exception):
    """Raised when the imports directory cannot be loaded."""


@dataclass
class ImportData:
    """Records concatenated from every export file."""
    events: List[Dict[str, Any]] = field(default_factory=list)
    venues: List[Dict[str, Any]] = field(default_factory=list)
    categories: List[Dict[str, Any]] = field(default_factory=list)
    organizers: List[Dict[str, Any]] = field(default_factory=list)
    files: List[str] = field(default_factory=list)


def load_import_data(imports_dir) -> ImportData:
    """
    Read every *.json file in a directory, sorted by filename.

    Each file is an object with optional `events`, `venues`, `categories`
    and `organizers` arrays; arrays are concatenated across files.

    Args:
        imports_dir: Directory holding the export files

    Returns:
        ImportData with all records

    Raises:
        ImportDataError: If the directory is missing or has no JSON files
    """
    directory = Path(imports_dir)
    if not directory.is_dir():
        raise ImportDataError(f"Imports directory not found: {directory}")

    files = sorted(
        path.name for path in directory.iterdir()
        if path.is_file() and path.name.endswith('.json')
    )
    if not files:
        raise ImportDataError(f"No JSON files found in imports directory: {directory}")

    data = ImportData(files=files)
    for name in files:
        with open(directory / name, encoding='utf-8') as f:
            parsed = json.load(f)
        if not isinstance(parsed, dict):
            logger.warning(f"Ignoring {name}: top-level value is not an object")
            continue

        for key in ('events', 'venues', 'categories', 'organizers'):
            records = parsed.get(key)
            if isinstance(records, list):
                getattr(data, key).extend(
                    record for record in records if isinstance(record, dict)
                )

    logger.info(
        f"Loaded {len(data.events)} events, {len(data.venues)} venues, "
        f"{len(data.categories)} categories, {len(data.organizers)} organizers "
        f"from {len(files)} files"
    )
    return data


class BulkImporter:
    """
    Imports a full WordPress export in one sequential run.

    Venues, categories and organizers are collapsed by WordPress id across
    the dedicated lists and the copies embedded in events, then upserted
    once each. Category parents are linked in a second pass once every
    category exists. Events are upserted last using the id maps built along
    the way; an event that fails is skipped and the run carries on.
    """

    def __init__(self, upserter: EntityUpserter, media_acquirer: MediaAcquirer):
        self.upserter = upserter
        self.media_acquirer = media_acquirer

    def run(self, data: ImportData) -> ImportStats:
        stats = ImportStats(files=list(data.files))
        cache = MediaCache()
        events = [
            WPEvent.from_dict(record) for record in data.events if record.get('id')
        ]

        venue_ids = self._import_venues(data, events, stats)
        categories = self._collect_categories(data, events)
        category_ids = self._import_categories(categories, stats)
        self._link_category_parents(categories, category_ids)
        organizer_ids = self._import_organizers(data, events, stats)

        skipped_without_id = len(data.events) - len(events)
        if skipped_without_id:
            logger.warning(f"Skipping {skipped_without_id} events without an id")
            stats.events.skipped += skipped_without_id

        for event in events:
            self._import_event(event, venue_ids, category_ids, organizer_ids, cache, stats)

        logger.info("Import complete", extra={'stats': stats.to_dict()})
        return stats

    def _import_venues(
        self,
        data: ImportData,
        events: List[WPEvent],
        stats: ImportStats
    ) -> Dict[str, int]:
        venues: Dict[str, WPVenue] = {}
        for record in data.venues:
            if record.get('id'):
                venues[str(record['id'])] = WPVenue.from_dict(record)
        for event in events:
            if event.venue is not None and event.venue.id:
                venues[str(event.venue.id)] = event.venue

        venue_ids = {}
        for external_id, venue in venues.items():
            try:
                upserted = self.upserter.upsert_venue(venue)
            except Exception as e:
                logger.warning(f"Skipping WP venue {external_id}: {e}")
                stats.venues.skipped += 1
                continue
            venue_ids[external_id] = upserted.id
            stats.venues.record(upserted.action)
        return venue_ids

    def _collect_categories(
        self,
        data: ImportData,
        events: List[WPEvent]
    ) -> Dict[str, WPCategory]:
        categories: Dict[str, WPCategory] = {}
        for record in data.categories:
            if record.get('id'):
                categories[str(record['id'])] = WPCategory.from_dict(record)
        for event in events:
            for category in event.categories:
                if category.id:
                    categories[str(category.id)] = category
        return categories

    def _import_categories(
        self,
        categories: Dict[str, WPCategory],
        stats: ImportStats
    ) -> Dict[str, int]:
        category_ids = {}
        for external_id, category in categories.items():
            try:
                upserted = self.upserter.upsert_category(category)
            except Exception as e:
                logger.warning(f"Skipping WP category {external_id}: {e}")
                stats.categories.skipped += 1
                continue
            category_ids[external_id] = upserted.id
            stats.categories.record(upserted.action)
        return category_ids

    def _link_category_parents(
        self,
        categories: Dict[str, WPCategory],
        category_ids: Dict[str, int]
    ) -> None:
        """Second pass: point each category at its parent's internal id."""
        for external_id, category in categories.items():
            current_id = category_ids.get(external_id)
            if current_id is None:
                continue

            parent_id = None
            if category.parent:
                parent_id = category_ids.get(str(category.parent))
                if parent_id is None:
                    logger.warning(
                        f"Parent {category.parent} of WP category {external_id} "
                        f"was not imported"
                    )

            try:
                self.upserter.set_category_parent(current_id, parent_id)
            except Exception as e:
                logger.warning(f"Could not link parent for WP category {external_id}: {e}")

    def _import_organizers(
        self,
        data: ImportData,
        events: List[WPEvent],
        stats: ImportStats
    ) -> Dict[str, int]:
        organizers: Dict[str, WPOrganizer] = {}
        for record in data.organizers:
            if record.get('id'):
                organizers[str(record['id'])] = WPOrganizer.from_dict(record)
        for event in events:
            for organizer in event.organizers:
                if organizer.id:
                    organizers[str(organizer.id)] = organizer

        organizer_ids = {}
        for external_id, organizer in organizers.items():
            try:
                upserted = self.upserter.upsert_organizer(organizer)
            except Exception as e:
                logger.warning(f"Skipping WP organizer {external_id}: {e}")
                stats.organizers.skipped += 1
                continue
            organizer_ids[external_id] = upserted.id
            stats.organizers.record(upserted.action)
        return organizer_ids

    def _import_event(
        self,
        event: WPEvent,
        venue_ids: Dict[str, int],
        category_ids: Dict[str, int],
        organizer_ids: Dict[str, int],
        cache: MediaCache,
        stats: ImportStats
    ) -> None:
        if not parse_date(event.start_date):
            logger.warning(f"Skipping event {event.id}: missing or invalid start_date")
            stats.events.skipped += 1
            return

        venue_id: Optional[int] = None
        if event.venue is not None and event.venue.id:
            venue_id = venue_ids.get(str(event.venue.id))
        resolved_categories = [
            category_ids[str(category.id)]
            for category in event.categories
            if str(category.id) in category_ids
        ]
        resolved_organizers = [
            organizer_ids[str(organizer.id)]
            for organizer in event.organizers
            if str(organizer.id) in organizer_ids
        ]

        featured_image_id = None
        source_url = extract_image_url(event.imageUrl) or extract_image_url(event.image)
        if source_url:
            try:
                media = self.media_acquirer.get_or_create(
                    source_url, event.id, clean_text(event.title), cache
                )
            except Exception as e:
                logger.warning(f"Media fetch failed for event {event.id}: {e}")
                media = None
            if media is not None:
                featured_image_id = media.id
                if media.created:
                    stats.media_created += 1
                else:
                    stats.media_reused += 1

        try:
            upserted = self.upserter.upsert_event(
                event,
                venue_id=venue_id,
                category_ids=resolved_categories,
                organizer_ids=resolved_organizers,
                featured_image_id=featured_image_id
            )
        except Exception as e:
            logger.error(f"Skipping event {event.id}: {e}")
            stats.events.skipped += 1
            return

        stats.events.record(upserted.action)
