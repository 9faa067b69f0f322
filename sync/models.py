"""Data models for WordPress sync results."""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

CREATED = 'created'
UPDATED = 'updated'


@dataclass
class UpsertResult:
    """Outcome of a single entity upsert."""
    id: int
    action: str


@dataclass
class MediaResult:
    """Media asset resolved for a source URL."""
    id: int
    created: bool


class MediaCache:
    """
    Source URL to media id map for one sync invocation.

    Created by the orchestrator for each webhook call or bulk-import run and
    handed to the media acquirer on every call.
    """

    def __init__(self):
        self._ids: Dict[str, int] = {}

    def get(self, source_url: str) -> Optional[int]:
        return self._ids.get(source_url)

    def set(self, source_url: str, media_id: int) -> None:
        self._ids[source_url] = media_id

    def __contains__(self, source_url: str) -> bool:
        return source_url in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class EventSyncResult:
    """
    Per-event sync report.

    Each slot holds either the resolved internal id or the external id with
    an error message.
    """
    venue: Optional[Dict[str, Any]] = None
    categories: List[Dict[str, Any]] = field(default_factory=list)
    organizers: List[Dict[str, Any]] = field(default_factory=list)
    media: Optional[Dict[str, Any]] = None
    event: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for a JSON response, omitting empty slots."""
        data = {
            'venue': self.venue,
            'categories': self.categories,
            'organizers': self.organizers,
            'media': self.media,
            'event': self.event,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class EntityCounts:
    created: int = 0
    updated: int = 0
    skipped: int = 0

    def record(self, action: str) -> None:
        if action == CREATED:
            self.created += 1
        else:
            self.updated += 1


@dataclass
class ImportStats:
    """Aggregate counters for a bulk-import run."""
    venues: EntityCounts = field(default_factory=EntityCounts)
    categories: EntityCounts = field(default_factory=EntityCounts)
    organizers: EntityCounts = field(default_factory=EntityCounts)
    events: EntityCounts = field(default_factory=EntityCounts)
    media_created: int = 0
    media_reused: int = 0
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
