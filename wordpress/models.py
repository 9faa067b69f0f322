"""External record models for WordPress events calendar payloads."""
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass
class WPVenue:
    """Venue as exported by the WordPress events calendar."""
    id: Any = None
    venue: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    province: Optional[str] = None
    state: Optional[str] = None
    stateprovince: Optional[str] = None
    zip: Optional[str] = None
    geo_lat: Any = None
    geo_lng: Any = None
    website: Optional[str] = None
    phone: Optional[str] = None
    modified: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WPVenue':
        return cls(**_known_fields(cls, data))


@dataclass
class WPCategory:
    """Event category (taxonomy term)."""
    id: Any = None
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    parent: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WPCategory':
        return cls(**_known_fields(cls, data))


@dataclass
class WPOrganizer:
    """Event organizer."""
    id: Any = None
    organizer: Optional[str] = None
    slug: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    modified: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WPOrganizer':
        return cls(**_known_fields(cls, data))


@dataclass
class WPEvent:
    """
    Event with its nested venue, categories and organizers.

    The image reference has no fixed shape and is kept as raw JSON in
    `image` and `imageUrl`.
    """
    id: Any = None
    title: Optional[str] = None
    slug: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    timezone: Optional[str] = None
    all_day: Any = False
    website: Optional[str] = None
    featured: Any = False
    image: Any = None
    imageUrl: Any = None
    is_virtual: Any = False
    virtual_url: Optional[str] = None
    categories: List[WPCategory] = field(default_factory=list)
    organizers: List[WPOrganizer] = field(default_factory=list)
    venue: Optional[WPVenue] = None
    modified: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WPEvent':
        values = _known_fields(cls, data)

        venue = values.get('venue')
        values['venue'] = WPVenue.from_dict(venue) if isinstance(venue, dict) else None
        values['categories'] = [
            WPCategory.from_dict(item)
            for item in values.get('categories') or []
            if isinstance(item, dict)
        ]
        values['organizers'] = [
            WPOrganizer.from_dict(item)
            for item in values.get('organizers') or []
            if isinstance(item, dict)
        ]
        return cls(**values)
