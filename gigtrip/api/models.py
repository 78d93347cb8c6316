"""Shared data structures for event trip planning.

Every type serialises to the camelCase JSON shape the browser and the chat
store use, so ``to_dict``/``from_dict`` are the only conversion points.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class PlaceCategory(str, Enum):
    """Routing category of a place, computed once on ingest."""

    HOTEL = "hotel"
    RESTAURANT = "restaurant"
    ACTIVITY = "activity"


class ResultBucket(str, Enum):
    """The three current-results slots of a chat."""

    HOTEL = "hotel"
    FOOD = "food"
    EXPLORE = "explore"


class PlanningState(str, Enum):
    IDLE = "idle"
    BROWSING_EVENTS = "browsing_events"
    AWAITING_EVENT_CONFIRMATION = "awaiting_event_confirmation"
    EVENT_SELECTED = "event_selected"
    AWAITING_HOTEL_CONFIRMATION = "awaiting_hotel_confirmation"
    HOTEL_FILTERS_OPEN = "hotel_filters_open"
    AWAITING_FOOD_CONFIRMATION = "awaiting_food_confirmation"
    FOOD_FILTERS_OPEN = "food_filters_open"
    AWAITING_EXPLORE_CONFIRMATION = "awaiting_explore_confirmation"
    EXPLORE_FILTERS_OPEN = "explore_filters_open"


# Google place types that mark a restaurant-like place
RESTAURANT_TYPES = frozenset({
    "restaurant", "food", "cafe", "bar", "bakery", "meal_takeaway", "meal_delivery",
})
HOTEL_TYPES = frozenset({"lodging", "hotel"})


def classify_place_types(types: Optional[List[str]]) -> PlaceCategory:
    """Classify a place by its upstream ``types`` list.

    Lodging/hotel membership wins over every other rule.
    """
    type_set = set(types or [])
    if type_set & HOTEL_TYPES:
        return PlaceCategory.HOTEL
    if type_set & RESTAURANT_TYPES:
        return PlaceCategory.RESTAURANT
    return PlaceCategory.ACTIVITY


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Location"]:
        if not data:
            return None
        try:
            return cls(lat=float(data["lat"]), lng=float(data["lng"]))
        except (KeyError, TypeError, ValueError):
            return None


@dataclass
class Message:
    """One chat message; ``content`` is raw, ``display`` is directive-free."""

    role: str
    content: str = ""
    display: str = ""

    def to_transcript(self) -> dict:
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.display}


@dataclass(frozen=True)
class Event:
    """A live event returned by the event lookup service."""

    id: str
    name: str
    date: str = "TBD"
    time: str = ""
    venue: str = "Venue TBD"
    city: str = ""
    state: str = ""
    image: str = ""
    url: str = ""
    price_range: str = "Price TBD"
    location: Optional[Location] = None

    def describe(self) -> str:
        where = f"{self.venue}, {self.city}" if self.city else self.venue
        when = f"{self.date} {self.time}".strip()
        return f"{self.name} at {where} on {when}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date,
            "time": self.time,
            "venue": self.venue,
            "city": self.city,
            "state": self.state,
            "image": self.image,
            "url": self.url,
            "priceRange": self.price_range,
            "location": self.location.to_dict() if self.location else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            date=data.get("date") or "TBD",
            time=data.get("time") or "",
            venue=data.get("venue") or "Venue TBD",
            city=data.get("city") or "",
            state=data.get("state") or "",
            image=data.get("image") or "",
            url=data.get("url") or "",
            price_range=data.get("priceRange") or "Price TBD",
            location=Location.from_dict(data.get("location")),
        )


@dataclass
class Place:
    """A hotel, restaurant or attraction returned by the places lookup."""

    id: str
    name: str
    location: Location
    address: str = ""
    rating: float = 0.0
    user_ratings_total: int = 0
    price_level: Optional[int] = None
    price_label: str = "Price N/A"
    types: List[str] = field(default_factory=list)
    photo: Optional[str] = None
    open_now: Optional[bool] = None
    category: Optional[PlaceCategory] = None

    def __post_init__(self):
        if self.category is None:
            self.category = classify_place_types(self.types)
        elif not isinstance(self.category, PlaceCategory):
            self.category = PlaceCategory(self.category)

    @property
    def is_hotel(self) -> bool:
        return self.category == PlaceCategory.HOTEL

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "rating": self.rating,
            "userRatingsTotal": self.user_ratings_total,
            "priceLabel": self.price_label,
            "types": list(self.types),
            "location": self.location.to_dict(),
            "photo": self.photo,
            "category": self.category.value,
        }
        if self.price_level is not None:
            data["priceLevel"] = self.price_level
        if self.open_now is not None:
            data["openNow"] = self.open_now
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Place":
        location = Location.from_dict(data.get("location")) or Location(0.0, 0.0)
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            location=location,
            address=data.get("address") or "",
            rating=float(data.get("rating") or 0),
            user_ratings_total=int(data.get("userRatingsTotal") or 0),
            price_level=data.get("priceLevel"),
            price_label=data.get("priceLabel") or "Price N/A",
            types=list(data.get("types") or []),
            photo=data.get("photo"),
            open_now=data.get("openNow"),
            category=data.get("category"),
        )


@dataclass
class SearchFilters:
    radius: int = 1500
    location_preference: str = "venue"  # venue | hotel
    keyword: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "radius": self.radius,
            "locationPreference": self.location_preference,
            "keyword": self.keyword,
        }


DEFAULT_FILTER_RADIUS = {
    ResultBucket.HOTEL: 1600,
    ResultBucket.FOOD: 1500,
    ResultBucket.EXPLORE: 3000,
}


@dataclass
class ScheduleItem:
    time: str
    activity: str
    description: str = ""

    def to_dict(self) -> dict:
        return {"time": self.time, "activity": self.activity, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleItem":
        return cls(
            time=str(data.get("time", "")),
            activity=str(data.get("activity", "")),
            description=str(data.get("description", "")),
        )


@dataclass
class Itinerary:
    """One main event plus the places the user confirmed, in confirmation order."""

    event: Optional[Event] = None
    places: List[Place] = field(default_factory=list)

    def contains(self, item_id: str) -> bool:
        if self.event is not None and self.event.id == item_id:
            return True
        return any(p.id == item_id for p in self.places)

    def add_place(self, place: Place) -> bool:
        """Append ``place``; returns False when it is already present."""
        if any(p.id == place.id for p in self.places):
            return False
        self.places.append(place)
        return True

    def remove(self, item_id: str) -> bool:
        if self.event is not None and self.event.id == item_id:
            self.event = None
            return True
        before = len(self.places)
        self.places = [p for p in self.places if p.id != item_id]
        return len(self.places) != before

    def latest_hotel(self) -> Optional[Place]:
        for place in reversed(self.places):
            if place.is_hotel:
                return place
        return None

    def is_empty(self) -> bool:
        return self.event is None and not self.places

    def to_dict(self) -> dict:
        return {
            "event": self.event.to_dict() if self.event else None,
            "places": [p.to_dict() for p in self.places],
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Itinerary":
        data = data or {}
        event = data.get("event")
        return cls(
            event=Event.from_dict(event) if event else None,
            places=[Place.from_dict(p) for p in data.get("places") or []],
        )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ChatSession:
    """Structured, persistable context of one chat."""

    id: str
    title: Optional[str] = None
    itinerary: Itinerary = field(default_factory=Itinerary)
    schedule: List[ScheduleItem] = field(default_factory=list)
    selected_event: Optional[Event] = None
    is_pinned: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_data(self) -> dict:
        """Return the opaque ``data`` blob handed to the chat store."""
        return {
            "itinerary": self.itinerary.to_dict(),
            "schedule": [s.to_dict() for s in self.schedule],
            "selectedEvent": self.selected_event.to_dict() if self.selected_event else None,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ChatSession":
        data = record.get("data") or {}
        selected = data.get("selectedEvent")
        return cls(
            id=record["id"],
            title=record.get("title"),
            itinerary=Itinerary.from_dict(data.get("itinerary")),
            schedule=[ScheduleItem.from_dict(s) for s in data.get("schedule") or []],
            selected_event=Event.from_dict(selected) if selected else None,
            is_pinned=bool(record.get("isPinned")),
            created_at=record.get("createdAt") or utc_now(),
            updated_at=record.get("updatedAt") or utc_now(),
        )
