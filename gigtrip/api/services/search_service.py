# gigtrip/api/services/search_service.py
"""Service layer for event and place lookups."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from gigtrip.api import events as event_api
from gigtrip.api import places as place_api
from gigtrip.api.config import get_search_config
from gigtrip.api.models import Event, Itinerary, Location, Place, ResultBucket

logger = logging.getLogger(__name__)

# Google 0-4 price scale ceiling per budget word
BUDGET_PRICE_CEILING = {
    "cheap": 1,
    "moderate": 2,
    "expensive": 4,
}

BUCKET_PLACE_TYPES = {
    ResultBucket.HOTEL: "lodging",
    ResultBucket.FOOD: "restaurant",
    ResultBucket.EXPLORE: "tourist_attraction",
}

DIRECTIVE_BUCKETS = {
    "hotel": ResultBucket.HOTEL,
    "restaurant": ResultBucket.FOOD,
}

NO_LOCATION = "no_location"


def budget_to_max_price(budget: Optional[str]) -> int:
    """Return the price-level ceiling for a budget word (moderate when unknown)."""
    return BUDGET_PRICE_CEILING.get((budget or "").strip().lower(), BUDGET_PRICE_CEILING["moderate"])


@dataclass
class SearchOutcome:
    """Result of one lookup.

    ``failed`` tells "the search broke" apart from "zero matches";
    ``reason`` names a precondition that kept the search from running.
    """

    items: List[Any] = field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "items": [i.to_dict() for i in self.items],
            "failed": self.failed,
            "error": self.error,
            "reason": self.reason,
        }


def filter_places(places: List[Place], min_rating: float = 0, max_price: int = 4,
                  limit: int = 10) -> List[Place]:
    """Apply rating/price limits to already-fetched places, keeping upstream order."""
    kept = []
    for place in places:
        if min_rating > 0 and (not place.rating or place.rating < min_rating):
            continue
        if place.price_level is not None and place.price_level > max_price:
            continue
        kept.append(place)
    return kept[:limit]


def resolve_search_center(selected_event: Optional[Event], itinerary: Itinerary,
                          near_hotel: bool = False,
                          override: Optional[Location] = None) -> Optional[Location]:
    """Pick the point a proximity search is centred on.

    Priority: explicit override, then the most recently confirmed hotel when
    ``near_hotel`` is set, then the selected event's venue.
    """
    if override is not None:
        return override

    event_location = selected_event.location if selected_event else None

    if near_hotel:
        hotel = itinerary.latest_hotel()
        if hotel is not None:
            return hotel.location
        logger.warning("No confirmed hotel to search near, falling back to the event venue")

    return event_location


class SearchService:
    """Wraps the event and place lookups so they never raise."""

    def __init__(self,
                 event_fetcher: Callable[[str], List[Event]] = None,
                 place_fetcher: Callable[..., List[Place]] = None,
                 result_limit: Optional[int] = None):
        self._fetch_events = event_fetcher or event_api.fetch_events
        self._fetch_places = place_fetcher or place_api.nearby_search
        self.result_limit = result_limit or get_search_config()["result_limit"]

    def search_events(self, keyword: str) -> SearchOutcome:
        """Search events by free-text keyword.

        Args:
            keyword: Artist, team or event name

        Returns:
            SearchOutcome with Event items, failed on any upstream error
        """
        keyword = (keyword or "").strip()
        if not keyword:
            return SearchOutcome(failed=True, error="Missing keyword")
        try:
            found = self._fetch_events(keyword)
        except Exception as e:
            logger.error(f"Event search failed for '{keyword}': {e}")
            return SearchOutcome(failed=True, error=str(e))
        return SearchOutcome(items=list(found)[:self.result_limit])

    def search_places(self, center: Optional[Location], place_type: str, radius: int,
                      keyword: Optional[str] = None, min_rating: float = 0,
                      max_price: int = 4) -> SearchOutcome:
        """Search places near ``center``.

        Args:
            center: Search origin; None yields an explicit no-location outcome
            place_type: Upstream category (lodging, restaurant, tourist_attraction)
            radius: Search radius in meters
            keyword: Optional free-text refinement
            min_rating: Minimum rating kept after fetch
            max_price: Highest price level kept after fetch

        Returns:
            SearchOutcome with Place items, failed on any upstream error
        """
        if center is None:
            logger.info(f"Skipping {place_type} search: no location to search near")
            return SearchOutcome(reason=NO_LOCATION)
        try:
            fetched = self._fetch_places(center, place_type, radius, keyword)
        except Exception as e:
            logger.error(f"Place search failed ({place_type}): {e}")
            return SearchOutcome(failed=True, error=str(e))

        places = filter_places(fetched, min_rating=min_rating, max_price=max_price,
                               limit=self.result_limit)
        logger.info(f"Kept {len(places)}/{len(fetched)} {place_type} results after filtering")
        return SearchOutcome(items=places)


__all__ = [
    "BUDGET_PRICE_CEILING",
    "BUCKET_PLACE_TYPES",
    "SearchOutcome",
    "SearchService",
    "budget_to_max_price",
    "filter_places",
    "resolve_search_center",
]
