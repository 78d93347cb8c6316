# gigtrip/api/services/planning_service.py
"""Planning state machine for the event -> hotel -> food -> explore workflow."""

import logging
from typing import Dict, List, Optional, Tuple

from gigtrip.api.models import (
    DEFAULT_FILTER_RADIUS,
    Event,
    Place,
    PlanningState,
    ResultBucket,
    SearchFilters,
)

logger = logging.getLogger(__name__)

AWAITING_STATES = {
    ResultBucket.HOTEL: PlanningState.AWAITING_HOTEL_CONFIRMATION,
    ResultBucket.FOOD: PlanningState.AWAITING_FOOD_CONFIRMATION,
    ResultBucket.EXPLORE: PlanningState.AWAITING_EXPLORE_CONFIRMATION,
}

FILTER_STATES = {
    ResultBucket.HOTEL: PlanningState.HOTEL_FILTERS_OPEN,
    ResultBucket.FOOD: PlanningState.FOOD_FILTERS_OPEN,
    ResultBucket.EXPLORE: PlanningState.EXPLORE_FILTERS_OPEN,
}

_AWAITING_BUCKETS = {state: bucket for bucket, state in AWAITING_STATES.items()}
_FILTER_BUCKETS = {state: bucket for bucket, state in FILTER_STATES.items()}

# states a stage prompt may be started from
_STAGE_ENTRY_STATES = {
    PlanningState.IDLE,
    PlanningState.EVENT_SELECTED,
}

# states in which a freshly populated event list takes over
_BROWSE_ENTRY_STATES = {
    PlanningState.IDLE,
    PlanningState.BROWSING_EVENTS,
    PlanningState.EVENT_SELECTED,
}

SearchToken = Tuple[int, int]


class PlanningMachine:
    """Single-active-state workflow layered on top of the chat transcript.

    Holds the state variable together with the transient data it governs:
    the event list, the three result buckets, per-bucket filters, the
    highlighted place and the generation counters used to drop stale
    search results.  Illegal transitions are logged and return False.
    """

    def __init__(self):
        self.state = PlanningState.IDLE
        self.events: List[Event] = []
        self.buckets: Dict[ResultBucket, List[Place]] = {b: [] for b in ResultBucket}
        self.filters: Dict[ResultBucket, SearchFilters] = {
            b: SearchFilters(radius=DEFAULT_FILTER_RADIUS[b]) for b in ResultBucket
        }
        self.selected_place_id: Optional[str] = None
        self.event_generation = 0
        self.event_search_generation = 0
        self.bucket_generation: Dict[ResultBucket, int] = {b: 0 for b in ResultBucket}

    def restarted(self) -> "PlanningMachine":
        """A blank machine whose generation counters continue past this one's.

        Used when another chat is opened, so tokens handed out for the
        previous chat never match a search started in the new one.
        """
        machine = PlanningMachine()
        machine.event_generation = self.event_generation + 1
        machine.event_search_generation = self.event_search_generation + 1
        machine.bucket_generation = {b: n + 1 for b, n in self.bucket_generation.items()}
        return machine

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def active_bucket(self) -> Optional[ResultBucket]:
        return _FILTER_BUCKETS.get(self.state)

    @property
    def pending_bucket(self) -> Optional[ResultBucket]:
        return _AWAITING_BUCKETS.get(self.state)

    def visible_results(self) -> List[Place]:
        bucket = self.active_bucket
        return list(self.buckets[bucket]) if bucket else []

    def visible_markers(self) -> List[Place]:
        """Places the map shows: the active bucket only while a filter panel is open."""
        bucket = self.active_bucket
        if bucket is not None:
            return list(self.buckets[bucket])
        return list(self.buckets[ResultBucket.HOTEL]) + list(self.buckets[ResultBucket.FOOD])

    def find_result(self, place_id: str) -> Tuple[Optional[ResultBucket], Optional[Place]]:
        """Locate a place in the result buckets, active bucket first."""
        order = list(ResultBucket)
        if self.active_bucket is not None:
            order.remove(self.active_bucket)
            order.insert(0, self.active_bucket)
        for bucket in order:
            for place in self.buckets[bucket]:
                if place.id == place_id:
                    return bucket, place
        return None, None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _move(self, new_state: PlanningState, reason: str) -> bool:
        logger.debug(f"Planning state {self.state.value} -> {new_state.value} ({reason})")
        self.state = new_state
        return True

    def _reject(self, action: str) -> bool:
        logger.info(f"Ignoring '{action}' in planning state {self.state.value}")
        return False

    def begin_event_search(self) -> int:
        self.event_search_generation += 1
        return self.event_search_generation

    def events_populated(self, events: List[Event], token: Optional[int] = None) -> bool:
        """Show a new event list; stale lists (older token) are dropped."""
        if token is not None and token != self.event_search_generation:
            logger.info("Discarding stale event search results")
            return False
        self.events = list(events)
        if self.state in _BROWSE_ENTRY_STATES:
            self._move(PlanningState.BROWSING_EVENTS, "event list populated")
        return True

    def event_confirmation_requested(self) -> bool:
        if self.state not in (PlanningState.IDLE, PlanningState.BROWSING_EVENTS):
            return self._reject("confirm event prompt")
        return self._move(PlanningState.AWAITING_EVENT_CONFIRMATION, "CONFIRM_EVENT")

    def event_confirmed(self) -> bool:
        """Reset every downstream transient slot for a newly confirmed event."""
        self.events = []
        self.buckets = {b: [] for b in ResultBucket}
        self.selected_place_id = None
        self.event_generation += 1
        self.event_search_generation += 1
        return self._move(PlanningState.EVENT_SELECTED, "event confirmed")

    def request_stage(self, bucket: ResultBucket, has_event: bool) -> bool:
        """Ask the user whether to look for ``bucket`` places."""
        if not has_event:
            return self._reject(f"request {bucket.value}")
        if self.state not in _STAGE_ENTRY_STATES and self.pending_bucket is None:
            return self._reject(f"request {bucket.value}")
        return self._move(AWAITING_STATES[bucket], f"request {bucket.value}")

    def accept(self) -> Optional[ResultBucket]:
        bucket = self.pending_bucket
        if bucket is None:
            self._reject("accept")
            return None
        self._move(FILTER_STATES[bucket], "accepted")
        return bucket

    def decline(self) -> Optional[ResultBucket]:
        bucket = self.pending_bucket
        if bucket is None:
            self._reject("decline")
            return None
        self._move(PlanningState.IDLE, "declined")
        return bucket

    def open_filters(self, bucket: ResultBucket) -> bool:
        """Open a filter panel directly (assistant-driven search)."""
        return self._move(FILTER_STATES[bucket], f"open {bucket.value} filters")

    def close_panel(self) -> bool:
        bucket = self.active_bucket or self.pending_bucket
        if bucket is None and self.state != PlanningState.AWAITING_EVENT_CONFIRMATION:
            return self._reject("close panel")
        if bucket is not None:
            # results still on their way for this panel no longer apply
            self.bucket_generation[bucket] += 1
        self.selected_place_id = None
        return self._move(PlanningState.IDLE, "panel closed")

    def update_filters(self, bucket: ResultBucket, radius: Optional[int] = None,
                       location_preference: Optional[str] = None,
                       keyword: Optional[str] = None) -> SearchFilters:
        current = self.filters[bucket]
        if radius is not None and int(radius) > 0:
            current.radius = int(radius)
        if location_preference in ("venue", "hotel"):
            current.location_preference = location_preference
        if keyword is not None:
            current.keyword = keyword.strip() or None
        return current

    def begin_search(self, bucket: ResultBucket) -> SearchToken:
        """Start a search for ``bucket``; older searches for it become stale."""
        self.bucket_generation[bucket] += 1
        return self.event_generation, self.bucket_generation[bucket]

    def apply_results(self, bucket: ResultBucket, places: List[Place], token: SearchToken) -> bool:
        if token != (self.event_generation, self.bucket_generation[bucket]):
            logger.info(f"Discarding stale {bucket.value} results")
            return False
        self.buckets[bucket] = list(places)
        return True

    def select_place(self, place_id: Optional[str]) -> bool:
        if place_id is None:
            self.selected_place_id = None
            return True
        bucket, _ = self.find_result(place_id)
        if bucket is None:
            return self._reject(f"select {place_id}")
        self.selected_place_id = place_id
        return True

    def place_confirmed(self, place: Place, source: ResultBucket) -> PlanningState:
        """Drop a confirmed place from every bucket and advance the workflow."""
        for bucket in ResultBucket:
            self.buckets[bucket] = [p for p in self.buckets[bucket] if p.id != place.id]
        if self.selected_place_id == place.id:
            self.selected_place_id = None

        if place.is_hotel:
            self._move(PlanningState.AWAITING_FOOD_CONFIRMATION, "hotel confirmed")
        elif source == ResultBucket.EXPLORE:
            self._move(PlanningState.EXPLORE_FILTERS_OPEN, "activity confirmed")
        else:
            self._move(PlanningState.AWAITING_EXPLORE_CONFIRMATION, "place confirmed")
        return self.state

    def to_dict(self) -> dict:
        active = self.active_bucket
        return {
            "state": self.state.value,
            "activeBucket": active.value if active else None,
            "events": [e.to_dict() for e in self.events],
            "results": [p.to_dict() for p in self.visible_results()],
            "markers": [p.to_dict() for p in self.visible_markers()],
            "filters": {b.value: f.to_dict() for b, f in self.filters.items()},
            "selectedPlaceId": self.selected_place_id,
        }


__all__ = ["PlanningMachine", "AWAITING_STATES", "FILTER_STATES"]
