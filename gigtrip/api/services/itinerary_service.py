# gigtrip/api/services/itinerary_service.py
"""Service layer for itinerary changes and schedule generation."""

import json
import logging
import re
from typing import List, Optional

from gigtrip.api.models import ChatSession, Event, Place, PlaceCategory, ScheduleItem, utc_now

logger = logging.getLogger(__name__)

_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_RANGE_SPLIT_RE = re.compile(r"\s*(?:-|–|—|\bto\b)\s*", re.IGNORECASE)
_CLOCK_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s*m?\.?$", re.IGNORECASE)
_CLOCK_24_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

CATEGORY_LABELS = {
    PlaceCategory.HOTEL: "Hotel",
    PlaceCategory.RESTAURANT: "Restaurant",
    PlaceCategory.ACTIVITY: "Activity",
}


def _parse_clock(value: str, meridiem_hint: Optional[str] = None) -> Optional[str]:
    """Return ``h:MM AM`` for a 12- or 24-hour clock value, or None."""
    value = value.strip()
    match = _CLOCK_RE.match(value)
    if match:
        hour, minute, meridiem = int(match.group(1)), int(match.group(2) or 0), match.group(3).upper()
        if not 1 <= hour <= 12 or minute > 59:
            return None
        return f"{hour}:{minute:02d} {meridiem}M"

    match = _CLOCK_24_RE.match(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if minute > 59:
        return None
    if meridiem_hint and 1 <= hour <= 12:
        return f"{hour}:{minute:02d} {meridiem_hint}M"
    if hour > 23:
        return None
    meridiem = "PM" if hour >= 12 else "AM"
    hour12 = hour % 12 or 12
    return f"{hour12}:{minute:02d} {meridiem}"


def _meridiem_of(value: str) -> Optional[str]:
    match = _CLOCK_RE.match(value.strip())
    return match.group(3).upper() if match else None


def normalize_time_range(value: str) -> Optional[str]:
    """Normalise ``"19:00 - 20:30"`` or ``"7pm to 8:30pm"`` to ``"7:00 PM - 8:30 PM"``.

    Returns None when the value is not a readable start/end range.
    """
    if not isinstance(value, str):
        return None
    parts = _RANGE_SPLIT_RE.split(value.strip())
    if len(parts) != 2 or not all(parts):
        return None
    start_raw, end_raw = parts
    start_meridiem, end_meridiem = _meridiem_of(start_raw), _meridiem_of(end_raw)
    start = _parse_clock(start_raw, meridiem_hint=end_meridiem)
    end = _parse_clock(end_raw, meridiem_hint=start_meridiem)
    if not start or not end:
        return None

    # a borrowed meridiem must not put the start after the end ("11:00 - 1:00 PM")
    if _minutes_of(start) > _minutes_of(end):
        if end_meridiem and not start_meridiem and _CLOCK_24_RE.match(start_raw.strip()):
            start = _flip_meridiem(start)
        elif start_meridiem and not end_meridiem and _CLOCK_24_RE.match(end_raw.strip()):
            end = _flip_meridiem(end)
    return f"{start} - {end}"


def _minutes_of(clock: str) -> int:
    """Minutes after midnight for an ``h:MM AM`` value."""
    time_part, meridiem = clock.split()
    hour, minute = (int(p) for p in time_part.split(":"))
    return (hour % 12 + (12 if meridiem == "PM" else 0)) * 60 + minute


def _flip_meridiem(clock: str) -> str:
    time_part, meridiem = clock.split()
    return f"{time_part} {'AM' if meridiem == 'PM' else 'PM'}"


def _extract_json_array(text: str) -> Optional[list]:
    blocks = _FENCED_BLOCK_RE.findall(text)
    if blocks:
        candidate = blocks[-1].strip()
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, list) else None

    stripped = text.rstrip()
    if not stripped.endswith("]"):
        return None
    pos = stripped.rfind("[")
    while pos != -1:
        try:
            data = json.loads(stripped[pos:])
            return data if isinstance(data, list) else None
        except json.JSONDecodeError:
            pos = stripped.rfind("[", 0, pos)
    return None


class ItineraryService:
    """Handles itinerary mutations and the schedule round-trip with the LLM."""

    @staticmethod
    def confirm_event(session: ChatSession, event: Event) -> str:
        """Make ``event`` the chat's main event.

        Args:
            session: Chat being edited
            event: Event the user confirmed

        Returns:
            The message announcing the choice to the assistant
        """
        session.selected_event = event
        session.itinerary.event = event
        if not session.title:
            session.title = event.name
        session.updated_at = utc_now()
        logger.info(f"Confirmed event {event.id} ({event.name}) for chat {session.id}")
        return f"I want to attend: {event.describe()}"

    @staticmethod
    def confirm_place(session: ChatSession, place: Place) -> bool:
        """Append ``place`` to the itinerary.

        Returns:
            False when the place was already confirmed (nothing changes)
        """
        if not session.itinerary.add_place(place):
            logger.info(f"Place {place.id} already in itinerary for chat {session.id}")
            return False
        session.updated_at = utc_now()
        return True

    @staticmethod
    def remove_from_itinerary(session: ChatSession, item_id: str) -> bool:
        removed = session.itinerary.remove(item_id)
        if removed:
            session.updated_at = utc_now()
            logger.info(f"Removed {item_id} from itinerary for chat {session.id}")
        return removed

    @staticmethod
    def format_place_added(place: Place) -> str:
        label = CATEGORY_LABELS[place.category].lower()
        return f"I've added {place.name} ({label}) to my itinerary."

    @staticmethod
    def summarize(session: ChatSession) -> str:
        """Human/LLM readable summary of the itinerary."""
        itinerary = session.itinerary
        if itinerary.is_empty():
            return "The itinerary is empty."

        lines = []
        if itinerary.event:
            lines.append(f"Main event: {itinerary.event.describe()}")
        for place in itinerary.places:
            line = f"- {CATEGORY_LABELS[place.category]}: {place.name}"
            if place.address:
                line += f", {place.address}"
            if place.rating:
                line += f" (rated {place.rating:.1f})"
            lines.append(line)
        return "\n".join(lines)

    @staticmethod
    def build_schedule_request(session: ChatSession) -> str:
        """Serialise the itinerary into a schedule request for the assistant.

        Raises:
            ValueError: If there is nothing to schedule
        """
        if session.itinerary.is_empty():
            raise ValueError("Cannot build a schedule for an empty itinerary")

        return (
            "Please create a time-ordered schedule for my trip using everything in my itinerary.\n\n"
            f"{ItineraryService.summarize(session)}\n\n"
            "Reply with a short summary, then end with a ```json block containing an array of "
            'objects with "time", "activity" and "description". '
            'Use wall-clock ranges for "time", for example "7:00 PM - 8:30 PM".'
        )

    @staticmethod
    def parse_schedule(text: str) -> Optional[List[ScheduleItem]]:
        """Extract the trailing schedule block from an assistant reply.

        Returns:
            Schedule items, or None when the block is missing or invalid
        """
        data = _extract_json_array(text or "")
        if not data:
            logger.warning("No schedule block found in assistant reply")
            return None

        items = []
        for entry in data:
            if not isinstance(entry, dict):
                return None
            time_value = normalize_time_range(entry.get("time"))
            activity = entry.get("activity")
            description = entry.get("description")
            if not time_value or not isinstance(activity, str) or not isinstance(description, str):
                logger.warning(f"Rejecting schedule entry: {entry!r}")
                return None
            items.append(ScheduleItem(time=time_value, activity=activity, description=description))
        return items

    @staticmethod
    def strip_schedule_block(text: str) -> str:
        """Return the prose part of a schedule reply."""
        matches = list(_FENCED_BLOCK_RE.finditer(text or ""))
        if not matches:
            return (text or "").strip()
        last = matches[-1]
        return (text[:last.start()] + text[last.end():]).strip()

    @staticmethod
    def format_welcome_back(session: ChatSession) -> str:
        """Synthetic first message for a reopened chat."""
        event = session.itinerary.event or session.selected_event
        if event is None:
            return "Welcome back! Tell me which artist, team or show you'd like to see."

        count = len(session.itinerary.places)
        message = f"Welcome back! We're planning your trip to {event.name} at {event.venue}"
        if count:
            noun = "place" if count == 1 else "places"
            message += f", and you've saved {count} {noun} so far."
        else:
            message += "."
        if session.schedule:
            message += " Your schedule is ready whenever you want to review it."
        else:
            message += " Want to keep adding hotels, food or things to do?"
        return message
