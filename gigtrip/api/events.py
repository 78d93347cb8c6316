"""Ticketmaster Discovery event lookup."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from gigtrip.api.config import get_search_config, get_ticketmaster_api_key
from gigtrip.api.models import Event, Location

logger = logging.getLogger(__name__)

TICKETMASTER_EVENTS_URL = "https://app.ticketmaster.com/discovery/v2/events.json"

HEADERS = {
    "User-Agent": "Gigtrip/0.1",
    "Accept": "application/json",
}


class EventLookupError(Exception):
    """Raised when the event service cannot be queried."""


def _pick_image(images: List[Dict[str, Any]]) -> str:
    for img in images:
        if img.get("ratio") == "16_9" and (img.get("width") or 0) > 500:
            return img.get("url") or ""
    return (images[0].get("url") or "") if images else ""


def _venue_location(venue: Dict[str, Any]) -> Optional[Location]:
    loc = venue.get("location") or {}
    try:
        return Location(lat=float(loc["latitude"]), lng=float(loc["longitude"]))
    except (KeyError, TypeError, ValueError):
        return None


def parse_event(raw: Dict[str, Any]) -> Event:
    """Normalise one Ticketmaster event payload."""
    venue = (((raw.get("_embedded") or {}).get("venues")) or [{}])[0] or {}
    start = (raw.get("dates") or {}).get("start") or {}
    prices = raw.get("priceRanges") or []

    if prices and prices[0].get("min") is not None and prices[0].get("max") is not None:
        price_range = f"${prices[0]['min']} - ${prices[0]['max']}"
    else:
        price_range = "Price TBD"

    return Event(
        id=str(raw.get("id")),
        name=raw.get("name") or "Event",
        date=start.get("localDate") or "TBD",
        time=start.get("localTime") or "",
        venue=venue.get("name") or "Venue TBD",
        city=(venue.get("city") or {}).get("name") or "",
        state=(venue.get("state") or {}).get("stateCode") or "",
        image=_pick_image(raw.get("images") or []),
        url=raw.get("url") or "",
        price_range=price_range,
        location=_venue_location(venue),
    )


def fetch_events(keyword: str) -> List[Event]:
    """Search Ticketmaster for events matching ``keyword``.

    Raises:
        EventLookupError: If the key is missing or the request fails
    """
    api_key = get_ticketmaster_api_key()
    if not api_key:
        raise EventLookupError("Ticketmaster API key not configured")

    config = get_search_config()
    params = {
        "keyword": keyword,
        "apikey": api_key,
        "size": config["event_page_size"],
    }

    try:
        response = requests.get(
            TICKETMASTER_EVENTS_URL,
            params=params,
            headers=HEADERS,
            timeout=config["timeout_seconds"],
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise EventLookupError(f"Ticketmaster request failed: {exc}") from exc

    events = ((data or {}).get("_embedded") or {}).get("events") or []
    logger.info(f"Ticketmaster returned {len(events)} events for '{keyword}'")
    return [parse_event(ev) for ev in events[:config["event_page_size"]]]
