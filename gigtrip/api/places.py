# gigtrip/api/places.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import googlemaps
from gigtrip.api.config import get_google_maps_config, get_search_config
from gigtrip.api.models import Location, Place

logger = logging.getLogger(__name__)

PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"

_gmaps: googlemaps.Client | None = None


class PlaceLookupError(Exception):
    """Raised when the places service cannot be queried."""


def _get_client() -> googlemaps.Client:
    """Return a cached googlemaps.Client instance."""
    global _gmaps
    if _gmaps is None:
        cfg = get_google_maps_config()
        api_key = cfg.get("api_key", "")
        if not api_key:
            raise PlaceLookupError("Google Maps API key not configured")
        logger.info(f"Initializing Google Maps client with key: {api_key[:10]}...")
        # retries are manual: the user simply searches again
        _gmaps = googlemaps.Client(
            key=api_key,
            timeout=get_search_config()["timeout_seconds"],
            retry_over_query_limit=False,
        )
    return _gmaps


def get_price_label(price_level: Optional[int]) -> str:
    """Map the Google 0-4 price level to a display label."""
    labels = {0: "Free", 1: "$", 2: "$$", 3: "$$$", 4: "$$$$"}
    return labels.get(price_level, "Price N/A")


def photo_url(photo_reference: Optional[str]) -> Optional[str]:
    if not photo_reference:
        return None
    cfg = get_search_config()
    api_key = get_google_maps_config().get("api_key", "")
    return (
        f"{PHOTO_URL}?maxwidth={cfg['photo_max_width']}"
        f"&photo_reference={photo_reference}&key={api_key}"
    )


def parse_place(raw: Dict[str, Any]) -> Place:
    """Normalise one Nearby Search result; the category is fixed here."""
    loc = (raw.get("geometry") or {}).get("location") or {}
    photos = raw.get("photos") or []
    price_level = raw.get("price_level")
    return Place(
        id=raw.get("place_id") or raw.get("id") or "",
        name=raw.get("name") or "Place",
        address=raw.get("vicinity") or raw.get("formatted_address") or "",
        rating=float(raw.get("rating") or 0),
        user_ratings_total=int(raw.get("user_ratings_total") or 0),
        price_level=price_level,
        price_label=get_price_label(price_level),
        types=list(raw.get("types") or []),
        location=Location(lat=float(loc.get("lat", 0)), lng=float(loc.get("lng", 0))),
        photo=photo_url(photos[0].get("photo_reference")) if photos else None,
        open_now=(raw.get("opening_hours") or {}).get("open_now"),
    )


def nearby_search(center: Location, place_type: str, radius: int,
                  keyword: Optional[str] = None) -> List[Place]:
    """Run a Google Places Nearby Search around ``center``.

    Returns the upstream ranking unchanged; filtering is the caller's job.

    Raises:
        PlaceLookupError: If the client is unavailable or the API rejects the call
    """
    client = _get_client()
    logger.debug(f"Nearby search: {place_type} within {radius}m of {center.lat},{center.lng}")
    try:
        response = client.places_nearby(
            location=(center.lat, center.lng),
            radius=radius,
            type=place_type,
            keyword=keyword or None,
        )
    except Exception as e:
        raise PlaceLookupError(f"Places API error: {e}") from e

    status = response.get("status", "OK")
    if status not in ("OK", "ZERO_RESULTS"):
        raise PlaceLookupError(f"Places API error: {status}")

    results = response.get("results") or []
    logger.info(f"Places API returned {len(results)} {place_type} results")
    return [parse_place(r) for r in results]


def distance_matrix(origin: Location, destinations: List[Location]) -> List[Dict[str, Any]]:
    """Return one Distance Matrix element per destination, in order.

    Raises:
        PlaceLookupError: If the client is unavailable or the API rejects the call
    """
    client = _get_client()
    try:
        response = client.distance_matrix(
            origins=[(origin.lat, origin.lng)],
            destinations=[(d.lat, d.lng) for d in destinations],
            units="imperial",
        )
    except Exception as e:
        raise PlaceLookupError(f"Distance API error: {e}") from e

    if response.get("status") != "OK":
        raise PlaceLookupError(f"Distance API error: {response.get('status')}")
    return response["rows"][0]["elements"]


__all__ = [
    "PlaceLookupError",
    "get_price_label",
    "nearby_search",
    "distance_matrix",
    "parse_place",
]
