# gigtrip/api/services/map_service.py
"""Service layer for map-related operations."""

import logging
from typing import Any, Dict, List, Optional

from gigtrip.api.models import Event, Location, Place, PlaceCategory
from gigtrip.api.places import distance_matrix

logger = logging.getLogger(__name__)

MARKER_ICONS = {
    PlaceCategory.HOTEL: "bed",
    PlaceCategory.RESTAURANT: "fork-knife",
    PlaceCategory.ACTIVITY: "star",
}


class MapService:
    """Handles map markers, bounds and distances."""

    @staticmethod
    def validate_coordinates(lat: float, lng: float) -> bool:
        """Validate that coordinates are within valid ranges.

        Args:
            lat: Latitude
            lng: Longitude

        Returns:
            True if valid, False otherwise
        """
        return -90 <= lat <= 90 and -180 <= lng <= 180

    @staticmethod
    def marker_for_place(place: Place) -> Dict[str, Any]:
        """Marker payload for one place; the icon follows its category."""
        return {
            "id": place.id,
            "name": place.name,
            "position": place.location.to_dict(),
            "icon": MARKER_ICONS[place.category],
            "category": place.category.value,
        }

    @staticmethod
    def build_markers(event: Optional[Event], places: List[Place]) -> List[Dict[str, Any]]:
        """Markers for the venue plus the given places, skipping bad coordinates.

        Args:
            event: Selected event; its venue gets a marker when located
            places: Places currently visible on the map

        Returns:
            List of marker dicts
        """
        markers = []
        if event is not None and event.location is not None:
            markers.append({
                "id": event.id,
                "name": event.venue,
                "position": event.location.to_dict(),
                "icon": "ticket",
                "category": "event",
            })
        for place in places:
            if not MapService.validate_coordinates(place.location.lat, place.location.lng):
                logger.warning(f"Skipping marker for '{place.name}': invalid coordinates")
                continue
            markers.append(MapService.marker_for_place(place))
        return markers

    @staticmethod
    def calculate_bounds(markers: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Calculate bounding box for a list of markers.

        Returns:
            Dictionary with north, south, east, west bounds
        """
        lats = [m["position"]["lat"] for m in markers]
        lngs = [m["position"]["lng"] for m in markers]

        if not lats or not lngs:
            return {}

        return {
            'north': max(lats),
            'south': min(lats),
            'east': max(lngs),
            'west': min(lngs)
        }

    @staticmethod
    def estimate_travel_time(distance_meters: float, mode: str = "driving") -> int:
        """Estimate travel time based on distance and mode.

        Args:
            distance_meters: Distance in meters
            mode: Travel mode (driving, walking, transit)

        Returns:
            Estimated time in minutes
        """
        # Average speeds in meters per minute
        speeds = {
            "driving": 666,    # ~40 km/h
            "walking": 83,     # ~5 km/h
            "transit": 333,    # ~20 km/h
            "bicycling": 250   # ~15 km/h
        }

        speed = speeds.get(mode, speeds["driving"])
        return max(1, int(distance_meters / speed))

    @staticmethod
    def distances_from(origin: Location, destinations: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        """Distances from ``origin`` to each ``{"id", "lat", "lng"}`` destination.

        Returns:
            One entry per destination, or None when the lookup failed

        Raises:
            ValueError: If a destination has no valid lat/lng
        """
        if not destinations:
            return []
        points = []
        for dest in destinations:
            point = Location.from_dict(dest) if isinstance(dest, dict) else None
            if point is None or not MapService.validate_coordinates(point.lat, point.lng):
                raise ValueError(f"Invalid destination: {dest!r}")
            points.append(point)

        try:
            elements = distance_matrix(origin, points)
        except Exception as e:
            logger.error(f"Distance lookup failed: {e}")
            return None

        distances = []
        for dest, element in zip(destinations, elements):
            meters = (element.get("distance") or {}).get("value") or 0
            distances.append({
                "id": dest.get("id"),
                "distance": (element.get("distance") or {}).get("text", "N/A"),
                "distanceMeters": meters,
                "duration": (element.get("duration") or {}).get("text", "N/A"),
                "durationSeconds": (element.get("duration") or {}).get("value") or 0,
                "walkingMinutes": MapService.estimate_travel_time(meters, "walking"),
                "status": element.get("status"),
            })
        return distances


# Export for use in other modules
__all__ = ['MapService']
