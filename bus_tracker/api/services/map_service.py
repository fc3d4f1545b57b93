# bus_tracker/api/services/map_service.py
"""Service layer for map-related operations."""

import logging
from typing import Any, Dict, Optional

from bus_tracker.api.models import Route, SimulatedFix, Stop

logger = logging.getLogger(__name__)


class MapService:
    """Helpers shared by the map payloads."""

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
    def calculate_bounds(route: Optional[Route]) -> Dict[str, Any]:
        """Calculate bounding box for the path and stops of a route.

        Args:
            route: Route to frame

        Returns:
            Dictionary with north, south, east, west bounds
        """
        if route is None:
            return {}

        points = list(route.path) + [s.coordinates for s in route.stops]
        if not points:
            return {}

        lats = [p[0] for p in points]
        lngs = [p[1] for p in points]

        return {
            'north': max(lats),
            'south': min(lats),
            'east': max(lngs),
            'west': min(lngs)
        }

    @staticmethod
    def count_out_of_range(route: Route) -> int:
        """Number of path points and stops with impossible coordinates."""
        points = list(route.path) + [s.coordinates for s in route.stops]
        return sum(1 for lat, lng in points if not MapService.validate_coordinates(lat, lng))


class MapState:
    """What the browser map needs to draw one route.

    One instance per active route; a new route gets a new MapState instead of
    mutating the old one.
    """

    def __init__(self, route: Route):
        self.route = route
        self.bounds = MapService.calculate_bounds(route)
        self.current_fix: Optional[SimulatedFix] = None
        self.next_stop: Optional[Stop] = None

        bad = MapService.count_out_of_range(route)
        if bad:
            logger.warning(f"Route '{route.name}' has {bad} points outside valid lat/lng ranges")

    def update(self, fix: Optional[SimulatedFix], next_stop: Optional[Stop]) -> None:
        self.current_fix = fix
        self.next_stop = next_stop

    def to_dict(self) -> Dict[str, Any]:
        return {
            'route': self.route.to_dict(),
            'bounds': self.bounds,
            'current_fix': self.current_fix.to_dict() if self.current_fix else None,
            'next_stop': self.next_stop.to_dict() if self.next_stop else None,
        }


# Export for use in other modules
__all__ = ['MapService', 'MapState']
