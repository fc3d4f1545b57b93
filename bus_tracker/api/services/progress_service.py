# bus_tracker/api/services/progress_service.py
"""Route progress: where a rider is on a route and which stop comes next."""

import logging
import math
from typing import Callable, List, Optional, Sequence

from bus_tracker.api.geometry import (
    closest_point_on_segment,
    find_closest_point_on_path,
    haversine_km,
    path_length_km,
    within_segment_bounds,
)
from bus_tracker.api.models import Coordinate, ProgressResult, Route, Stop

logger = logging.getLogger(__name__)

DEFAULT_STOP_RADIUS_M = 50.0

# (point, projection, segment_start, segment_end) -> segment contains point
ContainmentTest = Callable[[Coordinate, Coordinate, Coordinate, Coordinate], bool]


def _accumulate_path_distance(point: Coordinate,
                              path: Sequence[Coordinate],
                              contains: ContainmentTest) -> float:
    """Distance along ``path`` up to the first segment that contains ``point``.

    Full segment lengths are summed until ``contains`` matches, then only the
    distance from that segment's start to ``point`` is added. With no match
    the result is the whole path length.
    """
    travelled = 0.0
    for start, end in zip(path, path[1:]):
        projection = closest_point_on_segment(point, start, end)
        if contains(point, projection, start, end):
            return travelled + haversine_km(start, point)
        travelled += haversine_km(start, end)
    return travelled


def _in_bounding_box(point: Coordinate, projection: Coordinate,
                     start: Coordinate, end: Coordinate) -> bool:
    return within_segment_bounds(projection, start, end)


def _near_stop(radius_km: float) -> ContainmentTest:
    def contains(point: Coordinate, projection: Coordinate,
                 start: Coordinate, end: Coordinate) -> bool:
        return haversine_km(projection, point) < radius_km
    return contains


class RouteProgressEngine:
    """Stateless progress computation; safe to share between threads."""

    @staticmethod
    def user_path_distance(current_coords: Coordinate, path: Sequence[Coordinate]) -> float:
        """Kilometres travelled along ``path`` for a rider at ``current_coords``."""
        return _accumulate_path_distance(current_coords, path, _in_bounding_box)

    @staticmethod
    def stop_path_distances(route: Route,
                            stop_radius_m: float = DEFAULT_STOP_RADIUS_M) -> List[float]:
        """Kilometres along the path for each stop, in stop order.

        A stop is anchored to the first segment whose projection lies within
        ``stop_radius_m`` of it, so stops slightly off the polyline still count.
        """
        contains = _near_stop(stop_radius_m / 1000.0)
        return [
            _accumulate_path_distance(stop.coordinates, route.path, contains)
            for stop in route.stops
        ]

    @staticmethod
    def select_next_stop_index(user_distance: float, stop_distances: Sequence[float]) -> int:
        """Index of the nearest stop at or ahead of the rider, -1 without stops.

        Past the last stop the route loops, so the first stop is next.
        """
        next_index = -1
        min_gap = math.inf
        for i, stop_distance in enumerate(stop_distances):
            if stop_distance >= user_distance:
                gap = stop_distance - user_distance
                if gap < min_gap:
                    min_gap = gap
                    next_index = i

        if next_index == -1 and stop_distances:
            next_index = 0
        return next_index

    @staticmethod
    def compute_progress(current_coords: Coordinate,
                         route: Route,
                         stop_radius_m: float = DEFAULT_STOP_RADIUS_M) -> ProgressResult:
        """Compute the rider's progress along ``route``.

        Args:
            current_coords: Rider position as (lat, lon)
            route: Active route
            stop_radius_m: How far a stop may sit from the path and still anchor to it

        Returns:
            ProgressResult with closest path point, next stop, upcoming and passed stops
        """
        closest = find_closest_point_on_path(current_coords, route.path)

        user_distance = RouteProgressEngine.user_path_distance(current_coords, route.path)
        stop_distances = RouteProgressEngine.stop_path_distances(route, stop_radius_m)
        next_index = RouteProgressEngine.select_next_stop_index(user_distance, stop_distances)

        if next_index == -1:
            return ProgressResult(
                closest_point=closest,
                next_stop=None,
                upcoming_stops=(),
                passed_stops=frozenset(),
            )

        return ProgressResult(
            closest_point=closest,
            next_stop=route.stops[next_index],
            upcoming_stops=tuple(route.stops[next_index:]),
            passed_stops=frozenset(s.name for s in route.stops[:next_index]),
        )

    @staticmethod
    def distance_to_next_stop_km(current_coords: Coordinate,
                                 route: Route,
                                 stop_radius_m: float = DEFAULT_STOP_RADIUS_M) -> Optional[float]:
        """Path distance from the rider to the next stop, wrapping around the loop."""
        user_distance = RouteProgressEngine.user_path_distance(current_coords, route.path)
        stop_distances = RouteProgressEngine.stop_path_distances(route, stop_radius_m)
        next_index = RouteProgressEngine.select_next_stop_index(user_distance, stop_distances)
        if next_index == -1:
            return None

        gap = stop_distances[next_index] - user_distance
        if gap < 0:
            gap += path_length_km(route.path)
        return max(gap, 0.0)


def compute_progress(current_coords: Coordinate,
                     route: Route,
                     stop_radius_m: float = DEFAULT_STOP_RADIUS_M) -> ProgressResult:
    """Module-level shortcut for ``RouteProgressEngine.compute_progress``."""
    return RouteProgressEngine.compute_progress(current_coords, route, stop_radius_m)


def initial_progress(route: Route, stop_radius_m: float = DEFAULT_STOP_RADIUS_M) -> Optional[ProgressResult]:
    """Progress at the start of the route, or None for a route with no path."""
    if not route.path:
        logger.debug("Route %s has no path; no initial progress", route.name)
        return None
    return RouteProgressEngine.compute_progress(route.path[0], route, stop_radius_m)


__all__ = ['RouteProgressEngine', 'compute_progress', 'initial_progress', 'DEFAULT_STOP_RADIUS_M']
