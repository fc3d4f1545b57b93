# bus_tracker/api/geometry.py
"""Distance and projection helpers on raw (lat, lon) pairs.

Projections are planar in degree space, distances are haversine. That mix is
fine at city scale and keeps the results reproducible.
"""

from __future__ import annotations

import math
from typing import Sequence

from bus_tracker.api.models import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two (lat, lon) points in kilometres."""
    d_lat = math.radians(b[0] - a[0])
    d_lon = math.radians(b[1] - a[1])
    lat1 = math.radians(a[0])
    lat2 = math.radians(b[0])

    h = (math.sin(d_lat / 2) ** 2
         + math.sin(d_lon / 2) ** 2 * math.cos(lat1) * math.cos(lat2))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def closest_point_on_segment(p: Coordinate, a: Coordinate, b: Coordinate) -> Coordinate:
    """Project ``p`` onto segment ``a``-``b``, clamped to the endpoints."""
    ab_lat = b[0] - a[0]
    ab_lon = b[1] - a[1]
    ab2 = ab_lat * ab_lat + ab_lon * ab_lon
    if ab2 == 0:
        return a

    t = ((p[0] - a[0]) * ab_lat + (p[1] - a[1]) * ab_lon) / ab2
    t = min(max(t, 0.0), 1.0)
    return (a[0] + ab_lat * t, a[1] + ab_lon * t)


def find_closest_point_on_path(point: Coordinate, path: Sequence[Coordinate]) -> Coordinate:
    """Closest projection of ``point`` over every segment of ``path``.

    The first segment reaching the minimum wins. Paths with fewer than two
    points have no segments; the first point (or ``point`` itself for an
    empty path) is returned.
    """
    if not path:
        return point

    closest = path[0]
    min_distance = math.inf
    for a, b in zip(path, path[1:]):
        candidate = closest_point_on_segment(point, a, b)
        distance = haversine_km(point, candidate)
        if distance < min_distance:
            min_distance = distance
            closest = candidate
    return closest


def path_length_km(path: Sequence[Coordinate]) -> float:
    """Total haversine length of a polyline."""
    return sum(haversine_km(a, b) for a, b in zip(path, path[1:]))


def within_segment_bounds(p: Coordinate, a: Coordinate, b: Coordinate) -> bool:
    """True if ``p`` lies in the inclusive bounding box of ``a``-``b``."""
    return (min(a[0], b[0]) <= p[0] <= max(a[0], b[0])
            and min(a[1], b[1]) <= p[1] <= max(a[1], b[1]))


__all__ = [
    'EARTH_RADIUS_KM',
    'haversine_km',
    'closest_point_on_segment',
    'find_closest_point_on_path',
    'path_length_km',
    'within_segment_bounds',
]
