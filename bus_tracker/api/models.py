"""Shared data structures for routes, stops and progress.

Routes arrive as loosely-typed JSON from the language model, so parsing and
validation live here with the dataclasses rather than in each caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, FrozenSet, Optional, Sequence, Tuple

from bus_tracker.api.errors import InvalidRouteError

# (latitude, longitude) in decimal degrees
Coordinate = Tuple[float, float]


def parse_coordinate(value: Any, what: str = "coordinate") -> Coordinate:
    """Turn a ``[lat, lon]`` pair into a ``Coordinate``."""
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidRouteError(f"{what} must be a [lat, lon] pair, got {value!r}")
    lat, lon = value
    for part in (lat, lon):
        if isinstance(part, bool) or not isinstance(part, Real):
            raise InvalidRouteError(f"{what} must contain numbers, got {value!r}")
    return float(lat), float(lon)


@dataclass(frozen=True)
class Stop:
    """A named stop on a bus route."""

    name: str
    coordinates: Coordinate

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stop":
        if not isinstance(data, dict):
            raise InvalidRouteError(f"stop must be an object, got {data!r}")
        name = data.get("name")
        if not name or not isinstance(name, str):
            raise InvalidRouteError("stop is missing a name")
        coords = parse_coordinate(data.get("coordinates"), f"coordinates of stop {name!r}")
        return cls(name=name, coordinates=coords)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "coordinates": list(self.coordinates),
        }


@dataclass(frozen=True)
class Route:
    """A bus route: its drawn path and its ordered stops."""

    name: str
    path: Tuple[Coordinate, ...]
    stops: Tuple[Stop, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Route":
        """Build a route from the ``{name, path, stops}`` JSON shape.

        Raises:
            InvalidRouteError: If a required field is missing or malformed
        """
        if not isinstance(data, dict):
            raise InvalidRouteError("route data must be an object")

        name = data.get("name")
        stops = data.get("stops")
        path = data.get("path")
        if not name or not isinstance(stops, list) or not isinstance(path, list):
            raise InvalidRouteError("route data is missing name, stops or path")

        parsed_stops = tuple(Stop.from_dict(s) for s in stops)
        if len({s.name for s in parsed_stops}) != len(parsed_stops):
            raise InvalidRouteError("stop names must be unique within a route")

        return cls(
            name=str(name),
            path=tuple(parse_coordinate(p, f"path point {i}") for i, p in enumerate(path)),
            stops=parsed_stops,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": [list(p) for p in self.path],
            "stops": [s.to_dict() for s in self.stops],
        }


@dataclass(frozen=True)
class ProgressResult:
    """Where a rider is on a route, recomputed from scratch for every fix."""

    closest_point: Coordinate
    next_stop: Optional[Stop]
    upcoming_stops: Tuple[Stop, ...]
    passed_stops: FrozenSet[str]

    def to_dict(self, stop_order: Optional[Sequence[Stop]] = None) -> dict:
        # Sets have no order; emit passed names in route order when we know it
        if stop_order is not None:
            passed = [s.name for s in stop_order if s.name in self.passed_stops]
        else:
            passed = sorted(self.passed_stops)
        return {
            "closest_point": list(self.closest_point),
            "next_stop": self.next_stop.to_dict() if self.next_stop else None,
            "upcoming_stops": [s.to_dict() for s in self.upcoming_stops],
            "passed_stops": passed,
        }


@dataclass(frozen=True)
class SimulatedFix:
    """A single simulated position reading."""

    coordinates: Coordinate
    speed_meters_per_second: float
    timestamp: float  # epoch seconds

    def to_dict(self) -> dict:
        return {
            "coordinates": list(self.coordinates),
            "speed_meters_per_second": self.speed_meters_per_second,
            "timestamp": self.timestamp,
        }
