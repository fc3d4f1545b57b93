import pytest

from bus_tracker.api.errors import InvalidRouteError
from bus_tracker.api.models import Route, SimulatedFix, Stop, parse_coordinate


def test_route_from_dict():
    route = Route.from_dict({
        "name": "Ruta 2",
        "path": [[1, 2], [3.5, 4]],
        "stops": [{"name": "Norte", "coordinates": [1, 2]}],
    })

    assert route.path == ((1.0, 2.0), (3.5, 4.0))
    assert route.stops == (Stop("Norte", (1.0, 2.0)),)
    assert route.to_dict()["path"] == [[1.0, 2.0], [3.5, 4.0]]


@pytest.mark.parametrize("data", [
    None,
    {"stops": [], "path": [[0, 0], [0, 1]]},
    {"name": "X", "path": [[0, 0], [0, 1]]},
    {"name": "X", "stops": [], "path": "0,0 0,1"},
    {"name": "X", "stops": [{"coordinates": [0, 0]}], "path": [[0, 0], [0, 1]]},
    {"name": "X", "stops": [{"name": "S", "coordinates": [0]}], "path": [[0, 0], [0, 1]]},
    {"name": "X", "stops": [], "path": [[0, "north"], [0, 1]]},
    {"name": "X", "path": [[0, 0], [0, 1], [0, 2]], "stops": [
        {"name": "A", "coordinates": [0, 0]},
        {"name": "B", "coordinates": [0, 1]},
        {"name": "A", "coordinates": [0, 2]},
    ]},
])
def test_malformed_route_is_rejected(data):
    with pytest.raises(InvalidRouteError):
        Route.from_dict(data)


def test_parse_coordinate_rejects_booleans():
    with pytest.raises(InvalidRouteError):
        parse_coordinate([True, 1.0])


def test_fix_to_dict():
    fix = SimulatedFix((1.0, 2.0), 10.0, 1700000000.0)
    assert fix.to_dict() == {
        "coordinates": [1.0, 2.0],
        "speed_meters_per_second": 10.0,
        "timestamp": 1700000000.0,
    }
