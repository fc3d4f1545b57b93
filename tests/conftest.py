import pytest

from bus_tracker.api.models import Route, Stop
from bus_tracker.api.services.simulator import PositionSimulator
from bus_tracker.api.services.tracker_service import TrackerSession

SIM_CONFIG = {
    "tick_interval": 0.01,
    "speed_min": 0.00005,
    "speed_span": 0.0001,
    "reported_speed_mps": 10.0,
}


@pytest.fixture
def abc_route():
    return Route(
        name="Line ABC",
        path=((0.0, 0.0), (0.0, 1.0), (0.0, 2.0)),
        stops=(
            Stop("A", (0.0, 0.0)),
            Stop("B", (0.0, 1.0)),
            Stop("C", (0.0, 2.0)),
        ),
    )


@pytest.fixture
def sim_config():
    return dict(SIM_CONFIG)


@pytest.fixture
def simulator(sim_config):
    sim = PositionSimulator(config=sim_config)
    yield sim
    sim.stop()


class FakeServices:
    """Stand-ins for the language-model calls, recording what was asked."""

    def __init__(self):
        self.routes = {}
        self.announced = []
        self.chats = []
        self.announce_error = None

    def lookup(self, query):
        return self.routes[query]

    def announce(self, stop_name):
        self.announced.append(stop_name)
        if self.announce_error is not None:
            raise self.announce_error
        return f"Next stop: {stop_name}"

    def chat(self, message, route, next_stop):
        self.chats.append((message, route, next_stop))
        return f"echo: {message}"


@pytest.fixture
def services():
    return FakeServices()


@pytest.fixture
def events():
    return []


@pytest.fixture
def session(simulator, services, events):
    tracker = TrackerSession(
        simulator=simulator,
        route_lookup=services.lookup,
        announcer=services.announce,
        chat_responder=services.chat,
        stop_radius_m=50,
        run_in_background=lambda fn: fn(),
    )
    tracker.subscribe(lambda event, data: events.append((event, data)))
    return tracker
