import random
import threading

import pytest

from bus_tracker.api.errors import InvalidRouteError
from bus_tracker.api.models import Route
from bus_tracker.api.services.simulator import PositionSimulator, SimulatorState, interpolate

STRAIGHT = Route(name="Straight", path=((0.0, 0.0), (0.0, 10.0)))
BENT = Route(name="Bent", path=((0.0, 0.0), (0.0, 10.0), (10.0, 10.0)))


def test_single_point_route_is_rejected(simulator):
    with pytest.raises(InvalidRouteError):
        simulator.start(Route(name="Dot", path=((0.0, 0.0),)))

    assert simulator.state is SimulatorState.IDLE
    assert simulator.current_fix is None
    assert simulator.error


def test_start_emits_first_path_point(simulator):
    simulator.start(STRAIGHT, speed=0.5, auto_tick=False)

    assert simulator.state is SimulatorState.RUNNING
    assert simulator.current_fix.coordinates == (0.0, 0.0)
    assert simulator.current_fix.speed_meters_per_second == 10.0


def test_tick_interpolates_linearly(simulator):
    simulator.start(STRAIGHT, speed=0.5, auto_tick=False)
    fix = simulator.tick()

    assert fix.coordinates == (0.0, 5.0)
    assert simulator.current_fix is fix


def test_progress_increases_then_wraps(simulator):
    simulator.start(STRAIGHT, speed=0.25, auto_tick=False)

    seen = []
    for _ in range(3):
        simulator.tick()
        seen.append(simulator.segment_progress)
    assert seen == [0.25, 0.5, 0.75]

    # Completing the only segment wraps to the start and advances within the same tick
    fix = simulator.tick()
    assert simulator.segment_index == 0
    assert simulator.segment_progress == 0.25
    assert fix.coordinates == (0.0, 2.5)


def test_finished_segment_rolls_into_next_one(simulator):
    simulator.start(BENT, speed=0.5, auto_tick=False)
    simulator.tick()
    fix = simulator.tick()

    assert simulator.segment_index == 1
    assert fix.coordinates == (5.0, 10.0)


def test_stop_clears_fix_and_is_idempotent(simulator):
    received = []
    simulator.subscribe(received.append)
    simulator.start(STRAIGHT, speed=0.5, auto_tick=False)

    simulator.stop()
    simulator.stop()

    assert simulator.current_fix is None
    assert simulator.state is SimulatorState.IDLE
    assert received[-1] is None
    assert received.count(None) == 1
    assert simulator.tick() is None


def test_unsubscribe(simulator):
    received = []
    unsubscribe = simulator.subscribe(received.append)
    simulator.start(STRAIGHT, speed=0.5, auto_tick=False)
    unsubscribe()
    simulator.tick()

    assert len(received) == 1


def test_random_speed_within_configured_range(sim_config):
    sim = PositionSimulator(config=sim_config, rng=random.Random(7))
    sim.start(STRAIGHT, auto_tick=False)

    assert sim_config["speed_min"] <= sim.speed < sim_config["speed_min"] + sim_config["speed_span"]
    sim.stop()


def test_speed_must_be_a_fraction(simulator):
    with pytest.raises(ValueError):
        simulator.start(STRAIGHT, speed=1.5, auto_tick=False)


@pytest.mark.parametrize("speed", ["0.5", True, [0.5]])
def test_speed_must_be_a_number(simulator, speed):
    with pytest.raises(ValueError):
        simulator.start(STRAIGHT, speed=speed, auto_tick=False)
    assert simulator.state is SimulatorState.IDLE


def _simulator_threads():
    return [t for t in threading.enumerate() if t.name == "position-simulator"]


def test_background_ticks_and_restart_keeps_one_thread(simulator):
    moved = threading.Event()

    def on_fix(fix):
        if fix is not None and fix.coordinates != (0.0, 0.0):
            moved.set()

    simulator.subscribe(on_fix)
    simulator.start(STRAIGHT, speed=0.1)
    simulator.start(STRAIGHT, speed=0.1)

    assert len(_simulator_threads()) == 1
    assert moved.wait(2.0)

    simulator.stop()
    assert _simulator_threads() == []


def test_interpolate_midpoint():
    assert interpolate((0.0, 0.0), (0.0, 10.0), 0.5) == (0.0, 5.0)
