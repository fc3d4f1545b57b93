# bus_tracker/api/services/simulator.py
"""Synthetic bus position along a route path, advanced on a fixed tick."""

import logging
import random
import threading
import time
from enum import Enum
from numbers import Real
from typing import Callable, List, Optional

from bus_tracker.api.config import get_simulation_config
from bus_tracker.api.errors import InvalidRouteError
from bus_tracker.api.models import Coordinate, Route, SimulatedFix

logger = logging.getLogger(__name__)

FixCallback = Callable[[Optional[SimulatedFix]], None]


class SimulatorState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class PositionSimulator:
    """Moves a virtual bus along ``route.path``, looping at the end.

    Speed is the fraction of the current segment covered per tick, so long
    segments take as many ticks as short ones. Observers get every fix via
    ``subscribe``; ``None`` is pushed when the simulation stops.
    """

    def __init__(self, config: Optional[dict] = None, rng: Optional[random.Random] = None):
        self.config = config or get_simulation_config()
        self.rng = rng or random.Random()

        self.state = SimulatorState.IDLE
        self.error: Optional[str] = None

        self._path: List[Coordinate] = []
        self._segment_index = 0
        self._segment_progress = 0.0
        self._speed = 0.0
        self._fix: Optional[SimulatedFix] = None

        self._subscribers: List[FixCallback] = []

        # Serializes start/stop/tick so ticks never overlap
        self._lock = threading.RLock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------ #
    # Observers
    # ------------------------------------------------------------------ #
    def subscribe(self, callback: FixCallback) -> Callable[[], None]:
        """Register ``callback`` for every new fix. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, fix: Optional[SimulatedFix]) -> None:
        self._fix = fix
        for callback in list(self._subscribers):
            try:
                callback(fix)
            except Exception as exc:
                logger.exception("Fix subscriber failed: %s", exc)

    # ------------------------------------------------------------------ #
    # Read-only state
    # ------------------------------------------------------------------ #
    @property
    def current_fix(self) -> Optional[SimulatedFix]:
        return self._fix

    @property
    def is_running(self) -> bool:
        return self.state is SimulatorState.RUNNING

    @property
    def segment_index(self) -> int:
        return self._segment_index

    @property
    def segment_progress(self) -> float:
        return self._segment_progress

    @property
    def speed(self) -> float:
        return self._speed

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def start(self, route: Route, speed: Optional[float] = None, auto_tick: bool = True) -> None:
        """Start simulating ``route``, replacing any running simulation.

        Args:
            route: Route whose path is followed
            speed: Fraction of a segment per tick; drawn at random when omitted
            auto_tick: Run the background tick thread. Tests step with ``tick()``.

        Raises:
            InvalidRouteError: If the path has fewer than two points
        """
        self.stop()

        with self._lock:
            if route is None or len(route.path) < 2:
                self.error = "Invalid route for simulation."
                logger.warning("Refusing to simulate route without at least two path points")
                raise InvalidRouteError(self.error)

            if speed is None:
                speed = self.rng.uniform(
                    self.config["speed_min"],
                    self.config["speed_min"] + self.config["speed_span"],
                )
            if isinstance(speed, bool) or not isinstance(speed, Real):
                raise ValueError(f"Simulation speed must be a number, got {speed!r}")
            if not 0 < speed < 1:
                raise ValueError("Simulation speed must be between 0 and 1 (exclusive)")

            self.error = None
            self._path = list(route.path)
            self._segment_index = 0
            self._segment_progress = 0.0
            self._speed = speed
            self.state = SimulatorState.RUNNING

            logger.info("Simulating route %s (%d points) at speed %.6f",
                        route.name, len(self._path), speed)
            self._publish(self._make_fix(self._path[0]))

            if auto_tick:
                self._stop_event = threading.Event()
                self._thread = threading.Thread(
                    target=self._tick_loop,
                    args=(self._stop_event,),
                    name="position-simulator",
                    daemon=True,
                )
                self._thread.start()

    def stop(self) -> None:
        """Stop ticking and clear the current fix. Safe to call repeatedly."""
        with self._lock:
            event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None
            if event is not None:
                event.set()

            was_running = self.state is SimulatorState.RUNNING
            self.state = SimulatorState.IDLE
            if was_running or self._fix is not None:
                self._publish(None)

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.config["tick_interval"] * 5))
            if was_running:
                logger.info("Simulation stopped")

    def _tick_loop(self, stop_event: threading.Event) -> None:
        interval = self.config["tick_interval"]
        while not stop_event.wait(interval):
            with self._lock:
                # A newer start/stop owns the simulator now
                if stop_event.is_set():
                    return
                self.tick()

    # ------------------------------------------------------------------ #
    # Stepping
    # ------------------------------------------------------------------ #
    def tick(self) -> Optional[SimulatedFix]:
        """Advance one tick and publish the interpolated fix."""
        with self._lock:
            if self.state is not SimulatorState.RUNNING:
                return None

            if self._segment_index >= len(self._path) - 1:
                self._segment_index = 0
                self._segment_progress = 0.0

            # A finished segment rolls straight into the next one within this tick
            while True:
                self._segment_progress += self._speed
                if self._segment_progress < 1:
                    break
                self._segment_progress = 0.0
                self._segment_index += 1
                if self._segment_index >= len(self._path) - 1:
                    self._segment_index = 0

            start = self._path[self._segment_index]
            end = self._path[self._segment_index + 1]
            fix = self._make_fix(interpolate(start, end, self._segment_progress))
            self._publish(fix)
            return fix

    def _make_fix(self, coords: Coordinate) -> SimulatedFix:
        return SimulatedFix(
            coordinates=coords,
            speed_meters_per_second=self.config["reported_speed_mps"],
            timestamp=time.time(),
        )


def interpolate(start: Coordinate, end: Coordinate, fraction: float) -> Coordinate:
    """Linear interpolation of latitude and longitude independently."""
    return (
        start[0] + (end[0] - start[0]) * fraction,
        start[1] + (end[1] - start[1]) * fraction,
    )


__all__ = ['PositionSimulator', 'SimulatorState', 'interpolate']
