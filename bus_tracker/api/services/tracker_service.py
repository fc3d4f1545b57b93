# bus_tracker/api/services/tracker_service.py
"""Tracker session: ties the active route, the simulator and progress together."""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from bus_tracker.api import llm
from bus_tracker.api.config import get_progress_config
from bus_tracker.api.errors import ExternalServiceError, InvalidRouteError
from bus_tracker.api.models import ProgressResult, Route, SimulatedFix, Stop
from bus_tracker.api.services.map_service import MapState
from bus_tracker.api.services.progress_service import RouteProgressEngine, initial_progress
from bus_tracker.api.services.simulator import PositionSimulator

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, Any], None]


def _run_in_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


class LatestRequestGuard:
    """Generation counter so only the newest request's answer is applied."""

    def __init__(self):
        self._generation = 0
        self._lock = threading.Lock()

    def next_token(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._generation


class TrackerSession:
    """Owns one active route and everything derived from it.

    The lock only guards this object's fields. It is never held while calling
    the simulator, the language model or subscribers.
    """

    def __init__(self,
                 simulator: Optional[PositionSimulator] = None,
                 route_lookup: Callable[[str], Route] = None,
                 announcer: Callable[[str], str] = None,
                 chat_responder: Callable[..., str] = None,
                 stop_radius_m: Optional[float] = None,
                 run_in_background: Callable[[Callable[[], None]], None] = _run_in_thread):
        self.simulator = simulator or PositionSimulator()
        self.route_lookup = route_lookup or llm.find_route
        self.announcer = announcer or llm.generate_stop_announcement
        self.chat_responder = chat_responder or llm.generate_chat_response
        self.stop_radius_m = (stop_radius_m if stop_radius_m is not None
                              else get_progress_config()["stop_radius_m"])
        self._run_in_background = run_in_background

        self.route: Optional[Route] = None
        self.progress: Optional[ProgressResult] = None
        self.fix: Optional[SimulatedFix] = None
        self.distance_to_next_stop_km: Optional[float] = None
        self.announcement: Optional[Dict[str, Any]] = None
        self.map_state: Optional[MapState] = None

        self._lock = threading.Lock()
        self._announcements = LatestRequestGuard()
        self._subscribers: List[EventCallback] = []

        self.simulator.subscribe(self.handle_fix)

    # ------------------------------------------------------------------ #
    # Subscribers
    # ------------------------------------------------------------------ #
    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register ``callback(event, data)``. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, event: str, data: Any) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event, data)
            except Exception as exc:
                logger.exception("Subscriber failed on %s: %s", event, exc)

    # ------------------------------------------------------------------ #
    # Route
    # ------------------------------------------------------------------ #
    def set_route(self, route: Route) -> None:
        """Make ``route`` the active route and reset all progress state.

        Raises:
            InvalidRouteError: If the path has fewer than two points
        """
        if route is None or len(route.path) < 2:
            raise InvalidRouteError("Route path needs at least two points")

        self.simulator.stop()

        progress = initial_progress(route, self.stop_radius_m)
        map_state = MapState(route)
        map_state.update(None, progress.next_stop if progress else None)

        with self._lock:
            self.route = route
            self.progress = progress
            self.fix = None
            self.distance_to_next_stop_km = None
            self.announcement = None
            self.map_state = map_state

        # Anything still in flight belongs to the previous route
        self._announcements.next_token()
        logger.info(f"Active route is now '{route.name}' ({len(route.stops)} stops)")

        self._notify("route", self.snapshot())
        if progress is not None and progress.next_stop is not None:
            self.request_announcement(progress.next_stop)

    def search_route(self, query: str, start_simulation: bool = True) -> Route:
        """Look up a route and make it active.

        Lookup failures propagate and leave the current route untouched.
        """
        if not query or not isinstance(query, str):
            raise ValueError("Invalid query parameter")

        try:
            logger.info(f"Searching route for query '{query}'")
            route = self.route_lookup(query)
        except Exception as e:
            logger.error(f"Route lookup failed: {e}")
            raise

        self.set_route(route)
        if start_simulation:
            self.start_simulation()
        return route

    # ------------------------------------------------------------------ #
    # Simulation
    # ------------------------------------------------------------------ #
    def start_simulation(self, speed: Optional[float] = None, auto_tick: bool = True) -> None:
        with self._lock:
            route = self.route
        if route is None:
            raise InvalidRouteError("No active route to simulate")
        self.simulator.start(route, speed=speed, auto_tick=auto_tick)

    def stop_simulation(self) -> None:
        self.simulator.stop()

    def handle_fix(self, fix: Optional[SimulatedFix]) -> None:
        """Simulator callback: recompute progress once for each new fix."""
        with self._lock:
            route = self.route
        if route is None:
            return

        if fix is None:
            with self._lock:
                self.fix = None
                if self.map_state is not None:
                    self.map_state.update(None, self.progress.next_stop if self.progress else None)
            self._notify("fix", None)
            return

        progress = RouteProgressEngine.compute_progress(fix.coordinates, route, self.stop_radius_m)
        distance = RouteProgressEngine.distance_to_next_stop_km(fix.coordinates, route, self.stop_radius_m)

        with self._lock:
            if self.route is not route:
                # Route replaced while we were computing
                return
            previous = self.progress.next_stop if self.progress else None
            self.fix = fix
            self.progress = progress
            self.distance_to_next_stop_km = distance
            if self.map_state is not None:
                self.map_state.update(fix, progress.next_stop)

        self._notify("fix", fix.to_dict())
        self._notify("progress", self._progress_payload(route, progress, distance))

        if progress.next_stop is not None and progress.next_stop != previous:
            logger.info(f"Next stop changed to '{progress.next_stop.name}'")
            self.request_announcement(progress.next_stop)

    # ------------------------------------------------------------------ #
    # Language model calls
    # ------------------------------------------------------------------ #
    def request_announcement(self, stop: Stop) -> int:
        """Fetch an announcement for ``stop`` without blocking.

        Returns:
            The request token; only the latest token's result is applied
        """
        token = self._announcements.next_token()

        def work():
            try:
                text = self.announcer(stop.name)
            except ExternalServiceError as exc:
                logger.error(f"Announcement for '{stop.name}' failed: {exc}")
                if self._announcements.is_current(token):
                    self._notify("announcement_error", {"stop": stop.name, "message": str(exc)})
                return

            with self._lock:
                if not self._announcements.is_current(token):
                    logger.debug(f"Discarding stale announcement for '{stop.name}'")
                    return
                self.announcement = {"stop": stop.name, "text": text, "timestamp": time.time()}
                announcement = dict(self.announcement)
            self._notify("announcement", announcement)

        self._run_in_background(work)
        return token

    def chat(self, message: str) -> str:
        """Answer a rider's question in the context of the current trip."""
        if not message or not isinstance(message, str):
            raise ValueError("Invalid message parameter")

        with self._lock:
            route = self.route
            next_stop = self.progress.next_stop if self.progress else None
        return self.chat_responder(message, route, next_stop)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #
    def compute_progress_for(self, coords, route: Optional[Route] = None) -> Dict[str, Any]:
        """Progress payload for arbitrary coordinates, without touching session state."""
        if route is None:
            with self._lock:
                route = self.route
        if route is None:
            raise LookupError("No active route")
        progress = RouteProgressEngine.compute_progress(coords, route, self.stop_radius_m)
        distance = RouteProgressEngine.distance_to_next_stop_km(coords, route, self.stop_radius_m)
        return self._progress_payload(route, progress, distance)

    @staticmethod
    def _progress_payload(route: Route, progress: ProgressResult,
                          distance: Optional[float]) -> Dict[str, Any]:
        payload = progress.to_dict(route.stops)
        payload["distance_to_next_stop_km"] = distance
        return payload

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            route = self.route
            progress = self.progress
            return {
                "route": route.to_dict() if route else None,
                "fix": self.fix.to_dict() if self.fix else None,
                "progress": (self._progress_payload(route, progress, self.distance_to_next_stop_km)
                             if route and progress else None),
                "announcement": dict(self.announcement) if self.announcement else None,
                "map": self.map_state.to_dict() if self.map_state else None,
                "simulation": {
                    "state": self.simulator.state.value,
                    "error": self.simulator.error,
                },
            }


# Global tracker session instance
_tracker_session = None


def get_tracker_session() -> TrackerSession:
    """Get the global TrackerSession instance."""
    global _tracker_session
    if _tracker_session is None:
        _tracker_session = TrackerSession()
    return _tracker_session


def reset_tracker_session(session: Optional[TrackerSession] = None) -> None:
    """Replace the global session (tests, or a full reset)."""
    global _tracker_session
    if _tracker_session is not None:
        _tracker_session.stop_simulation()
    _tracker_session = session


__all__ = ['TrackerSession', 'LatestRequestGuard', 'get_tracker_session', 'reset_tracker_session']
