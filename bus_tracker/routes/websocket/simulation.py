# bus_tracker/routes/websocket/simulation.py
"""WebSocket handlers for route search, simulation control and chat."""

import logging

from bus_tracker.api.errors import BusTrackerError

from .base import BaseWebSocketHandler

logger = logging.getLogger(__name__)


class SimulationHandler(BaseWebSocketHandler):
    """Handles tracker control events from the browser."""

    def register_handlers(self):
        """Register tracker-related event handlers."""

        @self.socketio.on("search_route", namespace=self.namespace)
        def handle_search_route(data):
            """Look up a route; the new route is broadcast through the tracker."""
            query = (data or {}).get("query")
            if not query:
                self.emit_to_client("error", {"message": "query is required", "event": "search_route"})
                return

            self.log_event("search_route", {"query": query})
            try:
                self.get_session().search_route(query)
            except (BusTrackerError, ValueError) as exc:
                self.handle_error(exc, "search_route")

        @self.socketio.on("start_simulation", namespace=self.namespace)
        def handle_start_simulation(data=None):
            try:
                self.get_session().start_simulation(speed=(data or {}).get("speed"))
            except (BusTrackerError, ValueError) as exc:
                self.handle_error(exc, "start_simulation")

        @self.socketio.on("stop_simulation", namespace=self.namespace)
        def handle_stop_simulation(data=None):
            self.get_session().stop_simulation()

        @self.socketio.on("chat", namespace=self.namespace)
        def handle_chat(data):
            message = (data or {}).get("message")
            try:
                reply = self.get_session().chat(message)
            except (BusTrackerError, ValueError) as exc:
                self.handle_error(exc, "chat")
                return
            self.emit_to_client("chat_reply", {"message": message, "reply": reply})
