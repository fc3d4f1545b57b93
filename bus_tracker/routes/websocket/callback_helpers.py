# bus_tracker/routes/websocket/callback_helpers.py
"""Helper functions for wiring tracker events to Socket.IO events."""

import logging

from bus_tracker.routes import NAMESPACE

logger = logging.getLogger(__name__)

# Tracker event name -> Socket.IO event name
FORWARDED_EVENTS = {
    "route": "route",
    "fix": "fix",
    "progress": "progress",
    "announcement": "announcement",
    "announcement_error": "error",
}


def wire_tracker_callbacks(socketio, tracker, namespace: str = NAMESPACE):
    """
    Bridges tracker events -> Socket.IO broadcasts on ``namespace``.

    Returns the unsubscribe function from the tracker.
    """

    def _forward(event: str, data) -> None:
        target = FORWARDED_EVENTS.get(event)
        if target is None:
            return
        if event == "announcement_error":
            data = {"message": data.get("message"), "source": "announcement", "stop": data.get("stop")}
        try:
            socketio.emit(target, data, namespace=namespace)
        except Exception as exc:
            logger.exception("Failed emitting %s: %s", target, exc)

    return tracker.subscribe(_forward)
