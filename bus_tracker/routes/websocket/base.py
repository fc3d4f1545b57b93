# bus_tracker/routes/websocket/base.py
"""Base WebSocket handler with common functionality."""

import logging
from flask import request
from flask_socketio import emit

from bus_tracker.routes import NAMESPACE

logger = logging.getLogger(__name__)


class BaseWebSocketHandler:
    """Base class for WebSocket handlers with common functionality."""

    def __init__(self, socketio, get_session, namespace=NAMESPACE):
        self.socketio = socketio
        self.get_session = get_session
        self.namespace = namespace

    def emit_to_client(self, event, data):
        """Emit event back to the client that sent the current message."""
        try:
            emit(event, data, namespace=self.namespace)
        except Exception as e:
            logger.error(f"Failed to emit {event}: {e}")

    def log_event(self, event_name, data=None):
        """Log WebSocket events consistently."""
        if data:
            logger.info(f"[WS] {event_name} - Client: {request.sid}, Data: {data}")
        else:
            logger.info(f"[WS] {event_name} - Client: {request.sid}")

    def handle_error(self, error, event_name=""):
        """Handle and log errors consistently."""
        logger.error(f"[WS] Error in {event_name} - Client: {request.sid}, Error: {error}")
        self.emit_to_client('error', {'message': str(error), 'event': event_name})
