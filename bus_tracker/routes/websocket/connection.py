# bus_tracker/routes/websocket/connection.py
"""WebSocket connection and disconnection handlers."""

import time
import logging

from .base import BaseWebSocketHandler

logger = logging.getLogger(__name__)


class ConnectionHandler(BaseWebSocketHandler):
    """Handles WebSocket connection lifecycle events."""

    def register_handlers(self):
        """Register connection-related event handlers."""

        @self.socketio.on('connect', namespace=self.namespace)
        def handle_connect(auth=None):
            """Send the current tracker state to a new client."""
            self.log_event('connect')
            try:
                self.emit_to_client('connected', {
                    'status': 'connected',
                    'state': self.get_session().snapshot(),
                })
            except Exception as e:
                self.handle_error(e, 'connect')

        @self.socketio.on('disconnect', namespace=self.namespace)
        def handle_disconnect(*args):
            self.log_event('disconnect')

        @self.socketio.on('ping', namespace=self.namespace)
        def handle_ping():
            """Handle ping for connection testing."""
            self.emit_to_client('pong', {'timestamp': time.time()})
