# bus_tracker/routes/websocket/__init__.py
"""WebSocket route handlers initialization."""

import logging

from bus_tracker.api.services.tracker_service import get_tracker_session
from bus_tracker.routes import NAMESPACE

from .callback_helpers import wire_tracker_callbacks
from .connection import ConnectionHandler
from .simulation import SimulationHandler

logger = logging.getLogger(__name__)


def register_websocket_handlers(socketio, get_session=get_tracker_session):
    """Register all WebSocket event handlers with SocketIO.

    Args:
        socketio: Flask-SocketIO instance
        get_session: Returns the TrackerSession the handlers operate on
    """
    logger.info("Registering WebSocket handlers...")

    try:
        connection_handler = ConnectionHandler(socketio, get_session, NAMESPACE)
        simulation_handler = SimulationHandler(socketio, get_session, NAMESPACE)

        logger.info(f"Registering connection handler for namespace: {NAMESPACE}")
        connection_handler.register_handlers()

        logger.info(f"Registering simulation handler for namespace: {NAMESPACE}")
        simulation_handler.register_handlers()

        wire_tracker_callbacks(socketio, get_session(), NAMESPACE)

        logger.info("WebSocket handlers registered successfully")

    except Exception as e:
        logger.error(f"Failed to register WebSocket handlers: {e}")
        logger.exception("WebSocket registration error:")
        raise


__all__ = ['register_websocket_handlers', 'NAMESPACE']
