"""
Bus Tracker – main application entry point

* Flask app + Socket.IO (threading mode); the simulator tick thread pushes
  fixes and progress to every browser on the `/tracker/ws` namespace.
* No eventlet/gevent required.
"""

import os
import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from dotenv import load_dotenv

# --------------------------------------------------------------------------- #
# Environment & logging
# --------------------------------------------------------------------------- #
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

from bus_tracker.api.config import get_port, get_websocket_config, validate_simulation_config  # noqa: E402
from bus_tracker.routes.tracker import create_tracker_blueprint  # noqa: E402
from bus_tracker.routes.websocket import register_websocket_handlers  # noqa: E402


def create_app():
    """Build the Flask app and its Socket.IO server."""
    validate_simulation_config()

    app = Flask(__name__)

    flask_secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(32).hex()
    if "FLASK_SECRET_KEY" not in os.environ:
        logger.warning("No FLASK_SECRET_KEY found. Generated a temporary key.")
    app.secret_key = flask_secret_key

    ws_config = get_websocket_config()

    # CORS for local dev / cross‑origin front‑end requests
    CORS(app, origins=ws_config["cors_allowed_origins"], supports_credentials=True)

    socketio = SocketIO(
        app,
        cors_allowed_origins=ws_config["cors_allowed_origins"],
        async_mode="threading",
        ping_interval=ws_config["ping_interval"],
        ping_timeout=ws_config["ping_timeout"],
        logger=False,
        engineio_logger=False,
    )
    logger.info("Socket.IO initialised (async_mode=threading)")

    app.register_blueprint(create_tracker_blueprint())
    register_websocket_handlers(socketio)

    @app.route("/debug")
    def debug():
        """Simple JSON health endpoint."""
        return {
            "status": "ok",
            "socketio_initialized": True,
            "endpoints": {
                "health": "/tracker/health",
                "websocket_namespace": "/tracker/ws",
            },
        }

    return app, socketio


app, socketio = create_app()

# --------------------------------------------------------------------------- #
# Local development runner ( `python main.py` )
# --------------------------------------------------------------------------- #
if __name__ == "__main__":
    port = get_port()
    logger.info("Starting bus tracker on http://localhost:%d", port)
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)

__all__ = ["app", "socketio", "create_app"]
