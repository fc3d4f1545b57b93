# bus_tracker/routes/tracker.py
"""Tracker routes and blueprint configuration."""

import logging

from flask import Blueprint, jsonify, request

from bus_tracker.api.errors import ExternalServiceError, InvalidRouteError
from bus_tracker.api.models import Route, parse_coordinate
from bus_tracker.api.services.tracker_service import get_tracker_session

logger = logging.getLogger(__name__)


def create_tracker_blueprint(get_session=get_tracker_session):
    """Create and configure the tracker blueprint.

    Args:
        get_session: Returns the TrackerSession the routes operate on

    Returns:
        Configured Flask Blueprint
    """
    tracker_bp = Blueprint("tracker", __name__, url_prefix="/tracker")

    @tracker_bp.errorhandler(InvalidRouteError)
    def invalid_route(e):
        return jsonify({"error": str(e), "kind": "invalid_route"}), 422

    @tracker_bp.errorhandler(ExternalServiceError)
    def external_failure(e):
        return jsonify({"error": str(e), "kind": "external_service"}), 502

    @tracker_bp.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @tracker_bp.route("/api/route", methods=["GET", "POST", "PUT"])
    def api_route():
        """Search, load or retrieve the active route."""
        tracker = get_session()

        if request.method == "POST":
            data = request.get_json(silent=True) or {}
            query = data.get("query")
            if not query or not isinstance(query, str):
                return jsonify({"error": "query is required"}), 400

            route = tracker.search_route(query, start_simulation=bool(data.get("start", True)))
            return jsonify(route.to_dict())

        if request.method == "PUT":
            route = Route.from_dict(request.get_json(silent=True))
            tracker.set_route(route)
            return jsonify(route.to_dict())

        if tracker.route is None:
            return jsonify({"error": "No active route"}), 404
        return jsonify(tracker.route.to_dict())

    @tracker_bp.route("/api/progress", methods=["POST"])
    def api_progress():
        """Compute progress for a coordinate on the active (or an inline) route."""
        tracker = get_session()
        data = request.get_json(silent=True) or {}

        coords = parse_coordinate(data.get("coordinates"), "coordinates")
        route = Route.from_dict(data["route"]) if "route" in data else None
        try:
            return jsonify(tracker.compute_progress_for(coords, route))
        except LookupError as e:
            return jsonify({"error": str(e)}), 404

    @tracker_bp.route("/api/simulation/start", methods=["POST"])
    def api_simulation_start():
        tracker = get_session()
        data = request.get_json(silent=True) or {}
        tracker.start_simulation(speed=data.get("speed"))
        return jsonify(tracker.snapshot()["simulation"])

    @tracker_bp.route("/api/simulation/stop", methods=["POST"])
    def api_simulation_stop():
        tracker = get_session()
        tracker.stop_simulation()
        return jsonify(tracker.snapshot()["simulation"])

    @tracker_bp.route("/api/state")
    def api_state():
        return jsonify(get_session().snapshot())

    @tracker_bp.route("/api/chat", methods=["POST"])
    def api_chat():
        data = request.get_json(silent=True) or {}
        message = data.get("message")
        if not message or not isinstance(message, str):
            return jsonify({"error": "message is required"}), 400

        reply = get_session().chat(message)
        return jsonify({"reply": reply})

    @tracker_bp.route("/health")
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok", "service": "tracker"})

    return tracker_bp


__all__ = ['create_tracker_blueprint']
