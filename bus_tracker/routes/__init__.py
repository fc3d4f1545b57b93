# bus_tracker/routes/__init__.py
"""HTTP blueprint and Socket.IO handlers for the tracker."""

NAMESPACE = "/tracker/ws"
