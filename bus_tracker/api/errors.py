# bus_tracker/api/errors.py
"""Error types shared by the tracker services and routes."""


class BusTrackerError(Exception):
    """Base class for tracker errors."""


class InvalidRouteError(BusTrackerError, ValueError):
    """Route data is unusable (missing fields, malformed coordinates, path too short)."""


class ExternalServiceError(BusTrackerError):
    """The language-model service failed or returned something we could not parse."""


__all__ = ['BusTrackerError', 'InvalidRouteError', 'ExternalServiceError']
