"""
Domain errors raised by the scouting services.

Each error carries a stable ``code`` and the HTTP status the API layer
renders it with, so services never import DRF.
"""


class ScoutingError(Exception):
    """Base class for scouting failures."""

    code = 'SCOUTING_ERROR'
    http_status = 400

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ScoutingValidationError(ScoutingError):
    code = 'VALIDATION_ERROR'
    http_status = 400


class SessionPermissionError(ScoutingError):
    """The actor's role does not allow the requested transition."""
    code = 'FORBIDDEN'
    http_status = 403


class ResourceNotFound(ScoutingError):
    code = 'NOT_FOUND'
    http_status = 404


class InvalidTransition(ScoutingError):
    """Raised when a session status change is not an edge of the lifecycle graph."""
    code = 'INVALID_TRANSITION'
    http_status = 409


class VersionConflict(ScoutingError):
    """The caller's version no longer matches the stored row."""
    code = 'VERSION_CONFLICT'
    http_status = 409


class IdempotencyMismatch(ScoutingError):
    """A client request id was reused for a different operation."""
    code = 'IDEMPOTENCY_MISMATCH'
    http_status = 409


class PhotoConflict(ScoutingError):
    code = 'PHOTO_CONFLICT'
    http_status = 409
