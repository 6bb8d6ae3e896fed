"""
Error taxonomy for the event service.

Every error carries the HTTP status it maps to; the application's exception
handlers render them as ``{"message": ...}``.
"""


class AuditServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(AuditServiceError):
    """Malformed request body or event identifier."""

    status_code = 400
    default_message = "Bad request"


class NotFound(AuditServiceError):
    """No event with the requested identifier."""

    status_code = 404
    default_message = "Event not found"


class DuplicateKey(AuditServiceError):
    """The identifier assigned on insert already exists."""

    status_code = 400
    default_message = "Event with this Id already exists"


class StoreError(AuditServiceError):
    """Any other failure reported by the backing store."""

    status_code = 500
    default_message = "Database error"
