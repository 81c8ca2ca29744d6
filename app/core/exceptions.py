"""
Error taxonomy for the attendance core.

Every error raised by the engines is an ``AttendanceError`` carrying a stable
``kind`` and an HTTP status; the API layer renders them verbatim.
"""

from typing import Optional


class AttendanceError(Exception):
    """Base class for all errors surfaced by the attendance core."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "field": self.field}


class ValidationError(AttendanceError):
    """Missing or malformed input, invalid ranges, missing adjustment reason."""

    kind = "validation"
    status_code = 400


class AuthenticationError(AttendanceError):
    """Invalid PIN or a token the Actor Gateway could not resolve."""

    kind = "authentication"
    status_code = 401


class AuthorizationError(AttendanceError):
    """The actor does not own the target entity."""

    kind = "authorization"
    status_code = 403


class NotFoundError(AttendanceError):
    """Unknown id, or no open record to close."""

    kind = "not_found"
    status_code = 404


class ConflictError(AttendanceError):
    """The requested transition conflicts with the current state."""

    kind = "conflict"
    status_code = 409


class StorageError(AttendanceError):
    """Transient persistence failure."""

    kind = "storage"
    status_code = 500


class GatewayError(AttendanceError):
    """The external Actor Gateway could not be reached."""

    kind = "gateway"
    status_code = 502
