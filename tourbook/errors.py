"""
Booking error taxonomy.

Every error carries the HTTP status it maps to; the handlers in main.py turn
them into ``{"error": ..., "details": [...]}`` responses.
"""

from typing import Any, Dict, List, Optional


class BookingError(Exception):
    """Base class for errors raised by the booking subsystem."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BookingError):
    """Malformed or out-of-range input. ``details`` holds one entry per field."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details=None):
        super().__init__(message, details)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(details=[{"field": field, "message": message}])

    @classmethod
    def from_pydantic(cls, errors) -> "ValidationError":
        """Build from ``pydantic.ValidationError.errors()`` or FastAPI's RequestValidationError.errors()"""
        details = []
        for error in errors:
            # FastAPI prefixes body errors with "body"
            location = [str(part) for part in error.get("loc", ()) if part != "body"]
            details.append({
                "field": ".".join(location) or None,
                "message": error.get("msg", "Invalid value"),
            })
        return cls(details=details)


class NotFoundError(BookingError):
    status_code = 404


class ConflictError(BookingError):
    """The requested calendar date is already occupied."""

    status_code = 409


class PersistenceError(BookingError):
    """The store rejected a read or write. The message never carries storage detail."""

    status_code = 500


class NotificationError(BookingError):
    """An e-mail could not be sent. Logged only, never returned to clients."""

    status_code = 502


class UnauthorizedError(BookingError):
    """Missing or wrong bearer secret on a protected endpoint."""

    status_code = 401
