"""Domain error taxonomy.

Services raise these; ``eventcraft.main`` translates them into a JSON body of
the form ``{"error": {"category": ..., "message": ...}}`` at the request
boundary.
"""


class EventCraftError(Exception):
    """Base class for errors that map onto an HTTP response."""

    category = "internal"
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"error": {"category": self.category, "message": self.message}}


class ValidationFailedError(EventCraftError):
    """Malformed or missing input."""

    category = "validation"
    status_code = 400


class AuthenticationError(EventCraftError):
    """Missing or invalid credentials."""

    category = "authentication"
    status_code = 401


class ForbiddenError(EventCraftError):
    """Authenticated, but not permitted."""

    category = "authorization"
    status_code = 403


class NotFoundError(EventCraftError):
    """Referenced entity is absent or not visible to the caller."""

    category = "not_found"
    status_code = 404


class ConflictError(EventCraftError):
    """Uniqueness violation."""

    category = "conflict"
    status_code = 409


class PayloadTooLargeError(EventCraftError):
    category = "validation"
    status_code = 413


class UpstreamServiceError(EventCraftError):
    """An external service failed or returned unusable data."""

    category = "upstream"
    status_code = 502


class ServiceUnavailableError(EventCraftError):
    """A required external integration is not configured."""

    category = "unavailable"
    status_code = 503
