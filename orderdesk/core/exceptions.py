"""
Application Error Taxonomy

Every failure that can reach a client is one of these classes. Each carries
the HTTP status it maps to, a stable machine-readable code and a message that
is safe to show to the caller. The FastAPI exception handlers in
``orderdesk.main`` render them into the standard response envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, data: Any = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class Unauthenticated(AppError):
    """Missing, invalid or expired credentials, or an inactive identity."""
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class Forbidden(AppError):
    """Authenticated, but not allowed to perform the operation."""
    status_code = 403
    code = "forbidden"
    default_message = "Insufficient permissions"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"

    @classmethod
    def for_resource(cls, resource: str, resource_id: Any = None) -> "NotFound":
        if resource_id is None:
            return cls(f"{resource} not found")
        return cls(f"{resource} #{resource_id} not found")


class Conflict(AppError):
    """Duplicate registration or a concurrent modification."""
    status_code = 409
    code = "conflict"
    default_message = "Resource conflict"


class InvalidTransition(AppError):
    """Order status change not allowed by the transition table."""
    status_code = 409
    code = "invalid_transition"
    default_message = "Status transition not allowed"


class RateLimited(AppError):
    status_code = 429
    code = "rate_limited"
    default_message = "Too many requests. Please try again later."


class ServerMisconfigured(AppError):
    status_code = 500
    code = "server_misconfigured"
    default_message = "Server configuration error"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"
    default_message = "An unexpected error occurred"
