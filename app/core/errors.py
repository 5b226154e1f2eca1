"""
Application error taxonomy.

Services raise these; the exception handlers in app.main turn them into the
standard response envelope. Each class carries its HTTP status and the
machine-readable code put in ``error.code``.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error."

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed."


class UnauthorizedError(AppError):
    """Missing or invalid credential."""
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Authentication required."


class ForbiddenError(AppError):
    """Wrong role, or not allowed on this side of a contract."""
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Insufficient permissions."


class NotFoundError(AppError):
    """Resource absent, or filtered away by ownership."""
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."


class ConflictError(AppError):
    """Duplicate unique field, or a record not in the required status."""
    status_code = 409
    code = "CONFLICT"
    default_message = "Request conflicts with the current state."


class InternalError(AppError):
    """Unexpected storage or runtime fault."""
