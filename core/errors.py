"""
Typed error taxonomy shared by every service.

Services raise AppError subclasses. The HTTP layer maps ErrorKind to a
status code and error code in one place (api/errors.py), so nothing
upstream inspects message text.
"""

from enum import Enum


class ErrorKind(Enum):
    """Transport-independent failure categories."""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    INTERNAL = "internal"


class AppError(Exception):
    """Base class for all expected, caller-visible failures."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "An internal error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthenticatedError(AppError):
    """Missing, invalid or expired credentials. Client must (re)authenticate."""

    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Authentication required"


class ForbiddenError(AppError):
    """
    Valid credentials, but not allowed.

    Always carries a generic message so callers cannot tell which check
    failed (wrong principal type, inactive account, or not the owner).
    """

    kind = ErrorKind.FORBIDDEN
    default_message = "Access denied"


class NotFoundError(AppError):
    """Resource absent, or present but not visible to the caller."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    """Request conflicts with current state (duplicate email, last admin)."""

    kind = ErrorKind.CONFLICT
    default_message = "Request conflicts with current state"


class ValidationError(AppError):
    """Well-formed request with semantically invalid content."""

    kind = ErrorKind.VALIDATION
    default_message = "Invalid request"


class InternalError(AppError):
    """Infrastructure failure. Details are logged, never returned."""

    kind = ErrorKind.INTERNAL
