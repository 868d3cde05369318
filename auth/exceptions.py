"""Typed exceptions for auth failures."""

from core.errors import AppError, ErrorKind, UnauthenticatedError


class AuthError(UnauthenticatedError):
    """Base class for authentication failures."""


class InvalidTokenError(AuthError):
    """
    Token is malformed, expired, wrongly signed, or from another issuer.

    The reason is deliberately not distinguished to the caller.
    Used for access, refresh and password reset tokens.
    """

    default_message = "Invalid or expired token"


class InvalidCredentialsError(AuthError):
    """
    Login failed.

    Same message for unknown email, inactive account and wrong password.
    """

    default_message = "Invalid email or password"


class SessionInvalidError(AuthError):
    """Refresh session is unknown, expired, revoked, or already rotated. User must log in again."""

    default_message = "Session is no longer valid"


class RateLimitedError(AppError):
    """Too many attempts. Client should wait before retrying."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limited. Retry after {retry_after_seconds} seconds.")
