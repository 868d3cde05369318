"""Security middleware for FastAPI - bearer token authentication per route family."""

import logging

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from api.base import request_id_of
from api.errors import app_error_response
from auth.guard import AuthorizationGuard
from auth.types import PrincipalType
from core.errors import AppError

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that authenticates the caller for protected route families.

    For protected routes:
    1. Picks the required principal type from the path prefix
    2. Authenticates the Authorization header via AuthorizationGuard
    3. Stores the Principal on request.state.principal

    Public paths bypass authentication entirely. Paths matching neither
    list fall through to routing (and 404).
    """

    PUBLIC_PATHS = [
        "/auth/user/join",
        "/auth/user/login",
        "/auth/user/refresh",
        "/auth/user/password/",
        "/auth/admin/join",
        "/auth/admin/login",
        "/auth/admin/refresh",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    PROTECTED_PREFIXES = [
        ("/todoList/user/", PrincipalType.USER),
        ("/todoList/admin/", PrincipalType.ADMIN),
        ("/auth/user/logout", PrincipalType.USER),
        ("/auth/admin/logout", PrincipalType.ADMIN),
    ]

    def __init__(self, app, guard: AuthorizationGuard):
        super().__init__(app)
        self._guard = guard

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path):
                return True
        return False

    def _required_type(self, path: str) -> PrincipalType | None:
        for prefix, principal_type in self.PROTECTED_PREFIXES:
            if path == prefix.rstrip("/") or path.startswith(prefix):
                return principal_type
        return None

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path

        if self._is_public_path(path):
            return await call_next(request)

        expected_type = self._required_type(path)
        if expected_type is None:
            return await call_next(request)

        try:
            # Guard hits the database; keep it off the event loop
            principal = await run_in_threadpool(
                self._guard.authenticate,
                request.headers.get("Authorization"),
                expected_type,
            )
        except AppError as e:
            return app_error_response(e, request_id_of(request))

        request.state.principal = principal
        return await call_next(request)
