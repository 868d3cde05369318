"""HTTP routes for authentication."""

import ipaddress

from fastapi import APIRouter, Request

from api.base import request_id_of, success_response
from auth.service import AuthService
from auth.types import (
    JoinRequest,
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    PrincipalType,
    RefreshRequest,
    SessionMeta,
)

USER_AGENT_MAX_LENGTH = 512


def _get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def _session_meta(request: Request) -> SessionMeta:
    user_agent = request.headers.get("User-Agent")
    return SessionMeta(
        user_agent=user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
        ip_address=_get_client_ip(request),
    )


def create_auth_router(auth_service: AuthService) -> APIRouter:
    """Create auth router with injected service.

    Mounted under /auth. The principal type comes from the path, so
    /auth/user/login and /auth/admin/login share one handler.
    """
    router = APIRouter(tags=["auth"])

    @router.post("/{principal_type}/join")
    def join(principal_type: PrincipalType, request: Request, body: JoinRequest):
        """Register and log in. 409 if the email is taken for this principal type."""
        result = auth_service.join(
            principal_type,
            email=body.email,
            password=body.password,
            meta=_session_meta(request),
        )
        return success_response(result.model_dump(mode="json"), request_id_of(request))

    @router.post("/{principal_type}/login")
    def login(principal_type: PrincipalType, request: Request, body: LoginRequest):
        """Exchange email and password for an access/refresh pair."""
        result = auth_service.login(
            principal_type,
            email=body.email,
            password=body.password,
            meta=_session_meta(request),
        )
        return success_response(result.model_dump(mode="json"), request_id_of(request))

    @router.post("/{principal_type}/refresh")
    def refresh(principal_type: PrincipalType, request: Request, body: RefreshRequest):
        """Rotate a refresh token. The presented token is unusable afterwards."""
        result = auth_service.refresh(
            principal_type,
            refresh_token=body.refresh_token,
            meta=_session_meta(request),
        )
        return success_response(result.model_dump(mode="json"), request_id_of(request))

    @router.post("/{principal_type}/logout")
    def logout(principal_type: PrincipalType, request: Request):
        """Revoke the session behind the bearer access token."""
        auth_service.logout(request.state.principal, meta=_session_meta(request))
        return success_response({"message": "Logged out successfully"}, request_id_of(request))

    @router.post("/user/password/reset-request")
    def request_password_reset(request: Request, body: PasswordResetRequest):
        """Always succeeds, whether or not the email is registered."""
        auth_service.request_password_reset(body.email, meta=_session_meta(request))
        return success_response(
            {"message": "If the account exists, a reset email has been sent"},
            request_id_of(request),
        )

    @router.post("/user/password/reset")
    def reset_password(request: Request, body: PasswordResetConfirm):
        auth_service.reset_password(body.token, body.new_password)
        return success_response({"message": "Password updated"}, request_id_of(request))

    return router
