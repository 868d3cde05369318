"""Request authentication and ownership checks.

The guard turns an Authorization header into a Principal. It re-reads the
principal row on every request, so deleting or disabling an account takes
effect immediately even while its access tokens are still unexpired.
"""

import logging
from enum import Enum
from uuid import UUID

from auth.database import AuthDatabase
from auth.exceptions import InvalidTokenError
from auth.tokens import REFRESH_PURPOSE, TokenService
from auth.types import Principal, PrincipalType
from core.errors import AppError, ForbiddenError, UnauthenticatedError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


class AuthorizationDecision(Enum):
    ALLOW = "allow"
    DENY = "deny"


def extract_bearer_token(authorization_header: str | None) -> str:
    """Pull the token out of `Authorization: Bearer <token>`.

    Raises:
        UnauthenticatedError: Header missing or not a bearer credential.
    """
    if not authorization_header:
        raise UnauthenticatedError()

    if not authorization_header[: len(BEARER_PREFIX)].lower() == BEARER_PREFIX:
        raise UnauthenticatedError()

    token = authorization_header[len(BEARER_PREFIX):].strip()
    if not token or " " in token:
        raise UnauthenticatedError()
    return token


def authorize_ownership(principal: Principal, resource_owner_id: UUID) -> AuthorizationDecision:
    """Admins may act on any resource; users only on their own."""
    if principal.is_admin:
        return AuthorizationDecision.ALLOW
    if principal.id == resource_owner_id:
        return AuthorizationDecision.ALLOW
    return AuthorizationDecision.DENY


def require_ownership(
    principal: Principal,
    resource_owner_id: UUID,
    error: type[AppError] = ForbiddenError,
) -> None:
    """Raise `error` unless the principal may act on the resource.

    Reads pass NotFoundError so a foreign resource looks absent; writes keep
    the default ForbiddenError.
    """
    if authorize_ownership(principal, resource_owner_id) is AuthorizationDecision.DENY:
        logger.info(f"Ownership denied for {principal.type.value} {principal.id}")
        raise error()


class AuthorizationGuard:
    """Authenticates bearer access tokens for one expected principal type."""

    def __init__(self, tokens: TokenService, auth_db: AuthDatabase):
        self._tokens = tokens
        self._auth_db = auth_db

    def authenticate(
        self,
        authorization_header: str | None,
        expected_type: PrincipalType,
    ) -> Principal:
        """Resolve the caller or fail.

        Raises:
            UnauthenticatedError: No usable access token.
            ForbiddenError: Token is for the other principal type, or the
                account is gone or inactive. Same message in every case.
        """
        token = extract_bearer_token(authorization_header)

        try:
            payload = self._tokens.verify(token)
        except InvalidTokenError:
            raise UnauthenticatedError() from None

        if payload.purpose == REFRESH_PURPOSE:
            logger.info(f"Refresh token presented as bearer credential for {payload.type.value} {payload.id}")
            raise UnauthenticatedError()

        if payload.type is not expected_type:
            logger.info(
                f"Principal type mismatch: token for {payload.type.value} {payload.id}, "
                f"route requires {expected_type.value}"
            )
            raise ForbiddenError()

        record = self._auth_db.get_by_id(expected_type, payload.id)
        if record is None:
            logger.info(f"Token for unknown {expected_type.value} {payload.id}")
            raise ForbiddenError()
        if not record.is_active:
            logger.info(f"Token for inactive {expected_type.value} {payload.id}")
            raise ForbiddenError()

        return Principal(id=record.id, type=expected_type, session_id=payload.session_id)
