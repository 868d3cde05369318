"""
JWT token generation and validation.

Access and refresh tokens for both principal types are signed with the one
process-wide secret. The `type` claim separates users from admins and the
`purpose` claim separates refresh tokens from access tokens.
"""

import logging
from uuid import UUID, uuid4

import jwt

from auth.config import AuthConfig
from auth.exceptions import InvalidTokenError
from auth.types import IssuedTokens, PrincipalType, TokenPayload
from utils.timezone import Clock, expires_after, from_timestamp, now_utc

logger = logging.getLogger(__name__)

REFRESH_PURPOSE = "refresh"
ACCESS_PURPOSE = "access"

_REQUIRED_CLAIMS = ["exp", "iat", "iss"]


class TokenService:
    """
    Mints and verifies signed access/refresh tokens.

    Expiry is checked against the injected clock rather than the system
    clock so tests can pin time.
    """

    def __init__(self, config: AuthConfig, secret_key: str, clock: Clock = now_utc):
        if not secret_key:
            raise ValueError("secret_key is required")

        self._config = config
        self._secret_key = secret_key
        self._clock = clock

    def issue(
        self,
        principal_id: UUID,
        principal_type: PrincipalType,
        session_id: UUID,
    ) -> IssuedTokens:
        """
        Create an access/refresh pair bound to a session.

        The session id doubles as the access token's jti. Refresh tokens get
        a random jti so two refreshes in the same second never collide.
        """
        now = self._clock()
        # exp claims are whole seconds; returned expiries match them exactly
        access_exp = int(expires_after(now, self._config.access_token_expiry_seconds).timestamp())
        refresh_exp = int(expires_after(now, self._config.refresh_token_expiry_seconds).timestamp())

        access_payload = {
            "id": str(principal_id),
            "type": principal_type.value,
            "jti": str(session_id),
            "iss": self._config.jwt_issuer,
            "iat": int(now.timestamp()),
            "exp": access_exp,
        }
        refresh_payload = {
            "id": str(principal_id),
            "type": principal_type.value,
            "session_id": str(session_id),
            "purpose": REFRESH_PURPOSE,
            "jti": uuid4().hex,
            "iss": self._config.jwt_issuer,
            "iat": int(now.timestamp()),
            "exp": refresh_exp,
        }

        return IssuedTokens(
            access_token=self._encode(access_payload),
            refresh_token=self._encode(refresh_payload),
            access_expires_at=from_timestamp(access_exp),
            refresh_expires_at=from_timestamp(refresh_exp),
        )

    def verify(self, token: str) -> TokenPayload:
        """
        Verify signature, issuer, expiry and shape.

        Raises:
            InvalidTokenError: On any failure. The reason is logged, not returned.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._config.jwt_algorithm],
                issuer=self._config.jwt_issuer,
                # Time claims are checked below against the injected clock
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise InvalidTokenError() from None

        payload = self._to_payload(claims)
        if payload.expires_at <= self._clock():
            logger.debug("Token rejected: expired")
            raise InvalidTokenError()

        return payload

    def _encode(self, payload: dict) -> str:
        return jwt.encode(payload, self._secret_key, algorithm=self._config.jwt_algorithm)

    def _to_payload(self, claims: dict) -> TokenPayload:
        """Map raw claims onto TokenPayload, rejecting anything malformed."""
        purpose = claims.get("purpose", ACCESS_PURPOSE)
        session_claim = claims.get("session_id") if purpose == REFRESH_PURPOSE else claims.get("jti")

        try:
            return TokenPayload(
                id=UUID(str(claims["id"])),
                type=PrincipalType(claims["type"]),
                purpose=purpose,
                session_id=UUID(str(session_claim)),
                jti=str(claims["jti"]),
                issued_at=from_timestamp(claims["iat"]),
                expires_at=from_timestamp(claims["exp"]),
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            # pydantic.ValidationError subclasses ValueError
            logger.debug(f"Token rejected: malformed payload ({e})")
            raise InvalidTokenError() from None
