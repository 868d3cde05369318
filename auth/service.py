"""Authentication service - orchestrates password auth and refresh sessions."""

import logging
import secrets
from datetime import timedelta
from uuid import uuid4

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    RateLimitedError,
    SessionInvalidError,
)
from auth.passwords import CredentialStore
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.session import SessionStore, hash_token
from auth.tokens import REFRESH_PURPOSE, TokenService
from auth.types import (
    AuthorizationToken,
    AuthorizedPrincipal,
    PasswordResetToken,
    Principal,
    PrincipalType,
    SessionMeta,
)
from clients.email_client import EmailGatewayClient, EmailGatewayError
from clients.postgres_client import PostgresClient, Transaction
from core.errors import ConflictError, ForbiddenError
from utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)


class AuthService:
    """Orchestrates join, login, refresh, logout and password reset.

    Handles both principal types; the `principal_type` argument picks the
    table. Every successful join/login/refresh starts a new session whose
    id is embedded in both issued tokens.
    """

    def __init__(
        self,
        config: AuthConfig,
        postgres: PostgresClient,
        auth_db: AuthDatabase,
        sessions: SessionStore,
        tokens: TokenService,
        credentials: CredentialStore,
        rate_limiter: RateLimiter,
        security_logger: SecurityLogger,
        email_client: EmailGatewayClient,
        clock: Clock = now_utc,
    ):
        self._config = config
        self._db = postgres
        self._auth_db = auth_db
        self._sessions = sessions
        self._tokens = tokens
        self._credentials = credentials
        self._rate_limiter = rate_limiter
        self._security_logger = security_logger
        self._email_client = email_client
        self._clock = clock

    def _start_session(
        self,
        principal_type: PrincipalType,
        principal_id,
        meta: SessionMeta,
        tx: Transaction | None = None,
    ) -> AuthorizedPrincipal:
        """Issue a token pair and persist its session."""
        session_id = uuid4()
        issued = self._tokens.issue(principal_id, principal_type, session_id)
        self._sessions.create(
            principal_type,
            principal_id,
            issued.refresh_token,
            issued.refresh_expires_at,
            meta,
            session_id=session_id,
            tx=tx,
        )
        return AuthorizedPrincipal(id=principal_id, token=AuthorizationToken.from_issued(issued))

    def join(
        self,
        principal_type: PrincipalType,
        email: str,
        password: str,
        meta: SessionMeta | None = None,
    ) -> AuthorizedPrincipal:
        """Register a principal and log it in.

        Raises:
            ConflictError: Email already registered for this principal type.
        """
        meta = meta or SessionMeta()
        email = email.strip().lower()

        password_hash = self._credentials.hash(password)
        with self._db.transaction() as tx:
            record = self._auth_db.create(principal_type, email, password_hash, tx=tx)
            if record is not None:
                result = self._start_session(principal_type, record.id, meta, tx=tx)

        if record is None:
            self._security_logger.log(
                SecurityEvent.JOIN_REJECTED,
                principal_type=principal_type,
                email=email,
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
                details={"reason": "email_taken"},
            )
            raise ConflictError("Email is already registered")

        self._security_logger.log(
            SecurityEvent.JOINED,
            principal_type=principal_type,
            principal_id=record.id,
            email=email,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )
        logger.info(f"New {principal_type.value} {record.id} joined")
        return result

    def login(
        self,
        principal_type: PrincipalType,
        email: str,
        password: str,
        meta: SessionMeta | None = None,
    ) -> AuthorizedPrincipal:
        """Verify credentials and start a session.

        Flow:
        1. Check per-email rate limit
        2. Look up principal; verify password (or burn a verify if unknown)
        3. Reject inactive principals only after the password check
        4. Reset rate limit, update last_login, start session

        Raises:
            RateLimitedError: Too many attempts for this email.
            InvalidCredentialsError: Unknown email, wrong password or inactive
                account, all with the same message.
        """
        meta = meta or SessionMeta()
        email = email.strip().lower()

        try:
            self._rate_limiter.check_rate_limit(principal_type, email)
        except RateLimitedError:
            self._security_logger.log(
                SecurityEvent.RATE_LIMITED,
                principal_type=principal_type,
                email=email,
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
            )
            raise

        record = self._auth_db.get_by_email(principal_type, email)

        failure = None
        if record is None:
            self._credentials.burn_verify(password)
            failure = "unknown_email"
        elif not self._credentials.verify(password, record.password_hash):
            failure = "wrong_password"
        elif not record.is_active:
            failure = "inactive"

        if failure:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                principal_type=principal_type,
                principal_id=record.id if record else None,
                email=email,
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
                details={"reason": failure},
            )
            raise InvalidCredentialsError()

        self._rate_limiter.reset_rate_limit(principal_type, email)
        self._auth_db.update_last_login(principal_type, record.id)
        result = self._start_session(principal_type, record.id, meta)

        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            principal_type=principal_type,
            principal_id=record.id,
            email=email,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )
        return result

    def refresh(
        self,
        principal_type: PrincipalType,
        refresh_token: str,
        meta: SessionMeta | None = None,
    ) -> AuthorizedPrincipal:
        """Rotate a refresh token: revoke its session and start a new one.

        The old session row is locked for the whole rotation, so of two
        concurrent refreshes with the same token only one succeeds.

        Raises:
            InvalidTokenError: Token fails verification or is not a refresh token.
            ForbiddenError: Token belongs to the other principal type.
            SessionInvalidError: Session unknown, expired, revoked, already
                rotated, or its principal is no longer active.
        """
        meta = meta or SessionMeta()

        payload = self._tokens.verify(refresh_token)
        if payload.purpose != REFRESH_PURPOSE:
            logger.info(f"Access token presented to refresh for {payload.type.value} {payload.id}")
            raise InvalidTokenError()
        if payload.type is not principal_type:
            logger.info(
                f"Refresh token for {payload.type.value} {payload.id} "
                f"presented to {principal_type.value} refresh"
            )
            raise ForbiddenError()

        try:
            with self._db.transaction() as tx:
                session = self._sessions.find_active_by_token(refresh_token, tx=tx, lock=True)
                if session is None:
                    raise SessionInvalidError()
                if session.id != payload.session_id or session.principal_id != payload.id:
                    logger.warning(f"Refresh token claims disagree with session {session.id}")
                    raise SessionInvalidError()

                record = self._auth_db.get_by_id(principal_type, session.principal_id, tx=tx)
                if record is None or not record.is_active:
                    raise SessionInvalidError()

                if not self._sessions.revoke(session.id, tx=tx):
                    raise SessionInvalidError()

                result = self._start_session(principal_type, record.id, meta, tx=tx)
        except SessionInvalidError:
            self._security_logger.log(
                SecurityEvent.SESSION_REFRESH_REJECTED,
                principal_type=principal_type,
                principal_id=payload.id,
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
                details={"session_id": str(payload.session_id)},
            )
            raise

        self._security_logger.log(
            SecurityEvent.SESSION_ROTATED,
            principal_type=principal_type,
            principal_id=payload.id,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
            details={"previous_session_id": str(payload.session_id)},
        )
        return result

    def logout(self, principal: Principal, meta: SessionMeta | None = None) -> None:
        """Revoke the caller's current session.

        Safe to call repeatedly. Access tokens already issued stay valid
        until they expire; only refresh is cut off.
        """
        meta = meta or SessionMeta()
        if principal.session_id is None:
            return

        revoked = self._sessions.revoke(principal.session_id)
        if revoked:
            self._security_logger.log(
                SecurityEvent.SESSION_REVOKED,
                principal_type=principal.type,
                principal_id=principal.id,
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
                details={"session_id": str(principal.session_id)},
            )

    def request_password_reset(self, email: str, meta: SessionMeta | None = None) -> None:
        """Email a single-use reset token to an active user.

        Always returns normally so the response never reveals whether the
        email is registered.
        """
        meta = meta or SessionMeta()
        email = email.strip().lower()

        record = self._auth_db.get_by_email(PrincipalType.USER, email)
        if record is None or not record.is_active:
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                principal_type=PrincipalType.USER,
                email=email,
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
                details={"reason": "unknown_or_inactive"},
            )
            return

        now = self._clock()
        token_value = secrets.token_urlsafe(32)
        self._auth_db.store_password_reset_token(
            PasswordResetToken(
                id=uuid4(),
                user_id=record.id,
                token_hash=hash_token(token_value),
                created_at=now,
                expires_at=now + timedelta(minutes=self._config.password_reset_expiry_minutes),
            )
        )

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_REQUESTED,
            principal_type=PrincipalType.USER,
            principal_id=record.id,
            email=email,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )

        try:
            self._email_client.send_password_reset(
                email=record.email,
                token=token_value,
                app_url=self._config.app_base_url,
            )
        except EmailGatewayError as e:
            # Token stays stored; the user can request another
            logger.error(f"Password reset email for user {record.id} not delivered: {e}")

    def reset_password(self, token: str, new_password: str) -> None:
        """Consume a reset token, set the new password, revoke all sessions.

        Raises:
            InvalidTokenError: Token unknown, expired or already used.
        """
        new_hash = self._credentials.hash(new_password)

        with self._db.transaction() as tx:
            reset = self._auth_db.lock_usable_reset_token(tx, hash_token(token))
            if reset is None:
                raise InvalidTokenError()

            if not self._auth_db.update_password(reset.user_id, new_hash, tx=tx):
                raise InvalidTokenError()

            self._auth_db.mark_reset_token_used(tx, reset.id)
            revoked = self._sessions.revoke_all(PrincipalType.USER, reset.user_id, tx=tx)

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_COMPLETED,
            principal_type=PrincipalType.USER,
            principal_id=reset.user_id,
            details={"sessions_revoked": revoked},
        )
        logger.info(f"Password reset for user {reset.user_id}")
