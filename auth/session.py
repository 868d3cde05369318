"""Refresh session lifecycle management.

Sessions are rows in PostgreSQL. They are revoked, never deleted, so a
refresh token can always be traced back to the login that produced it.
Only the SHA-256 digest of a refresh token is stored.
"""

import hashlib
import logging
from datetime import datetime
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from auth.types import PrincipalType, Session, SessionMeta
from utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)

_SESSION_COLUMNS = (
    "id, principal_type, principal_id, token_hash, issued_at, expires_at, "
    "revoked_at, user_agent, ip_address"
)


def hash_token(token: str) -> str:
    """Digest used to look up a refresh token without storing it."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionStore:
    """Refresh session persistence.

    Every method accepts an optional `tx` so rotation, password reset and
    account removal can revoke and create sessions inside their own
    transaction.
    """

    def __init__(self, postgres: PostgresClient, clock: Clock = now_utc):
        self._db = postgres
        self._clock = clock

    def _executor(self, tx: Transaction | None):
        return tx if tx is not None else self._db

    def create(
        self,
        principal_type: PrincipalType,
        principal_id: UUID,
        token: str,
        expires_at: datetime,
        meta: SessionMeta | None = None,
        session_id: UUID | None = None,
        tx: Transaction | None = None,
    ) -> Session:
        """Persist a session for an issued refresh token.

        Args:
            session_id: Pre-allocated id; tokens are minted before the row
                exists because the id is embedded in them.
        """
        meta = meta or SessionMeta()
        row = self._executor(tx).execute_single(
            f"""INSERT INTO sessions
                    (id, principal_type, principal_id, token_hash, issued_at,
                     expires_at, user_agent, ip_address)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_SESSION_COLUMNS}""",
            (
                session_id or uuid4(),
                principal_type,
                principal_id,
                hash_token(token),
                self._clock(),
                expires_at,
                meta.user_agent,
                meta.ip_address,
            ),
        )
        return Session.model_validate(row)

    def find_active_by_token(
        self,
        token: str,
        tx: Transaction | None = None,
        lock: bool = False,
    ) -> Session | None:
        """Return the usable session for a refresh token, or None.

        Args:
            lock: Take a row lock (requires `tx`). Concurrent rotations of the
                same token serialize here; the loser sees the revoked row and
                gets None.
        """
        if lock and tx is None:
            raise ValueError("lock=True requires a transaction")

        query = f"""SELECT {_SESSION_COLUMNS} FROM sessions
                    WHERE token_hash = %s AND revoked_at IS NULL AND expires_at > %s"""
        if lock:
            query += " FOR UPDATE"

        row = self._executor(tx).execute_single(query, (hash_token(token), self._clock()))
        if row is None:
            return None
        return Session.model_validate(row)

    def get(self, session_id: UUID) -> Session | None:
        """Fetch a session by id regardless of state."""
        row = self._db.execute_single(
            f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = %s",
            (session_id,),
        )
        if row is None:
            return None
        return Session.model_validate(row)

    def revoke(self, session_id: UUID, tx: Transaction | None = None) -> bool:
        """Revoke session (logout, rotation).

        Safe to call repeatedly; revoked_at keeps its first value.

        Returns:
            True if this call revoked the session, False if it was already
            revoked or does not exist.
        """
        rows = self._executor(tx).execute_returning(
            """UPDATE sessions SET revoked_at = %s
               WHERE id = %s AND revoked_at IS NULL
               RETURNING id""",
            (self._clock(), session_id),
        )
        return len(rows) > 0

    def revoke_all(
        self,
        principal_type: PrincipalType,
        principal_id: UUID,
        tx: Transaction | None = None,
    ) -> int:
        """Revoke every live session of a principal. Returns how many were revoked."""
        rows = self._executor(tx).execute_returning(
            """UPDATE sessions SET revoked_at = %s
               WHERE principal_type = %s AND principal_id = %s AND revoked_at IS NULL
               RETURNING id""",
            (self._clock(), principal_type, principal_id),
        )
        if rows:
            logger.info(f"Revoked {len(rows)} session(s) for {principal_type.value} {principal_id}")
        return len(rows)
