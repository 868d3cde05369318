"""Security event logging for auth audit trail.

Append-only log to security_events table. Rows are never updated or deleted
by the application.
"""

import logging
from enum import Enum
from typing import Any
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from auth.types import PrincipalType
from utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)


class SecurityEvent(Enum):
    """Auth security event types."""

    JOINED = "joined"
    JOIN_REJECTED = "join_rejected"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    RATE_LIMITED = "rate_limited"
    SESSION_ROTATED = "session_rotated"
    SESSION_REFRESH_REJECTED = "session_refresh_rejected"
    SESSION_REVOKED = "session_revoked"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"
    PASSWORD_RESET_FAILED = "password_reset_failed"
    PRINCIPAL_DELETED = "principal_deleted"


class SecurityLogger:
    """Append-only security event logger."""

    def __init__(self, postgres: PostgresClient, clock: Clock = now_utc):
        self._db = postgres
        self._clock = clock

    def log(
        self,
        event: SecurityEvent,
        principal_type: PrincipalType | None = None,
        principal_id: UUID | None = None,
        email: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log security event to database."""
        self._db.execute_returning(
            """INSERT INTO security_events
               (event_type, principal_type, principal_id, email, ip_address, user_agent, details, created_at)
               VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (
                event.value,
                principal_type,
                principal_id,
                email,
                ip_address,
                user_agent,
                Json(details) if details else None,
                self._clock(),
            ),
        )
        logger.debug(f"Security event {event.value} for {principal_type} {principal_id or email}")

    def get_recent_events(
        self,
        email: str | None = None,
        principal_id: UUID | None = None,
        event_type: SecurityEvent | None = None,
        limit: int = 100,
    ) -> list[dict]:
        """Query recent security events with optional filters."""
        conditions = []
        params = []

        if email:
            conditions.append("email = %s")
            params.append(email.lower())

        if principal_id:
            conditions.append("principal_id = %s")
            params.append(principal_id)

        if event_type:
            conditions.append("event_type = %s")
            params.append(event_type.value)

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        params.append(limit)

        return self._db.execute(
            f"""SELECT id, event_type, principal_type, principal_id, email, ip_address,
                       user_agent, details, created_at
                FROM security_events
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s""",
            tuple(params),
        )
