"""
Admin-driven removal of accounts.

Accounts are soft-deleted: the row stays, login and authorization stop,
and every live session is revoked in the same transaction.
"""

import logging
from uuid import UUID

from auth.database import AuthDatabase
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.session import SessionStore
from auth.types import Principal, PrincipalType
from clients.postgres_client import PostgresClient
from core.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class AccountService:
    """Service for deleting user and admin accounts."""

    def __init__(
        self,
        postgres: PostgresClient,
        auth_db: AuthDatabase,
        sessions: SessionStore,
        security_logger: SecurityLogger,
    ):
        self.postgres = postgres
        self._auth_db = auth_db
        self._sessions = sessions
        self._security_logger = security_logger

    def delete_admin(self, actor: Principal, admin_id: UUID) -> None:
        """
        Soft-delete an admin.

        All active admin rows are locked first, so two admins deleting each
        other concurrently cannot leave the system with none.

        Raises:
            NotFoundError: No live admin with this id.
            ConflictError: It is the last active admin.
        """
        with self.postgres.transaction() as tx:
            active_ids = self._auth_db.lock_active_admin_ids(tx)

            if admin_id in active_ids:
                if len(active_ids) <= 1:
                    raise ConflictError("Cannot delete the last active admin")
            else:
                # Disabled admins may still be removed; deleted ones are gone
                record = self._auth_db.get_by_id(PrincipalType.ADMIN, admin_id, tx=tx)
                if record is None or record.deleted_at is not None:
                    raise NotFoundError("Admin not found")

            if not self._auth_db.soft_delete(PrincipalType.ADMIN, admin_id, tx=tx):
                raise NotFoundError("Admin not found")
            revoked = self._sessions.revoke_all(PrincipalType.ADMIN, admin_id, tx=tx)

        self._log_deletion(actor, PrincipalType.ADMIN, admin_id, revoked)

    def delete_user(self, actor: Principal, user_id: UUID) -> None:
        """
        Soft-delete a user. Their todos stay in place.

        Raises:
            NotFoundError: No live user with this id.
        """
        with self.postgres.transaction() as tx:
            if not self._auth_db.soft_delete(PrincipalType.USER, user_id, tx=tx):
                raise NotFoundError("User not found")
            revoked = self._sessions.revoke_all(PrincipalType.USER, user_id, tx=tx)

        self._log_deletion(actor, PrincipalType.USER, user_id, revoked)

    def _log_deletion(
        self,
        actor: Principal,
        principal_type: PrincipalType,
        principal_id: UUID,
        sessions_revoked: int,
    ) -> None:
        self._security_logger.log(
            SecurityEvent.PRINCIPAL_DELETED,
            principal_type=principal_type,
            principal_id=principal_id,
            details={
                "deleted_by": str(actor.id),
                "sessions_revoked": sessions_revoked,
            },
        )
        logger.info(f"{principal_type.value} {principal_id} deleted by admin {actor.id}")
