"""
Admin audit trail for privileged actions on users' todos.

Every admin view and delete of a user's todo is logged here. The audit log is:
- Append-only (entries never modified or deleted)
- Admin-attributed (who acted, on whose todo)
- Transactional (written with the action it records, or not at all)
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.errors import NotFoundError
from core.models import AdminAuditLog, AuditAction, AuditLogSearch
from utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)

_COLUMNS = "id, admin_id, user_id, todo_id, action, rationale, created_at"


class AuditLogger:
    """
    Admin audit trail.

    Writes take the caller's transaction so the audit row commits or rolls
    back together with the action. A failed insert propagates and fails
    the action.

    Usage:
        audit = AuditLogger(postgres)

        with postgres.transaction() as tx:
            todo = ...  # read inside tx
            audit.record_admin_view(admin_id, todo.owner_id, todo.id, tx=tx)

        entries, total = audit.search(AuditLogSearch(user_id=user_id))
    """

    def __init__(self, postgres: PostgresClient, clock: Clock = now_utc):
        self.postgres = postgres
        self._clock = clock

    def record(
        self,
        admin_id: UUID,
        user_id: UUID,
        todo_id: UUID,
        action: AuditAction,
        rationale: str | None = None,
        tx: Transaction | None = None,
    ) -> AdminAuditLog:
        """
        Append one audit entry.

        Args:
            admin_id: Admin who acted
            user_id: Owner of the todo acted on
            todo_id: The todo acted on (may no longer exist after a delete)
            action: VIEW or DELETE
            rationale: Optional free-text reason supplied by the admin
            tx: Transaction of the action being recorded
        """
        db = tx if tx is not None else self.postgres
        row = db.execute_returning(
            f"""
            INSERT INTO admin_audit_logs (id, admin_id, user_id, todo_id, action, rationale, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {_COLUMNS}
            """,
            (uuid4(), admin_id, user_id, todo_id, action, rationale, self._clock()),
        )[0]

        entry = AdminAuditLog.model_validate(row)
        logger.info(f"Admin {admin_id} {action.value} todo {todo_id} of user {user_id}")
        return entry

    def record_admin_view(
        self,
        admin_id: UUID,
        user_id: UUID,
        todo_id: UUID,
        rationale: str | None = None,
        tx: Transaction | None = None,
    ) -> AdminAuditLog:
        """Log an admin reading a user's todo in detail."""
        return self.record(admin_id, user_id, todo_id, AuditAction.VIEW, rationale, tx=tx)

    def get_by_id(self, audit_log_id: UUID) -> AdminAuditLog:
        """
        Raises:
            NotFoundError: No entry with this id.
        """
        row = self.postgres.execute_single(
            f"SELECT {_COLUMNS} FROM admin_audit_logs WHERE id = %s",
            (audit_log_id,),
        )
        if row is None:
            raise NotFoundError("Audit log not found")
        return AdminAuditLog.model_validate(row)

    def search(self, filters: AuditLogSearch) -> tuple[list[AdminAuditLog], int]:
        """
        Filter audit entries, newest first.

        Returns:
            (page of entries, total matching count)
        """
        conditions = []
        params: list[Any] = []

        if filters.admin_id:
            conditions.append("admin_id = %s")
            params.append(filters.admin_id)

        if filters.user_id:
            conditions.append("user_id = %s")
            params.append(filters.user_id)

        if filters.todo_id:
            conditions.append("todo_id = %s")
            params.append(filters.todo_id)

        if filters.action:
            conditions.append("action = %s")
            params.append(filters.action)

        if filters.rationale:
            conditions.append("rationale ILIKE %s")
            params.append(f"%{_escape_like(filters.rationale)}%")

        if filters.created_from:
            conditions.append("created_at >= %s")
            params.append(filters.created_from)

        if filters.created_to:
            conditions.append("created_at <= %s")
            params.append(filters.created_to)

        where_clause = " AND ".join(conditions) if conditions else "TRUE"

        total_row = self.postgres.execute_single(
            f"SELECT COUNT(*) AS total FROM admin_audit_logs WHERE {where_clause}",
            tuple(params),
        )
        rows = self.postgres.execute(
            f"""
            SELECT {_COLUMNS}
            FROM admin_audit_logs
            WHERE {where_clause}
            ORDER BY created_at DESC, id
            LIMIT %s OFFSET %s
            """,
            tuple(params + [filters.limit, filters.offset]),
        )

        total = total_row["total"] if total_row else 0
        return [AdminAuditLog.model_validate(row) for row in rows], total


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the filter is a plain substring match."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
