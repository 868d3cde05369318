"""
Audited todo deletion.

A delete is one transaction: lock the todo, snapshot it into
deleted_todo_logs, remove it, and (for admins) append an audit entry. Any
failure rolls back all of it, so a todo is never gone without its snapshot
and an admin delete never lands without its audit row.
"""

import logging
from datetime import timedelta
from uuid import UUID, uuid4

from auth.guard import require_ownership
from auth.types import Principal
from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from core.errors import ForbiddenError, NotFoundError
from core.models import AuditAction, DeletedTodoLog, Todo
from utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)

_LOG_COLUMNS = (
    "id, original_todo_id, owner_id, title, description, due_date, is_completed, "
    "completed_at, created_at, updated_at, deleted_at, retention_expires_at"
)


class DeletionService:
    """Service for deleting todos and reading their snapshots."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        retention_days: int | None = None,
        clock: Clock = now_utc,
    ):
        self.postgres = postgres
        self.audit = audit
        self._retention_days = retention_days
        self._clock = clock

    def delete_todo(
        self,
        actor: Principal,
        todo_id: UUID,
        rationale: str | None = None,
    ) -> DeletedTodoLog:
        """
        Delete a todo, leaving an immutable snapshot.

        Concurrent deletes of the same todo serialize on the row lock; the
        loser finds no row and gets NotFoundError.

        Args:
            actor: The owner, or any admin
            todo_id: Todo to delete
            rationale: Admin-supplied reason, stored on the audit entry

        Returns:
            The snapshot that was written

        Raises:
            NotFoundError: Todo does not exist (or was just deleted).
            ForbiddenError: A user tried to delete someone else's todo.
        """
        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                "SELECT * FROM todos WHERE id = %s AND deleted_at IS NULL FOR UPDATE",
                (todo_id,),
            )
            if row is None:
                raise NotFoundError("Todo not found")

            todo = Todo.model_validate(row)
            require_ownership(actor, todo.owner_id, ForbiddenError)

            now = self._clock()
            retention_expires_at = None
            if self._retention_days is not None:
                retention_expires_at = now + timedelta(days=self._retention_days)

            log_row = tx.execute_returning(
                f"""
                INSERT INTO deleted_todo_logs (
                    id, original_todo_id, owner_id, title, description, due_date,
                    is_completed, completed_at, created_at, updated_at,
                    deleted_at, retention_expires_at
                ) VALUES (
                    %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s
                )
                RETURNING {_LOG_COLUMNS}
                """,
                (
                    uuid4(), todo.id, todo.owner_id, todo.title, todo.description, todo.due_date,
                    todo.is_completed, todo.completed_at, todo.created_at, todo.updated_at,
                    now, retention_expires_at,
                ),
            )[0]

            deleted = tx.execute_returning(
                "DELETE FROM todos WHERE id = %s RETURNING id",
                (todo.id,),
            )
            if not deleted:
                raise NotFoundError("Todo not found")

            if actor.is_admin:
                self.audit.record(
                    actor.id,
                    todo.owner_id,
                    todo.id,
                    AuditAction.DELETE,
                    rationale,
                    tx=tx,
                )

        logger.info(f"Todo {todo.id} deleted by {actor.type.value} {actor.id}")
        return DeletedTodoLog.model_validate(log_row)

    def get_deleted_log(self, requester: Principal, log_id: UUID) -> DeletedTodoLog:
        """
        Fetch one snapshot.

        Raises:
            NotFoundError: Missing, owned by someone else, or past retention.
        """
        row = self.postgres.execute_single(
            f"SELECT {_LOG_COLUMNS} FROM deleted_todo_logs WHERE id = %s",
            (log_id,),
        )
        if row is None:
            raise NotFoundError("Deleted todo log not found")

        log = DeletedTodoLog.model_validate(row)
        require_ownership(requester, log.owner_id, NotFoundError)

        if not log.is_retained(self._clock()):
            raise NotFoundError("Deleted todo log not found")

        return log

    def list_deleted_logs(
        self,
        requester: Principal,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DeletedTodoLog]:
        """
        List the requester's own snapshots, newest deletion first.

        Snapshots past retention are excluded.
        """
        rows = self.postgres.execute(
            f"""
            SELECT {_LOG_COLUMNS} FROM deleted_todo_logs
            WHERE owner_id = %s
              AND (retention_expires_at IS NULL OR retention_expires_at > %s)
            ORDER BY deleted_at DESC, id
            LIMIT %s OFFSET %s
            """,
            (requester.id, self._clock(), limit, offset),
        )
        return [DeletedTodoLog.model_validate(row) for row in rows]
