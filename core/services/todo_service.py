"""
Todo service for owner-scoped todo operations.

Users see only their own todos; a foreign todo is reported as not found.
Admins may read any todo, and every such read is audited.
"""

import logging
from uuid import UUID, uuid4

from auth.guard import require_ownership
from auth.types import Principal
from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from core.errors import NotFoundError
from core.models import Todo, TodoCreate, TodoUpdate
from utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)

# Columns a client may set directly through TodoUpdate
_UPDATABLE_COLUMNS = {"title", "description", "due_date"}


class TodoService:
    """Service for todo operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, clock: Clock = now_utc):
        self.postgres = postgres
        self.audit = audit
        self._clock = clock

    def create(self, owner: Principal, data: TodoCreate) -> Todo:
        """
        Create a new todo owned by `owner`.

        Returns:
            Created todo
        """
        now = self._clock()

        row = self.postgres.execute_returning(
            """
            INSERT INTO todos (
                id, owner_id, title, description, due_date,
                is_completed, completed_at, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s,
                FALSE, NULL, %s, %s
            )
            RETURNING *
            """,
            (uuid4(), owner.id, data.title, data.description, data.due_date, now, now),
        )[0]

        todo = Todo.model_validate(row)
        logger.info(f"Todo {todo.id} created for {owner.id}")
        return todo

    def get(self, principal: Principal, todo_id: UUID, rationale: str | None = None) -> Todo:
        """
        Get todo by ID.

        Admin reads run in a transaction with their audit entry; if the
        audit insert fails the read fails.

        Raises:
            NotFoundError: Absent, or owned by another user.
        """
        if principal.is_admin:
            with self.postgres.transaction() as tx:
                row = tx.execute_single(
                    "SELECT * FROM todos WHERE id = %s AND deleted_at IS NULL",
                    (todo_id,),
                )
                if row is None:
                    raise NotFoundError("Todo not found")
                todo = Todo.model_validate(row)
                self.audit.record_admin_view(principal.id, todo.owner_id, todo.id, rationale, tx=tx)
            return todo

        row = self.postgres.execute_single(
            "SELECT * FROM todos WHERE id = %s AND deleted_at IS NULL",
            (todo_id,),
        )
        if row is None:
            raise NotFoundError("Todo not found")

        todo = Todo.model_validate(row)
        require_ownership(principal, todo.owner_id, NotFoundError)
        return todo

    def update(self, principal: Principal, todo_id: UUID, data: TodoUpdate) -> Todo:
        """
        Update todo fields.

        Only fields present in the request are touched. Setting is_completed
        stamps completed_at on the transition to done and clears it when
        reopened, so completed_at is set exactly when is_completed is true.

        Raises:
            NotFoundError: Absent, or owned by another user.
        """
        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                "SELECT * FROM todos WHERE id = %s AND deleted_at IS NULL FOR UPDATE",
                (todo_id,),
            )
            if row is None:
                raise NotFoundError("Todo not found")

            current = Todo.model_validate(row)
            require_ownership(principal, current.owner_id, NotFoundError)

            now = self._clock()
            set_parts = []
            params = []

            for field in sorted(data.model_fields_set & _UPDATABLE_COLUMNS):
                set_parts.append(f"{field} = %s")
                params.append(getattr(data, field))

            if "is_completed" in data.model_fields_set:
                if data.is_completed and not current.is_completed:
                    set_parts.extend(["is_completed = TRUE", "completed_at = %s"])
                    params.append(now)
                elif not data.is_completed:
                    set_parts.extend(["is_completed = FALSE", "completed_at = NULL"])

            if not set_parts:
                return current

            set_parts.append("updated_at = %s")
            params.extend([now, todo_id])

            row = tx.execute_returning(
                f"""
                UPDATE todos
                SET {', '.join(set_parts)}
                WHERE id = %s
                RETURNING *
                """,
                tuple(params),
            )[0]

        return Todo.model_validate(row)

    def list_for_owner(self, owner: Principal, limit: int = 50, offset: int = 0) -> list[Todo]:
        """
        List the owner's live todos, newest first.
        """
        rows = self.postgres.execute(
            """
            SELECT * FROM todos
            WHERE owner_id = %s AND deleted_at IS NULL
            ORDER BY created_at DESC, id
            LIMIT %s OFFSET %s
            """,
            (owner.id, limit, offset),
        )
        return [Todo.model_validate(row) for row in rows]
