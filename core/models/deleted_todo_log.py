"""Snapshots of deleted todos."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class DeletedTodoLog(BaseModel):
    """
    Immutable copy of a todo at the moment it was deleted.

    Written in the same transaction as the delete, never updated.
    `retention_expires_at` is None when snapshots are kept forever.
    """

    id: UUID
    original_todo_id: UUID
    owner_id: UUID
    title: str
    description: str | None = None
    due_date: datetime | None = None
    is_completed: bool
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime
    retention_expires_at: datetime | None = None

    model_config = {"from_attributes": True}

    def is_retained(self, now: datetime) -> bool:
        return self.retention_expires_at is None or self.retention_expires_at > now
