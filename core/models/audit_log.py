"""Admin audit log models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AuditAction(str, Enum):
    """Privileged admin action on a user's todo."""

    VIEW = "view"
    DELETE = "delete"


class AdminAuditLog(BaseModel):
    """One privileged admin action. Never mutated or deleted."""

    id: UUID
    admin_id: UUID
    user_id: UUID
    todo_id: UUID
    action: AuditAction
    rationale: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogSearch(BaseModel):
    """Filters for searching the admin audit log. Unset filters match everything."""

    admin_id: UUID | None = None
    user_id: UUID | None = None
    todo_id: UUID | None = None
    action: AuditAction | None = None
    rationale: str | None = Field(None, min_length=1, max_length=255, description="Substring match")
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)

    @model_validator(mode="after")
    def ordered_range(self) -> "AuditLogSearch":
        if self.created_from and self.created_to and self.created_from > self.created_to:
            raise ValueError("created_from must not be after created_to")
        return self
