"""Todo domain models."""

import unicodedata
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


def _clean_title(value: str) -> str:
    """Trim and reject titles that are blank or carry control characters."""
    value = value.strip()
    if not value:
        raise ValueError("title must not be blank")
    if any(unicodedata.category(ch).startswith("C") for ch in value):
        raise ValueError("title must not contain control characters")
    return value


class TodoCreate(BaseModel):
    """Data required to create a todo."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    due_date: datetime | None = None

    @field_validator("title")
    @classmethod
    def clean_title(cls, value: str) -> str:
        return _clean_title(value)


class TodoUpdate(BaseModel):
    """
    Data that can be updated on a todo. All fields optional.

    An omitted field is left alone; an explicit null clears a nullable
    field. The service reads `model_fields_set` to tell the two apart.
    """

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    due_date: datetime | None = None
    is_completed: bool | None = None

    @field_validator("title")
    @classmethod
    def clean_title(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError("title cannot be cleared")
        return _clean_title(value)

    @field_validator("is_completed")
    @classmethod
    def completion_not_null(cls, value: bool | None) -> bool | None:
        if value is None:
            raise ValueError("is_completed cannot be null")
        return value


class Todo(BaseModel):
    """Full todo entity as stored."""

    id: UUID
    owner_id: UUID
    title: str
    description: str | None = None
    due_date: datetime | None = None
    is_completed: bool = False
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}
