"""Pydantic models for auth domain."""

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class PrincipalType(str, Enum):
    """Discriminator carried in every token as the `type` claim."""

    USER = "user"
    ADMIN = "admin"


class PrincipalRecord(BaseModel):
    """A stored user or admin row. Internal only - never returned to clients."""

    id: UUID
    email: EmailStr
    password_hash: str = Field(..., repr=False)
    status: str = "active"
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def is_active(self) -> bool:
        """Login and authorization require an undeleted, active account."""
        return self.deleted_at is None and self.status == "active"


class Principal(BaseModel):
    """Minimal authenticated identity handed to business operations."""

    id: UUID
    type: PrincipalType
    session_id: UUID | None = None

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.type is PrincipalType.ADMIN


class SessionMeta(BaseModel):
    """Client details recorded with a session."""

    user_agent: str | None = None
    ip_address: str | None = None


class Session(BaseModel):
    """One issued refresh credential. Revoked, never deleted."""

    id: UUID
    principal_type: PrincipalType
    principal_id: UUID
    token_hash: str = Field(..., description="SHA-256 hex digest of the refresh token", repr=False)
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    user_agent: str | None = None
    ip_address: str | None = None

    model_config = {"from_attributes": True}

    def is_usable(self, now: datetime) -> bool:
        return self.revoked_at is None and self.expires_at > now


class TokenPayload(BaseModel):
    """Verified claims of an access or refresh token."""

    id: UUID
    type: PrincipalType
    purpose: Literal["access", "refresh"]
    session_id: UUID
    jti: str
    issued_at: datetime
    expires_at: datetime


class IssuedTokens(BaseModel):
    """Access/refresh pair with absolute expiries."""

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


class AuthorizationToken(BaseModel):
    """Token block returned by join/login/refresh."""

    access: str
    refresh: str
    expired_at: datetime
    refreshable_until: datetime

    @classmethod
    def from_issued(cls, issued: IssuedTokens) -> "AuthorizationToken":
        return cls(
            access=issued.access_token,
            refresh=issued.refresh_token,
            expired_at=issued.access_expires_at,
            refreshable_until=issued.refresh_expires_at,
        )


class AuthorizedPrincipal(BaseModel):
    """Result of a successful join/login/refresh."""

    id: UUID
    token: AuthorizationToken


class PasswordResetToken(BaseModel):
    """A stored password reset token awaiting use."""

    id: UUID
    user_id: UUID
    token_hash: str = Field(..., repr=False)
    created_at: datetime
    expires_at: datetime
    used_at: datetime | None = None

    model_config = {"from_attributes": True}


# Request bodies


class JoinRequest(BaseModel):
    """Registration payload."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    """Login payload."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    """Refresh payload."""

    refresh_token: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    """Request a password reset email."""

    email: EmailStr


class PasswordResetConfirm(BaseModel):
    """Complete a password reset."""

    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)
