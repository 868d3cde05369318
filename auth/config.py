"""Authentication configuration."""

from pydantic import BaseModel, Field, model_validator


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    Token lifetimes are in seconds because they feed JWT exp claims
    directly; everything else uses its natural unit.
    """

    # Token settings
    access_token_expiry_seconds: int = Field(
        default=3600,  # 1 hour
        description="Access token lifetime",
        ge=60,
        le=86400,
    )
    refresh_token_expiry_seconds: int = Field(
        default=604800,  # 7 days
        description="Refresh token (and session) lifetime",
        ge=300,
        le=7776000,  # 90 days
    )
    jwt_issuer: str = Field(
        default="todolist",
        description="iss claim written to and required on every token",
        min_length=1,
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="HMAC algorithm for the single signing secret",
        pattern=r"^HS(256|384|512)$",
    )

    # Password reset
    password_reset_expiry_minutes: int = Field(
        default=60,
        description="How long password reset tokens remain valid",
        ge=5,
        le=1440,
    )

    # Rate limiting
    rate_limit_attempts: int = Field(
        default=5,
        description="Max login attempts per email per window",
        ge=1,
        le=20,
    )
    rate_limit_window_minutes: int = Field(
        default=15,
        description="Rate limit window duration",
        ge=5,
        le=60,
    )

    # Deleted todo snapshots
    deleted_todo_retention_days: int | None = Field(
        default=90,
        description="Days a deleted todo snapshot stays readable; None keeps it forever",
        ge=1,
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL for password reset links",
    )
    app_name: str = Field(
        default="Todo List",
        description="Application name for emails",
    )

    @model_validator(mode="after")
    def refresh_outlives_access(self) -> "AuthConfig":
        """Refresh tokens must always expire after the access tokens issued with them."""
        if self.refresh_token_expiry_seconds <= self.access_token_expiry_seconds:
            raise ValueError(
                "refresh_token_expiry_seconds must be greater than access_token_expiry_seconds"
            )
        return self
