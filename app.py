"""
Application assembly.

Settings are loaded once (secrets from Vault), turned into an explicit
Dependencies container, and handed to create_app(). Nothing below the
HTTP layer reads globals.

Run with any ASGI server using the factory, e.g.:
    uvicorn app:create_app_from_env --factory
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request
from pydantic import BaseModel, Field

from api.accounts import create_accounts_router
from api.audit import create_audit_router
from api.base import request_id_of, success_response
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.todos import create_todos_router
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.guard import AuthorizationGuard
from auth.passwords import CredentialStore
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import SessionStore
from auth.tokens import TokenService
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import (
    get_database_url,
    get_email_config,
    get_jwt_secret,
    get_valkey_url,
)
from core.audit import AuditLogger
from core.services.account_service import AccountService
from core.services.deletion_service import DeletionService
from core.services.todo_service import TodoService
from utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)


class AppSettings(BaseModel):
    """Everything needed to build the application."""

    database_url: str = Field(..., min_length=1)
    valkey_url: str = Field(..., min_length=1)
    jwt_secret: str = Field(..., min_length=32, repr=False)
    email_gateway_url: str = Field(..., min_length=1)
    email_api_key: str = Field(..., min_length=1, repr=False)
    email_hmac_secret: str = Field(..., min_length=1, repr=False)
    auth: AuthConfig = Field(default_factory=AuthConfig)


def load_settings(auth: AuthConfig | None = None) -> AppSettings:
    """
    Read secrets from Vault.

    Raises:
        VaultError: Vault environment variables missing.
        PermissionError: Secret path not accessible.
    """
    email = get_email_config()
    return AppSettings(
        database_url=get_database_url(),
        valkey_url=get_valkey_url(),
        jwt_secret=get_jwt_secret(),
        email_gateway_url=email["gateway_url"],
        email_api_key=email["api_key"],
        email_hmac_secret=email["hmac_secret"],
        auth=auth or AuthConfig(),
    )


@dataclass
class Dependencies:
    """Explicitly wired collaborators for one application instance."""

    config: AuthConfig
    postgres: PostgresClient
    valkey: ValkeyClient
    auth_service: AuthService
    guard: AuthorizationGuard
    todo_service: TodoService
    deletion_service: DeletionService
    account_service: AccountService
    audit: AuditLogger


def build_dependencies(settings: AppSettings, clock: Clock = now_utc) -> Dependencies:
    """Connect to infrastructure and wire every service."""
    config = settings.auth
    postgres = PostgresClient(settings.database_url)
    valkey = ValkeyClient(settings.valkey_url)

    auth_db = AuthDatabase(postgres, clock=clock)
    sessions = SessionStore(postgres, clock=clock)
    tokens = TokenService(config, settings.jwt_secret, clock=clock)
    security_logger = SecurityLogger(postgres, clock=clock)
    audit = AuditLogger(postgres, clock=clock)

    auth_service = AuthService(
        config=config,
        postgres=postgres,
        auth_db=auth_db,
        sessions=sessions,
        tokens=tokens,
        credentials=CredentialStore(),
        rate_limiter=RateLimiter(valkey, config),
        security_logger=security_logger,
        email_client=EmailGatewayClient(
            gateway_url=settings.email_gateway_url,
            api_key=settings.email_api_key,
            hmac_secret=settings.email_hmac_secret,
        ),
        clock=clock,
    )

    return Dependencies(
        config=config,
        postgres=postgres,
        valkey=valkey,
        auth_service=auth_service,
        guard=AuthorizationGuard(tokens, auth_db),
        todo_service=TodoService(postgres, audit, clock=clock),
        deletion_service=DeletionService(
            postgres,
            audit,
            retention_days=config.deleted_todo_retention_days,
            clock=clock,
        ),
        account_service=AccountService(postgres, auth_db, sessions, security_logger),
        audit=audit,
    )


def create_app(deps: Dependencies) -> FastAPI:
    """FastAPI app with auth middleware, error handlers, and all routes."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        deps.postgres.close()
        deps.valkey.close()
        logger.info("Connections closed")

    app = FastAPI(title=deps.config.app_name, lifespan=lifespan)

    # Last added runs first: request IDs exist before authentication
    app.add_middleware(AuthMiddleware, guard=deps.guard)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_auth_router(deps.auth_service), prefix="/auth")
    app.include_router(
        create_todos_router(deps.todo_service, deps.deletion_service),
        prefix="/todoList",
    )
    app.include_router(create_audit_router(deps.audit), prefix="/todoList")
    app.include_router(create_accounts_router(deps.account_service), prefix="/todoList")

    @app.get("/health")
    def health(request: Request):
        return success_response({"status": "ok"}, request_id_of(request))

    return app


def create_app_from_env() -> FastAPI:
    """Factory for ASGI servers: load settings from Vault and build the app."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return create_app(build_dependencies(load_settings()))
