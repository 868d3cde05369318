"""
Fixtures for tests against a real PostgreSQL database.

Set TEST_DATABASE_URL to a throwaway database; every table in its public
schema is dropped and recreated from schema.sql once per run.
"""

import os
from pathlib import Path
from unittest.mock import Mock

import pytest
from argon2 import PasswordHasher

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.passwords import CredentialStore
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.session import SessionStore
from auth.tokens import TokenService
from auth.types import Principal, PrincipalType
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from tests.conftest import JWT_SECRET

SCHEMA_PATH = Path(__file__).parent.parent.parent / "schema.sql"

_TABLES = (
    "security_events, password_reset_tokens, admin_audit_logs, deleted_todo_logs, "
    "todos, sessions, admins, users"
)


@pytest.fixture(scope="session")
def db():
    """PostgresClient on a freshly created schema."""
    database_url = os.getenv("TEST_DATABASE_URL")
    if not database_url:
        pytest.skip("TEST_DATABASE_URL not set")

    client = PostgresClient(database_url)
    client.execute("DROP SCHEMA public CASCADE")
    client.execute("CREATE SCHEMA public")
    client.execute(SCHEMA_PATH.read_text())

    yield client

    client.close()


@pytest.fixture(autouse=True)
def clean_tables(db):
    """Empty every table before each test."""
    db.execute(f"TRUNCATE {_TABLES}")


@pytest.fixture
def auth_db(db):
    return AuthDatabase(db)


@pytest.fixture
def sessions(db):
    return SessionStore(db)


@pytest.fixture
def audit(db):
    return AuditLogger(db)


@pytest.fixture
def credentials():
    """Cheap argon2 parameters; strength is not under test here."""
    return CredentialStore(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def email_client():
    return Mock(spec=EmailGatewayClient)


@pytest.fixture
def auth_service(db, auth_db, sessions, credentials, email_client):
    """Real AuthService on the database; Valkey and email are mocked."""
    config = AuthConfig()
    return AuthService(
        config=config,
        postgres=db,
        auth_db=auth_db,
        sessions=sessions,
        tokens=TokenService(config, JWT_SECRET),
        credentials=credentials,
        rate_limiter=Mock(spec=RateLimiter),
        security_logger=SecurityLogger(db),
        email_client=email_client,
    )


@pytest.fixture
def stored_user(auth_db, credentials) -> Principal:
    record = auth_db.create(PrincipalType.USER, "owner@example.com", credentials.hash("correct horse"))
    return Principal(id=record.id, type=PrincipalType.USER)


@pytest.fixture
def stored_admin(auth_db, credentials) -> Principal:
    record = auth_db.create(PrincipalType.ADMIN, "root@example.com", credentials.hash("correct horse"))
    return Principal(id=record.id, type=PrincipalType.ADMIN)
