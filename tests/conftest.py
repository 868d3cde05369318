"""Shared test fixtures for the todo list test suite.

Unit tests need no external services. Database-backed tests live in
tests/integration and skip unless TEST_DATABASE_URL is set.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env")

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from auth.config import AuthConfig
from auth.types import Principal, PrincipalRecord, PrincipalType
from clients.postgres_client import PostgresClient, Transaction


# =============================================================================
# TEST PRINCIPAL CONSTANTS
# =============================================================================

# Primary test user - owns the todos in most tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "testuser@example.com"

# Secondary test user - use for ownership isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")
TEST_USER_B_EMAIL = "testuser-b@example.com"

TEST_ADMIN_ID = UUID("00000000-0000-0000-0000-0000000000a1")
TEST_ADMIN_EMAIL = "admin@example.com"

TEST_SESSION_ID = UUID("00000000-0000-0000-0000-0000000000f1")

JWT_SECRET = "test-secret-key-that-is-at-least-32-bytes-long"

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock. Call to read, advance() to move forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


# =============================================================================
# PRINCIPAL FIXTURES
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(
        rate_limit_attempts=3,
        rate_limit_window_minutes=5,
        app_base_url="https://test.example.com",
    )


@pytest.fixture
def user() -> Principal:
    """The primary test user as an authenticated principal."""
    return Principal(id=TEST_USER_ID, type=PrincipalType.USER, session_id=TEST_SESSION_ID)


@pytest.fixture
def user_b() -> Principal:
    """The secondary test user (for isolation tests)."""
    return Principal(id=TEST_USER_B_ID, type=PrincipalType.USER)


@pytest.fixture
def admin() -> Principal:
    return Principal(id=TEST_ADMIN_ID, type=PrincipalType.ADMIN, session_id=TEST_SESSION_ID)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def tx() -> Mock:
    """Mock transaction handed out by the mocked PostgresClient."""
    return Mock(spec=Transaction)


@pytest.fixture
def postgres(tx) -> Mock:
    """
    Mock PostgresClient whose transaction() yields `tx`.

    Records whether the last transaction block committed or rolled back in
    postgres.outcomes, mirroring PostgresClient.transaction semantics.
    """
    mock = Mock(spec=PostgresClient)
    mock.outcomes = []

    @contextmanager
    def _transaction():
        try:
            yield tx
        except BaseException:
            mock.outcomes.append("rollback")
            raise
        mock.outcomes.append("commit")

    mock.transaction.side_effect = _transaction
    return mock


# =============================================================================
# RECORD BUILDERS
# =============================================================================


def principal_record(
    principal_id: UUID = TEST_USER_ID,
    email: str = TEST_USER_EMAIL,
    password_hash: str = "$argon2id$stored-hash",
    **overrides,
) -> PrincipalRecord:
    """Stored user/admin row as AuthDatabase returns it."""
    fields = {
        "id": principal_id,
        "email": email,
        "password_hash": password_hash,
        "status": "active",
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    fields.update(overrides)
    return PrincipalRecord(**fields)


def todo_row(
    todo_id: UUID,
    owner_id: UUID = TEST_USER_ID,
    **overrides,
) -> dict:
    """Row dict as a RealDictCursor returns it from the todos table."""
    row = {
        "id": todo_id,
        "owner_id": owner_id,
        "title": "Buy milk",
        "description": None,
        "due_date": None,
        "is_completed": False,
        "completed_at": None,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
        "deleted_at": None,
    }
    row.update(overrides)
    return row


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================


@pytest.fixture
def deps(user, admin):
    """
    Dependencies with every collaborator mocked.

    The guard accepts any bearer token and returns `user` or `admin`
    according to the route family being accessed.
    """
    from app import Dependencies
    from auth.guard import AuthorizationGuard
    from auth.service import AuthService
    from clients.valkey_client import ValkeyClient
    from core.audit import AuditLogger
    from core.services.account_service import AccountService
    from core.services.deletion_service import DeletionService
    from core.services.todo_service import TodoService

    guard = Mock(spec=AuthorizationGuard)
    guard.authenticate.side_effect = (
        lambda header, expected_type: admin if expected_type is PrincipalType.ADMIN else user
    )

    return Dependencies(
        config=AuthConfig(),
        postgres=Mock(spec=PostgresClient),
        valkey=Mock(spec=ValkeyClient),
        auth_service=Mock(spec=AuthService),
        guard=guard,
        todo_service=Mock(spec=TodoService),
        deletion_service=Mock(spec=DeletionService),
        account_service=Mock(spec=AccountService),
        audit=Mock(spec=AuditLogger),
    )


@pytest.fixture
def client(deps):
    """TestClient for the fully assembled app. Sends a bearer token by default."""
    from fastapi.testclient import TestClient
    from app import create_app

    test_client = TestClient(create_app(deps), raise_server_exceptions=False)
    test_client.headers["Authorization"] = "Bearer test-access-token"
    return test_client
