"""Tests for AuthorizationGuard and ownership checks."""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from auth.database import AuthDatabase
from auth.guard import (
    AuthorizationDecision,
    AuthorizationGuard,
    authorize_ownership,
    extract_bearer_token,
    require_ownership,
)
from auth.tokens import TokenService
from auth.types import PrincipalType
from core.errors import ForbiddenError, NotFoundError, UnauthenticatedError
from tests.conftest import (
    JWT_SECRET,
    TEST_ADMIN_EMAIL,
    TEST_ADMIN_ID,
    TEST_SESSION_ID,
    TEST_USER_ID,
    principal_record,
)


@pytest.fixture
def tokens(auth_config, clock):
    return TokenService(auth_config, JWT_SECRET, clock=clock)


@pytest.fixture
def auth_db():
    mock = Mock(spec=AuthDatabase)
    mock.get_by_id.return_value = principal_record()
    return mock


@pytest.fixture
def guard(tokens, auth_db):
    return AuthorizationGuard(tokens, auth_db)


@pytest.fixture
def user_access(tokens):
    issued = tokens.issue(TEST_USER_ID, PrincipalType.USER, TEST_SESSION_ID)
    return issued.access_token


class TestExtractBearerToken:
    """Authorization header parsing."""

    def test_extracts_token(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_case_insensitive(self):
        assert extract_bearer_token("bearer abc") == "abc"

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic abc", "Token abc", "Bearer a b"])
    def test_rejects_malformed(self, header):
        with pytest.raises(UnauthenticatedError):
            extract_bearer_token(header)


class TestAuthenticate:
    """Guard pipeline: header, token, type, principal state."""

    def test_returns_principal(self, guard, user_access):
        principal = guard.authenticate(f"Bearer {user_access}", PrincipalType.USER)

        assert principal.id == TEST_USER_ID
        assert principal.type is PrincipalType.USER
        assert principal.session_id == TEST_SESSION_ID

    def test_rereads_principal_row(self, guard, auth_db, user_access):
        guard.authenticate(f"Bearer {user_access}", PrincipalType.USER)
        auth_db.get_by_id.assert_called_once_with(PrincipalType.USER, TEST_USER_ID)

    def test_missing_header_unauthenticated(self, guard):
        with pytest.raises(UnauthenticatedError):
            guard.authenticate(None, PrincipalType.USER)

    def test_invalid_token_unauthenticated(self, guard):
        with pytest.raises(UnauthenticatedError):
            guard.authenticate("Bearer not-a-token", PrincipalType.USER)

    def test_refresh_token_not_accepted(self, guard, tokens):
        issued = tokens.issue(TEST_USER_ID, PrincipalType.USER, TEST_SESSION_ID)
        with pytest.raises(UnauthenticatedError):
            guard.authenticate(f"Bearer {issued.refresh_token}", PrincipalType.USER)

    def test_user_token_on_admin_route_forbidden(self, guard, auth_db, user_access):
        with pytest.raises(ForbiddenError):
            guard.authenticate(f"Bearer {user_access}", PrincipalType.ADMIN)
        auth_db.get_by_id.assert_not_called()

    def test_admin_token_on_user_route_forbidden(self, guard, tokens):
        issued = tokens.issue(TEST_ADMIN_ID, PrincipalType.ADMIN, TEST_SESSION_ID)
        with pytest.raises(ForbiddenError):
            guard.authenticate(f"Bearer {issued.access_token}", PrincipalType.USER)

    def test_deleted_principal_forbidden(self, guard, auth_db, user_access, clock):
        auth_db.get_by_id.return_value = principal_record(deleted_at=clock())
        with pytest.raises(ForbiddenError):
            guard.authenticate(f"Bearer {user_access}", PrincipalType.USER)

    def test_disabled_principal_forbidden(self, guard, auth_db, user_access):
        auth_db.get_by_id.return_value = principal_record(status="disabled")
        with pytest.raises(ForbiddenError):
            guard.authenticate(f"Bearer {user_access}", PrincipalType.USER)

    def test_missing_principal_forbidden(self, guard, auth_db, user_access):
        auth_db.get_by_id.return_value = None
        with pytest.raises(ForbiddenError):
            guard.authenticate(f"Bearer {user_access}", PrincipalType.USER)

    def test_forbidden_messages_identical(self, guard, auth_db, tokens, user_access):
        """Type mismatch and inactive account are indistinguishable to the caller."""
        messages = set()

        with pytest.raises(ForbiddenError) as exc_info:
            guard.authenticate(f"Bearer {user_access}", PrincipalType.ADMIN)
        messages.add(str(exc_info.value))

        auth_db.get_by_id.return_value = principal_record(status="disabled")
        with pytest.raises(ForbiddenError) as exc_info:
            guard.authenticate(f"Bearer {user_access}", PrincipalType.USER)
        messages.add(str(exc_info.value))

        assert len(messages) == 1

    def test_admin_authenticates_on_admin_route(self, guard, auth_db, tokens):
        auth_db.get_by_id.return_value = principal_record(TEST_ADMIN_ID, TEST_ADMIN_EMAIL)
        issued = tokens.issue(TEST_ADMIN_ID, PrincipalType.ADMIN, TEST_SESSION_ID)

        principal = guard.authenticate(f"Bearer {issued.access_token}", PrincipalType.ADMIN)

        assert principal.is_admin
        auth_db.get_by_id.assert_called_once_with(PrincipalType.ADMIN, TEST_ADMIN_ID)


class TestOwnership:
    """authorize_ownership / require_ownership."""

    def test_owner_allowed(self, user):
        assert authorize_ownership(user, user.id) is AuthorizationDecision.ALLOW

    def test_other_user_denied(self, user):
        assert authorize_ownership(user, uuid4()) is AuthorizationDecision.DENY

    def test_admin_always_allowed(self, admin):
        assert authorize_ownership(admin, uuid4()) is AuthorizationDecision.ALLOW

    def test_require_raises_forbidden_by_default(self, user):
        with pytest.raises(ForbiddenError):
            require_ownership(user, uuid4())

    def test_require_raises_chosen_error(self, user):
        with pytest.raises(NotFoundError):
            require_ownership(user, uuid4(), NotFoundError)

    def test_require_passes_for_owner(self, user):
        require_ownership(user, user.id)
