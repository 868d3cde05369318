"""Tests for AuthDatabase query construction."""

from datetime import timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest

from auth.database import AuthDatabase
from auth.types import PrincipalType
from clients.postgres_client import PostgresClient
from tests.conftest import FIXED_NOW, TEST_ADMIN_ID, TEST_USER_ID, principal_record


@pytest.fixture
def db():
    return Mock(spec=PostgresClient)


@pytest.fixture
def auth_db(db, clock):
    return AuthDatabase(db, clock=clock)


class TestLookup:
    def test_email_lookup_case_insensitive(self, auth_db, db):
        db.execute_single.return_value = principal_record().model_dump()

        record = auth_db.get_by_email(PrincipalType.USER, "  TestUser@Example.com ")

        query, params = db.execute_single.call_args[0]
        assert "FROM users WHERE email = lower(%s)" in query
        assert params == ("TestUser@Example.com",)
        assert record.id == TEST_USER_ID

    def test_admin_table_selected_by_type(self, auth_db, db):
        db.execute_single.return_value = None

        assert auth_db.get_by_id(PrincipalType.ADMIN, TEST_ADMIN_ID) is None
        assert "FROM admins" in db.execute_single.call_args[0][0]

    def test_lookup_joins_transaction(self, auth_db, db, tx):
        tx.execute_single.return_value = None

        auth_db.get_by_id(PrincipalType.USER, TEST_USER_ID, tx=tx)

        db.execute_single.assert_not_called()
        tx.execute_single.assert_called_once()


class TestCreate:
    def test_duplicate_email_returns_none(self, auth_db, db):
        db.execute_returning.return_value = []

        assert auth_db.create(PrincipalType.USER, "taken@example.com", "hash") is None
        assert "ON CONFLICT (email) DO NOTHING" in db.execute_returning.call_args[0][0]

    def test_created_record_returned(self, auth_db, db):
        db.execute_returning.return_value = [principal_record().model_dump()]

        record = auth_db.create(PrincipalType.USER, "testuser@example.com", "hash")

        assert record.email == "testuser@example.com"


class TestSoftDelete:
    def test_only_live_rows(self, auth_db, tx):
        tx.execute_returning.return_value = [{"id": TEST_USER_ID}]

        assert auth_db.soft_delete(PrincipalType.USER, TEST_USER_ID, tx=tx) is True
        assert "deleted_at IS NULL" in tx.execute_returning.call_args[0][0]

    def test_missing_returns_false(self, auth_db, db):
        db.execute_returning.return_value = []
        assert auth_db.soft_delete(PrincipalType.ADMIN, uuid4()) is False


class TestAdminLocks:
    def test_locks_active_admins(self, auth_db, tx):
        other = uuid4()
        tx.execute.return_value = [{"id": TEST_ADMIN_ID}, {"id": other}]

        ids = auth_db.lock_active_admin_ids(tx)

        assert ids == [TEST_ADMIN_ID, other]
        assert "FOR UPDATE" in tx.execute.call_args[0][0]


class TestResetTokens:
    def test_lock_filters_used_and_expired(self, auth_db, tx):
        tx.execute_single.return_value = None

        assert auth_db.lock_usable_reset_token(tx, "a" * 64) is None

        query = tx.execute_single.call_args[0][0]
        assert "used_at IS NULL AND expires_at > %s" in query
        assert "FOR UPDATE" in query

    def test_lock_compares_expiry_against_injected_clock(self, auth_db, tx, clock):
        clock.advance(timedelta(hours=2))
        tx.execute_single.return_value = None

        auth_db.lock_usable_reset_token(tx, "a" * 64)

        assert tx.execute_single.call_args[0][1] == ("a" * 64, FIXED_NOW + timedelta(hours=2))

    def test_mark_used_stamps_injected_clock(self, auth_db, tx):
        token_id = uuid4()

        auth_db.mark_reset_token_used(tx, token_id)

        assert tx.execute_returning.call_args[0][1] == (FIXED_NOW, token_id)


class TestTimestamps:
    """Write timestamps come from the injected clock."""

    def test_create_stamps_created_and_updated(self, auth_db, db):
        db.execute_returning.return_value = []

        auth_db.create(PrincipalType.USER, "new@example.com", "hash")

        params = db.execute_returning.call_args[0][1]
        assert params[-2:] == (FIXED_NOW, FIXED_NOW)

    def test_create_joins_transaction(self, auth_db, db, tx):
        tx.execute_returning.return_value = [principal_record().model_dump()]

        auth_db.create(PrincipalType.USER, "testuser@example.com", "hash", tx=tx)

        db.execute_returning.assert_not_called()
        tx.execute_returning.assert_called_once()

    def test_last_login_uses_clock(self, auth_db, db):
        auth_db.update_last_login(PrincipalType.ADMIN, TEST_ADMIN_ID)

        assert db.execute_returning.call_args[0][1] == (FIXED_NOW, TEST_ADMIN_ID)

    def test_soft_delete_uses_clock(self, auth_db, tx):
        tx.execute_returning.return_value = [{"id": TEST_USER_ID}]

        auth_db.soft_delete(PrincipalType.USER, TEST_USER_ID, tx=tx)

        assert tx.execute_returning.call_args[0][1] == (FIXED_NOW, FIXED_NOW, TEST_USER_ID)
