"""Tests for TodoService."""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from core.audit import AuditLogger
from core.errors import NotFoundError
from core.models import TodoCreate, TodoUpdate
from core.services.todo_service import TodoService
from tests.conftest import FIXED_NOW, TEST_USER_B_ID, TEST_USER_ID, todo_row


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def todo_service(postgres, audit, clock):
    return TodoService(postgres, audit, clock=clock)


class TestCreate:
    def test_create_owned_by_caller(self, todo_service, postgres, user):
        postgres.execute_returning.return_value = [todo_row(uuid4())]

        todo = todo_service.create(user, TodoCreate(title="Buy milk"))

        assert todo.owner_id == TEST_USER_ID
        params = postgres.execute_returning.call_args[0][1]
        assert params[1:] == (TEST_USER_ID, "Buy milk", None, None, FIXED_NOW, FIXED_NOW)


class TestGet:
    def test_owner_gets_todo(self, todo_service, postgres, audit, user):
        row = todo_row(uuid4())
        postgres.execute_single.return_value = row

        assert todo_service.get(user, row["id"]).id == row["id"]
        audit.record_admin_view.assert_not_called()

    def test_foreign_todo_not_found(self, todo_service, postgres, user):
        postgres.execute_single.return_value = todo_row(uuid4(), owner_id=TEST_USER_B_ID)

        with pytest.raises(NotFoundError):
            todo_service.get(user, uuid4())

    def test_missing_not_found(self, todo_service, postgres, user):
        postgres.execute_single.return_value = None

        with pytest.raises(NotFoundError):
            todo_service.get(user, uuid4())

    def test_admin_read_audited(self, todo_service, postgres, tx, audit, admin):
        row = todo_row(uuid4())
        tx.execute_single.return_value = row

        todo_service.get(admin, row["id"], rationale="support ticket")

        audit.record_admin_view.assert_called_once_with(
            admin.id, TEST_USER_ID, row["id"], "support ticket", tx=tx
        )
        assert postgres.outcomes == ["commit"]

    def test_admin_read_fails_when_audit_fails(self, todo_service, postgres, tx, audit, admin):
        tx.execute_single.return_value = todo_row(uuid4())
        audit.record_admin_view.side_effect = RuntimeError("audit insert failed")

        with pytest.raises(RuntimeError):
            todo_service.get(admin, uuid4())

        assert postgres.outcomes == ["rollback"]


class TestUpdate:
    """Partial updates and completion bookkeeping."""

    def test_only_sent_fields_updated(self, todo_service, tx, user):
        row = todo_row(uuid4())
        tx.execute_single.return_value = row
        tx.execute_returning.return_value = [dict(row, title="Buy oat milk")]

        todo = todo_service.update(user, row["id"], TodoUpdate(title="Buy oat milk"))

        assert todo.title == "Buy oat milk"
        query, params = tx.execute_returning.call_args[0]
        assert "title = %s" in query
        assert "description" not in query
        assert params == ("Buy oat milk", FIXED_NOW, row["id"])

    def test_explicit_null_clears_description(self, todo_service, tx, user):
        row = todo_row(uuid4(), description="old")
        tx.execute_single.return_value = row
        tx.execute_returning.return_value = [dict(row, description=None)]

        todo_service.update(user, row["id"], TodoUpdate(description=None))

        query, params = tx.execute_returning.call_args[0]
        assert "description = %s" in query
        assert params[0] is None

    def test_completing_stamps_completed_at(self, todo_service, tx, user):
        row = todo_row(uuid4())
        tx.execute_single.return_value = row
        tx.execute_returning.return_value = [dict(row, is_completed=True, completed_at=FIXED_NOW)]

        todo = todo_service.update(user, row["id"], TodoUpdate(is_completed=True))

        assert todo.completed_at == FIXED_NOW
        query, params = tx.execute_returning.call_args[0]
        assert "is_completed = TRUE" in query
        assert params == (FIXED_NOW, FIXED_NOW, row["id"])

    def test_reopening_clears_completed_at(self, todo_service, tx, user):
        row = todo_row(uuid4(), is_completed=True, completed_at=FIXED_NOW)
        tx.execute_single.return_value = row
        tx.execute_returning.return_value = [dict(row, is_completed=False, completed_at=None)]

        todo_service.update(user, row["id"], TodoUpdate(is_completed=False))

        query = tx.execute_returning.call_args[0][0]
        assert "completed_at = NULL" in query

    def test_completing_twice_is_noop(self, todo_service, tx, user):
        row = todo_row(uuid4(), is_completed=True, completed_at=FIXED_NOW)
        tx.execute_single.return_value = row

        todo = todo_service.update(user, row["id"], TodoUpdate(is_completed=True))

        assert todo.completed_at == FIXED_NOW
        tx.execute_returning.assert_not_called()

    def test_foreign_todo_not_found(self, todo_service, postgres, tx, user):
        tx.execute_single.return_value = todo_row(uuid4(), owner_id=TEST_USER_B_ID)

        with pytest.raises(NotFoundError):
            todo_service.update(user, uuid4(), TodoUpdate(title="mine now"))

        tx.execute_returning.assert_not_called()
        assert postgres.outcomes == ["rollback"]


class TestListForOwner:
    def test_scoped_to_owner(self, todo_service, postgres, user):
        postgres.execute.return_value = [todo_row(uuid4()), todo_row(uuid4())]

        todos = todo_service.list_for_owner(user, limit=2, offset=0)

        assert len(todos) == 2
        assert postgres.execute.call_args[0][1] == (TEST_USER_ID, 2, 0)
