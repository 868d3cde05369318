"""Core domain models."""

from core.models.todo import Todo, TodoCreate, TodoUpdate
from core.models.deleted_todo_log import DeletedTodoLog
from core.models.audit_log import AdminAuditLog, AuditAction, AuditLogSearch

__all__ = [
    # Todo
    "Todo", "TodoCreate", "TodoUpdate",
    # DeletedTodoLog
    "DeletedTodoLog",
    # AdminAuditLog
    "AdminAuditLog", "AuditAction", "AuditLogSearch",
]
