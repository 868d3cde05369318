"""Admin audit log routes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, Request
from pydantic import ValidationError as PydanticValidationError

from api.base import request_id_of, success_response
from core.audit import AuditLogger
from core.errors import ValidationError
from core.models import AuditAction, AuditLogSearch


def create_audit_router(audit: AuditLogger) -> APIRouter:
    """Create audit log router. Mounted under /todoList."""
    router = APIRouter(tags=["audit"])

    @router.get("/admin/auditLogs")
    def search_audit_logs(
        request: Request,
        admin_id: UUID | None = Query(None),
        user_id: UUID | None = Query(None),
        todo_id: UUID | None = Query(None),
        action: AuditAction | None = Query(None),
        rationale: str | None = Query(None, min_length=1, max_length=255),
        created_from: datetime | None = Query(None),
        created_to: datetime | None = Query(None),
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ):
        try:
            filters = AuditLogSearch(
                admin_id=admin_id,
                user_id=user_id,
                todo_id=todo_id,
                action=action,
                rationale=rationale,
                created_from=created_from,
                created_to=created_to,
                limit=limit,
                offset=offset,
            )
        except PydanticValidationError as e:
            raise ValidationError(str(e.errors(include_url=False))) from None

        entries, total = audit.search(filters)
        return success_response(
            {
                "items": [entry.model_dump(mode="json") for entry in entries],
                "total": total,
                "limit": filters.limit,
                "offset": filters.offset,
            },
            request_id_of(request),
        )

    @router.get("/admin/auditLogs/{audit_log_id}")
    def get_audit_log(request: Request, audit_log_id: UUID):
        entry = audit.get_by_id(audit_log_id)
        return success_response(entry.model_dump(mode="json"), request_id_of(request))

    return router
