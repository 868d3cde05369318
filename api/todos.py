"""Todo routes for users (own todos) and admins (any todo, audited)."""

from uuid import UUID

from fastapi import APIRouter, Query, Request, Response

from api.base import request_id_of, success_response
from core.models import TodoCreate, TodoUpdate
from core.services.deletion_service import DeletionService
from core.services.todo_service import TodoService


def create_todos_router(todo_service: TodoService, deletion_service: DeletionService) -> APIRouter:
    """Create todo router. Mounted under /todoList; AuthMiddleware sets request.state.principal."""
    router = APIRouter(tags=["todos"])

    # -------------------------------------------------------------------------
    # User routes
    # -------------------------------------------------------------------------

    @router.post("/user/todos", status_code=201)
    def create_todo(request: Request, body: TodoCreate):
        todo = todo_service.create(request.state.principal, body)
        return success_response(todo.model_dump(mode="json"), request_id_of(request))

    @router.get("/user/todos")
    def list_todos(
        request: Request,
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        todos = todo_service.list_for_owner(request.state.principal, limit=limit, offset=offset)
        return success_response(
            [t.model_dump(mode="json") for t in todos],
            request_id_of(request),
        )

    @router.get("/user/todos/{todo_id}")
    def get_todo(request: Request, todo_id: UUID):
        todo = todo_service.get(request.state.principal, todo_id)
        return success_response(todo.model_dump(mode="json"), request_id_of(request))

    @router.put("/user/todos/{todo_id}")
    def update_todo(request: Request, todo_id: UUID, body: TodoUpdate):
        todo = todo_service.update(request.state.principal, todo_id, body)
        return success_response(todo.model_dump(mode="json"), request_id_of(request))

    @router.delete("/user/todos/{todo_id}", status_code=204)
    def delete_todo(request: Request, todo_id: UUID):
        deletion_service.delete_todo(request.state.principal, todo_id)
        return Response(status_code=204)

    @router.get("/user/deletedTodoLogs")
    def list_deleted_logs(
        request: Request,
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        logs = deletion_service.list_deleted_logs(request.state.principal, limit=limit, offset=offset)
        return success_response(
            [log.model_dump(mode="json") for log in logs],
            request_id_of(request),
        )

    @router.get("/user/deletedTodoLogs/{log_id}")
    def get_deleted_log(request: Request, log_id: UUID):
        log = deletion_service.get_deleted_log(request.state.principal, log_id)
        return success_response(log.model_dump(mode="json"), request_id_of(request))

    # -------------------------------------------------------------------------
    # Admin routes
    # -------------------------------------------------------------------------

    @router.get("/admin/todos/{todo_id}")
    def admin_get_todo(
        request: Request,
        todo_id: UUID,
        rationale: str | None = Query(None, max_length=255),
    ):
        """Read any user's todo. Writes a `view` audit entry."""
        todo = todo_service.get(request.state.principal, todo_id, rationale=rationale)
        return success_response(todo.model_dump(mode="json"), request_id_of(request))

    @router.delete("/admin/todos/{todo_id}", status_code=204)
    def admin_delete_todo(
        request: Request,
        todo_id: UUID,
        rationale: str | None = Query(None, max_length=255),
    ):
        """Delete any user's todo. Writes a snapshot and a `delete` audit entry."""
        deletion_service.delete_todo(request.state.principal, todo_id, rationale=rationale)
        return Response(status_code=204)

    return router
