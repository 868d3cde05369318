"""Admin account management routes."""

from uuid import UUID

from fastapi import APIRouter, Request, Response

from core.services.account_service import AccountService


def create_accounts_router(account_service: AccountService) -> APIRouter:
    """Create account router. Mounted under /todoList."""
    router = APIRouter(tags=["accounts"])

    @router.delete("/admin/admins/{admin_id}", status_code=204)
    def delete_admin(request: Request, admin_id: UUID):
        """409 if this is the last active admin."""
        account_service.delete_admin(request.state.principal, admin_id)
        return Response(status_code=204)

    @router.delete("/admin/users/{user_id}", status_code=204)
    def delete_user(request: Request, user_id: UUID):
        account_service.delete_user(request.state.principal, user_id)
        return Response(status_code=204)

    return router
