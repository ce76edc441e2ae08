"""
Admin panel API. Every route re-checks the caller's admin flag through
``AdminService``; non-admins get 403.
"""

from typing import Optional
import structlog
from fastapi import APIRouter, Depends, Query

from ..auth.dependencies import get_admin_service
from ..exceptions import NotFoundError
from ..models.user_models import (
    AdminFlagUpdate, AdminOverview, AdminStatusUpdate, AdminUser, UserPage
)
from ..services.admin_service import AdminService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/status")
async def admin_status(admin: AdminService = Depends(get_admin_service)):
    """Whether the caller is an admin. Never raises for non-admins."""
    return {"is_admin": admin.is_admin}


@router.get("/overview", response_model=AdminOverview)
async def get_overview(admin: AdminService = Depends(get_admin_service)):
    return admin.get_overview()


@router.get("/users", response_model=UserPage)
async def list_users(
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
    search: Optional[str] = Query(None, description="Email or display name substring"),
    admin: AdminService = Depends(get_admin_service)
):
    """Page through users, newest first."""
    page = admin.list_users(cursor=cursor, search=search)
    logger.info("Listed users", actor_id=admin.actor_id, count=len(page.users),
               has_more=page.next_cursor is not None)
    return page


@router.get("/users/{user_id}", response_model=AdminUser)
async def get_user(user_id: str, admin: AdminService = Depends(get_admin_service)):
    user = admin.get_user_details(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


@router.put("/users/{user_id}/admin", response_model=AdminUser)
async def update_admin_flag(
    user_id: str,
    request: AdminFlagUpdate,
    admin: AdminService = Depends(get_admin_service)
):
    """Grant or revoke admin rights. Pass ``expected_version`` to detect lost updates."""
    return admin.update_user_admin(user_id, request.is_admin, request.expected_version)


@router.put("/users/{user_id}/status", response_model=AdminUser)
async def update_status(
    user_id: str,
    request: AdminStatusUpdate,
    admin: AdminService = Depends(get_admin_service)
):
    """Suspend or reactivate a user."""
    return admin.update_user_status(user_id, request.is_active, request.expected_version)


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, admin: AdminService = Depends(get_admin_service)):
    admin.delete_user_account(user_id)
    return {"status": "deleted", "user_id": user_id}
