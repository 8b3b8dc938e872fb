"""Users API router: listing and role assignment."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from techblog.core.guards import require_any_permission, require_permission
from techblog.db.session import get_db
from techblog.models.user import User
from techblog.schemas.schemas import UserListResponse, UserOut, UserRoleAssign
from techblog.services.audit_service import audit_service
from techblog.services.user_service import user_service

router = APIRouter(prefix="/admin/users", tags=["users"])


@router.get("/", response_model=UserListResponse)
async def list_users(
    email: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("users.read")),
):
    """List users, newest first."""
    return user_service.list_users(db, email, page, page_size)


@router.put("/{user_id}/role", response_model=UserOut)
async def assign_user_role(
    user_id: str,
    body: UserRoleAssign,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_any_permission(["users.manage_roles", "roles.update"])),
):
    """Assign a role to a user; ``role_id: null`` detaches it."""
    old_role_id = user_service.get_user(db, user_id).role_id
    user = user_service.assign_role(db, user_id, body.role_id)
    audit_service.log_from_request(
        db, request, actor,
        action="user.role_assigned",
        resource_type="user",
        resource_id=user.id,
        old_value={"role_id": old_role_id},
        new_value={"role_id": user.role_id},
    )
    return user
