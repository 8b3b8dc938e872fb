"""Permissions API router: the permission catalog."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from techblog.core.guards import require_permission
from techblog.db.session import get_db
from techblog.models.user import User
from techblog.schemas.schemas import (
    MessageResponse, PermissionCreate, PermissionOut, PermissionUpdate,
)
from techblog.services.audit_service import audit_service
from techblog.services.permission_service import permission_service

router = APIRouter(prefix="/admin/permissions", tags=["permissions"])


@router.get("/", response_model=List[PermissionOut])
async def list_permissions(
    is_active: Optional[bool] = Query(None),
    resource: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("permissions.read")),
):
    """List the permission catalog."""
    return permission_service.list_permissions(db, is_active, resource, search)


@router.get("/{permission_id}", response_model=PermissionOut)
async def get_permission(
    permission_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("permissions.read")),
):
    return permission_service.get_permission(db, permission_id)


@router.post("/", response_model=PermissionOut, status_code=201)
async def create_permission(
    body: PermissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("permissions.create")),
):
    """Create a permission; its slug is ``resource.action``."""
    permission = permission_service.create_permission(
        db, body.name, body.resource, body.action, body.description, body.is_active,
    )
    audit_service.log_from_request(
        db, request, actor,
        action="permission.created",
        resource_type="permission",
        resource_id=permission.id,
        new_value={"slug": permission.slug, "name": permission.name},
    )
    return permission


@router.put("/{permission_id}", response_model=PermissionOut)
async def update_permission(
    permission_id: str,
    body: PermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("permissions.update")),
):
    """Update a permission. Changing resource or action regenerates the slug."""
    old_slug = permission_service.get_permission(db, permission_id).slug
    permission = permission_service.update_permission(
        db, permission_id, body.model_dump(exclude_unset=True)
    )
    audit_service.log_from_request(
        db, request, actor,
        action="permission.updated",
        resource_type="permission",
        resource_id=permission.id,
        old_value={"slug": old_slug},
        new_value=body.model_dump(exclude_unset=True),
    )
    return permission


@router.delete("/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    permission_id: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("permissions.delete")),
):
    """Delete a permission and its role associations."""
    slug = permission_service.get_permission(db, permission_id).slug
    permission_service.delete_permission(db, permission_id)
    audit_service.log_from_request(
        db, request, actor,
        action="permission.deleted",
        resource_type="permission",
        resource_id=permission_id,
        old_value={"slug": slug},
    )
    return MessageResponse(message="Permission deleted successfully")
