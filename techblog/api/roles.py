"""Roles API router: role CRUD and the role permission checklist."""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from techblog.core.guards import require_admin, require_permission
from techblog.db.session import get_db
from techblog.models.user import User
from techblog.schemas.schemas import (
    MessageResponse, PermissionGrant, RoleCreate, RoleOut, RolePermissionOut,
    RolePermissionsUpdate, RoleUpdate,
)
from techblog.services.audit_service import audit_service
from techblog.services.role_service import role_service

router = APIRouter(prefix="/admin/roles", tags=["roles"])


@router.get("/", response_model=List[RoleOut])
async def list_roles(
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("roles.read")),
):
    return role_service.list_roles(db)


@router.get("/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("roles.read")),
):
    return role_service.get_role(db, role_id)


@router.post("/", response_model=RoleOut, status_code=201)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("roles.create")),
):
    """Create a role. Slug defaults to the lower-cased, dashed name."""
    role = role_service.create_role(
        db,
        name=body.name,
        slug=body.slug,
        description=body.description,
        permission_ids=body.permission_ids,
    )
    audit_service.log_from_request(
        db, request, actor,
        action="role.created",
        resource_type="role",
        resource_id=role.id,
        new_value={"name": role.name, "slug": role.slug, "permissions": role.permissions},
    )
    return role


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: str,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("roles.update")),
):
    """Update a role; ``permission_ids`` replaces its permission set."""
    before = role_service.get_role(db, role_id)
    old_value = {"name": before.name, "slug": before.slug, "permissions": before.permissions}

    fields = body.model_dump(exclude_unset=True, exclude={"permission_ids"})
    role = role_service.update_role(db, role_id, fields, permission_ids=body.permission_ids)
    audit_service.log_from_request(
        db, request, actor,
        action="role.updated",
        resource_type="role",
        resource_id=role.id,
        old_value=old_value,
        new_value={"name": role.name, "slug": role.slug, "permissions": role.permissions},
    )
    return role


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_permission("roles.delete")),
):
    """Delete a non-system role; its users are left without a role."""
    name = role_service.get_role(db, role_id).name
    role_service.delete_role(db, role_id)
    audit_service.log_from_request(
        db, request, actor,
        action="role.deleted",
        resource_type="role",
        resource_id=role_id,
        old_value={"name": name},
    )
    return MessageResponse(message="Role deleted successfully")


@router.get("/{role_id}/permissions", response_model=List[RolePermissionOut])
async def get_role_permissions(
    role_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin()),
):
    """All association rows of the role, revoked ones included."""
    return role_service.get_role_permission_rows(db, role_id)


@router.put("/{role_id}/permissions", response_model=List[RolePermissionOut])
async def update_role_permissions(
    role_id: str,
    body: RolePermissionsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin()),
):
    """Replace the permission set (list of ids) or upsert grant objects."""
    before = role_service.get_role(db, role_id).permissions

    if all(isinstance(p, str) for p in body.permissions):
        role_service.set_role_permissions(db, role_id, body.permissions)
        action = "role.permissions_set"
    else:
        updates = [
            (p.permission_id, p.granted) if isinstance(p, PermissionGrant) else (p, True)
            for p in body.permissions
        ]
        role_service.update_role_permissions(db, role_id, updates)
        action = "role.permissions_updated"

    audit_service.log_from_request(
        db, request, actor,
        action=action,
        resource_type="role",
        resource_id=role_id,
        old_value=before,
        new_value=role_service.get_role(db, role_id).permissions,
    )
    return role_service.get_role_permission_rows(db, role_id)
