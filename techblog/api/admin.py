"""Admin / Audit API router."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from techblog.core.guards import require_admin
from techblog.db.session import get_db
from techblog.models.permission import Permission
from techblog.models.role import Role
from techblog.models.role_permission import RolePermission
from techblog.models.user import User
from techblog.schemas.schemas import AuditLogListResponse, AuditLogOut, StatsOut
from techblog.services.audit_service import audit_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=StatsOut)
async def system_stats(
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin()),
):
    """Access-control overview for the admin dashboard."""
    return StatsOut(
        total_users=db.query(User).count(),
        users_without_role=db.query(User).filter(User.role_id.is_(None)).count(),
        total_roles=db.query(Role).count(),
        active_roles=db.query(Role).filter(Role.is_active.is_(True)).count(),
        total_permissions=db.query(Permission).count(),
        granted_associations=db.query(RolePermission).filter(RolePermission.granted.is_(True)).count(),
    )


@router.get("/audit", response_model=AuditLogListResponse)
async def get_audit_logs(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    actor_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin()),
):
    """Query audit logs (admin only)."""
    result = audit_service.query_logs(
        db, action, resource_type, actor_id, page, page_size, resource_id=resource_id,
    )
    return AuditLogListResponse(
        logs=[AuditLogOut.model_validate(log) for log in result["logs"]],
        total=result["total"],
        page=result["page"],
    )
