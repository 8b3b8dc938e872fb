"""Audit service: append-only trail of access-control mutations."""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from techblog.db.session import storage_errors
from techblog.models.audit_log import AuditLog
from techblog.models.user import User

logger = logging.getLogger("techblog")

# Actions written by the admin API
AUDIT_ACTIONS = (
    "permission.created",
    "permission.updated",
    "permission.deleted",
    "role.created",
    "role.updated",
    "role.deleted",
    "role.permissions_set",
    "role.permissions_updated",
    "user.role_assigned",
)


def _dump(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str, ensure_ascii=False)


class AuditService:
    """Records who changed which role, permission or user assignment."""

    @staticmethod
    def log(
        db: Session,
        actor: Optional[User],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Append one entry and commit it on its own.

        The change being audited is already committed by the service call,
        so the entry is written after it, never instead of it.
        """
        if action not in AUDIT_ACTIONS:
            logger.warning(f"Unregistered audit action '{action}'")

        entry = AuditLog(
            actor_id=actor.id if actor else None,
            actor_email=actor.email if actor else None,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id else None,
            old_value_json=_dump(old_value),
            new_value_json=_dump(new_value),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        with storage_errors(db, "write audit entry"):
            db.add(entry)
            db.commit()

        logger.info(f"Audit {action} {resource_type}:{resource_id} by {entry.actor_email}")
        return entry

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        actor: Optional[User],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
    ) -> AuditLog:
        """Same as ``log``, with client address and user agent taken from ``request``."""
        return AuditService.log(
            db,
            actor,
            action,
            resource_type,
            resource_id=resource_id,
            old_value=old_value,
            new_value=new_value,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent", "")[:500],
        )

    @staticmethod
    def query_logs(
        db: Session,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        actor_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
        resource_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Newest entries first. ``action`` matches as a prefix, so ``role.`` lists every role change."""
        query = db.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action.like(f"{action}%"))
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if resource_id:
            query = query.filter(AuditLog.resource_id == resource_id)
        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)

        with storage_errors(db, "query audit log"):
            total = query.count()
            logs = (
                query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
                .all()
            )
        return {"logs": logs, "total": total, "page": page, "page_size": page_size}


audit_service = AuditService()
