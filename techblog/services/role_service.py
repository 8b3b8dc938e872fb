"""Role service: role CRUD and permission assignment.

The ``role_permissions`` table is the source of truth. ``Role.permissions_json``
is a projection of its granted rows and is rewritten by every call here that
touches grants; nothing else writes it.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from techblog.core.config import settings
from techblog.core.exceptions import (
    DuplicateNameError,
    DuplicateSlugError,
    NotFoundError,
    ProtectedResourceError,
)
from techblog.db.session import storage_errors
from techblog.models.permission import Permission
from techblog.models.role import Role
from techblog.models.role_permission import RolePermission
from techblog.models.user import User

logger = logging.getLogger("techblog")

UPDATABLE_FIELDS = ("name", "slug", "description", "is_active")
NULLABLE_FIELDS = ("description",)
FROZEN_FIELDS = ("is_system", "is_admin_role")


def slugify(name: str) -> str:
    """``"Super Admin"`` -> ``"super-admin"``."""
    return re.sub(r"\s+", "-", name.strip().lower())


class RoleService:
    """Role CRUD plus the grant operations that keep the projection in sync."""

    @staticmethod
    def create_role(
        db: Session,
        name: str,
        slug: Optional[str] = None,
        description: Optional[str] = None,
        is_active: bool = True,
        is_system: bool = False,
        is_admin_role: Optional[bool] = None,
        permission_ids: Optional[Iterable[str]] = None,
    ) -> Role:
        """Create a role with an empty permission set (or ``permission_ids``).

        ``is_admin_role`` defaults to whether ``name`` is one of the
        configured admin role names; it is fixed from then on.

        Raises:
            DuplicateNameError / DuplicateSlugError: On collision.
        """
        slug = slug or slugify(name)
        if is_admin_role is None:
            is_admin_role = name in settings.ADMIN_ROLE_NAMES

        with storage_errors(db, "create role"):
            if db.query(Role).filter(Role.name == name).first():
                raise DuplicateNameError(f"Role with name '{name}' already exists")
            if db.query(Role).filter(Role.slug == slug).first():
                raise DuplicateSlugError(f"Role with slug '{slug}' already exists")

            role = Role(
                name=name,
                slug=slug,
                description=description,
                permissions_json="[]",
                is_active=is_active,
                is_system=is_system,
                is_admin_role=is_admin_role,
            )
            db.add(role)
            db.flush()

            if permission_ids is not None:
                _replace_grants(db, role, permission_ids)

            db.commit()
            db.refresh(role)

        logger.info(f"Created role '{name}' ({role.id})")
        return role

    @staticmethod
    def get_role(db: Session, role_id: str) -> Role:
        role = db.get(Role, role_id)
        if not role:
            raise NotFoundError("Role", role_id)
        return role

    @staticmethod
    def get_role_by_slug(db: Session, slug: str) -> Role:
        role = db.query(Role).filter(Role.slug == slug).first()
        if not role:
            raise NotFoundError("Role", slug)
        return role

    @staticmethod
    def list_roles(db: Session) -> List[Role]:
        with storage_errors(db, "list roles"):
            return db.query(Role).order_by(Role.created_at, Role.name).all()

    @staticmethod
    def update_role(
        db: Session,
        role_id: str,
        fields: Dict[str, Any],
        permission_ids: Optional[Iterable[str]] = None,
    ) -> Role:
        """Update role attributes and, optionally, replace its permission set.

        ``None`` clears ``description``; for the other fields it means "unchanged".

        Raises:
            ProtectedResourceError: On an attempt to change ``is_system`` or
                ``is_admin_role``, or to deactivate a system role.
        """
        role = RoleService.get_role(db, role_id)

        frozen = [f for f in FROZEN_FIELDS if f in fields and fields[f] != getattr(role, f)]
        if frozen:
            raise ProtectedResourceError(f"Role field(s) {', '.join(frozen)} cannot be changed")
        if role.is_system and fields.get("is_active") is False:
            raise ProtectedResourceError(f"System role '{role.name}' cannot be deactivated")

        changes = {
            k: v for k, v in fields.items()
            if k in UPDATABLE_FIELDS and (v is not None or k in NULLABLE_FIELDS)
        }

        with storage_errors(db, "update role"):
            if "name" in changes and changes["name"] != role.name:
                if db.query(Role).filter(Role.name == changes["name"], Role.id != role.id).first():
                    raise DuplicateNameError(f"Role with name '{changes['name']}' already exists")
            if "slug" in changes and changes["slug"] != role.slug:
                if db.query(Role).filter(Role.slug == changes["slug"], Role.id != role.id).first():
                    raise DuplicateSlugError(f"Role with slug '{changes['slug']}' already exists")

            for field, value in changes.items():
                setattr(role, field, value)

            if permission_ids is not None:
                _lock_role(db, role.id)
                _replace_grants(db, role, permission_ids)

            db.commit()
            db.refresh(role)

        logger.info(f"Updated role {role.id}: {sorted(changes)}")
        return role

    @staticmethod
    def delete_role(db: Session, role_id: str) -> None:
        """Delete a non-system role: detach its users, drop its grants, drop it.

        Raises:
            ProtectedResourceError: If the role is a system role.
        """
        role = RoleService.get_role(db, role_id)
        if role.is_system:
            raise ProtectedResourceError(f"System role '{role.name}' cannot be deleted")

        with storage_errors(db, "delete role"):
            detached = db.query(User).filter(User.role_id == role.id).update(
                {User.role_id: None}, synchronize_session="fetch"
            )
            db.query(RolePermission).filter(RolePermission.role_id == role.id).delete(
                synchronize_session="fetch"
            )
            db.delete(role)
            db.commit()

        logger.info(f"Deleted role {role_id}, {detached} user(s) detached")

    @staticmethod
    def set_role_permissions(db: Session, role_id: str, permission_ids: Iterable[str]) -> List[Permission]:
        """Make ``permission_ids`` the role's exact granted set.

        Runs as one transaction holding a row lock on the role, so concurrent
        callers serialize and the last writer's set wins.
        """
        role = RoleService.get_role(db, role_id)
        with storage_errors(db, "set role permissions"):
            _lock_role(db, role.id)
            _replace_grants(db, role, permission_ids)
            db.commit()

        logger.info(f"Set {len(role.permissions)} permission(s) on role {role.id}")
        return RoleService.get_role_permissions(db, role.id)

    @staticmethod
    def get_role_permissions(db: Session, role_id: str) -> List[Permission]:
        """Granted permissions of a role, ordered by resource then action."""
        role = RoleService.get_role(db, role_id)
        with storage_errors(db, "load role permissions"):
            return (
                db.query(Permission)
                .join(RolePermission, RolePermission.permission_id == Permission.id)
                .filter(RolePermission.role_id == role.id, RolePermission.granted.is_(True))
                .order_by(Permission.resource, Permission.action)
                .all()
            )

    @staticmethod
    def get_role_permission_rows(db: Session, role_id: str) -> List[RolePermission]:
        """All association rows of a role, revoked ones included."""
        role = RoleService.get_role(db, role_id)
        return (
            db.query(RolePermission)
            .join(Permission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role.id)
            .order_by(Permission.resource, Permission.action)
            .all()
        )

    @staticmethod
    def assign_permission(
        db: Session, role_id: str, permission_id: str, granted: bool = True
    ) -> RolePermission:
        """Upsert a single association row."""
        return RoleService.update_role_permissions(db, role_id, [(permission_id, granted)])[0]

    @staticmethod
    def revoke_permission(db: Session, role_id: str, permission_id: str) -> RolePermission:
        """Mark an existing association as not granted. The row is kept."""
        role = RoleService.get_role(db, role_id)
        with storage_errors(db, "revoke permission"):
            _lock_role(db, role.id)
            row = db.query(RolePermission).filter(
                RolePermission.role_id == role.id,
                RolePermission.permission_id == permission_id,
            ).first()
            if not row:
                raise NotFoundError("Role permission", permission_id)
            row.granted = False
            db.flush()
            RoleService.refresh_permission_projection(db, role)
            db.commit()
            db.refresh(row)

        logger.info(f"Revoked permission {permission_id} from role {role.id}")
        return row

    @staticmethod
    def update_role_permissions(
        db: Session, role_id: str, updates: Iterable[Tuple[str, bool]]
    ) -> List[RolePermission]:
        """Upsert ``(permission_id, granted)`` pairs without touching other rows."""
        role = RoleService.get_role(db, role_id)
        updates = list(updates)
        with storage_errors(db, "update role permissions"):
            _lock_role(db, role.id)
            _require_permissions(db, [pid for pid, _ in updates])

            existing = {
                row.permission_id: row
                for row in db.query(RolePermission).filter(RolePermission.role_id == role.id)
            }
            rows = []
            for permission_id, granted in updates:
                row = existing.get(permission_id)
                if row is None:
                    row = RolePermission(role_id=role.id, permission_id=permission_id, granted=granted)
                    db.add(row)
                    existing[permission_id] = row
                else:
                    row.granted = granted
                rows.append(row)
            db.flush()

            RoleService.refresh_permission_projection(db, role)
            db.commit()
            for row in rows:
                db.refresh(row)

        logger.info(f"Updated {len(rows)} permission row(s) on role {role.id}")
        return rows

    @staticmethod
    def refresh_permission_projection(db: Session, role: Role) -> List[str]:
        """Rewrite ``role.permissions_json`` from the granted association rows."""
        slugs = [
            slug for (slug,) in (
                db.query(Permission.slug)
                .join(RolePermission, RolePermission.permission_id == Permission.id)
                .filter(RolePermission.role_id == role.id, RolePermission.granted.is_(True))
                .order_by(Permission.resource, Permission.action)
                .all()
            )
        ]
        role.permissions_json = json.dumps(slugs)
        return slugs


def _lock_role(db: Session, role_id: str) -> None:
    # FOR UPDATE is a no-op on SQLite, which serializes writers anyway.
    db.query(Role.id).filter(Role.id == role_id).with_for_update().one()


def _require_permissions(db: Session, permission_ids: List[str]) -> None:
    wanted = set(permission_ids)
    if not wanted:
        return
    found = {pid for (pid,) in db.query(Permission.id).filter(Permission.id.in_(wanted)).all()}
    missing = sorted(wanted - found)
    if missing:
        raise NotFoundError("Permission", missing[0])


def _replace_grants(db: Session, role: Role, permission_ids: Iterable[str]) -> None:
    """Diff the role's rows against ``permission_ids`` inside the caller's transaction.

    Rows in the set end up granted, rows outside it are deleted, missing
    rows are inserted. The role never passes through an empty state.
    """
    wanted = set(permission_ids)
    _require_permissions(db, list(wanted))

    rows = db.query(RolePermission).filter(RolePermission.role_id == role.id).all()
    for row in rows:
        if row.permission_id in wanted:
            row.granted = True
        else:
            db.delete(row)

    present = {row.permission_id for row in rows}
    for permission_id in wanted - present:
        db.add(RolePermission(role_id=role.id, permission_id=permission_id, granted=True))

    db.flush()
    RoleService.refresh_permission_projection(db, role)


role_service = RoleService()
