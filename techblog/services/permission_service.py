"""Permission catalog service: CRUD over Permission rows and catalog sync."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from techblog.core.catalog import PERMISSION_CATALOG, CATALOG_VERSION
from techblog.core.exceptions import DuplicateSlugError, NotFoundError
from techblog.db.session import storage_errors
from techblog.models.permission import Permission, permission_slug
from techblog.models.role import Role
from techblog.models.role_permission import RolePermission
from techblog.services.role_service import role_service

logger = logging.getLogger("techblog")

UPDATABLE_FIELDS = ("name", "description", "resource", "action", "is_active")
NULLABLE_FIELDS = ("description",)


class PermissionService:
    """Keeps ``slug == resource.action`` and slug uniqueness on every write."""

    @staticmethod
    def create_permission(
        db: Session,
        name: str,
        resource: str,
        action: str,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> Permission:
        """Create a permission.

        Raises:
            DuplicateSlugError: If ``resource.action`` already exists.
        """
        slug = permission_slug(resource, action)
        with storage_errors(db, "create permission"):
            if db.query(Permission).filter(Permission.slug == slug).first():
                raise DuplicateSlugError(f"Permission '{slug}' already exists")

            permission = Permission(
                name=name,
                slug=slug,
                description=description,
                resource=resource,
                action=action,
                is_active=is_active,
            )
            db.add(permission)
            db.commit()
            db.refresh(permission)

        logger.info(f"Created permission {slug} ({permission.id})")
        return permission

    @staticmethod
    def get_permission(db: Session, permission_id: str) -> Permission:
        permission = db.get(Permission, permission_id)
        if not permission:
            raise NotFoundError("Permission", permission_id)
        return permission

    @staticmethod
    def list_permissions(
        db: Session,
        is_active: Optional[bool] = None,
        resource: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Permission]:
        """List permissions ordered by resource then action."""
        query = db.query(Permission)

        if is_active is not None:
            query = query.filter(Permission.is_active.is_(is_active))
        if resource:
            query = query.filter(Permission.resource == resource)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Permission.name.ilike(pattern),
                Permission.slug.ilike(pattern),
                Permission.resource.ilike(pattern),
                Permission.action.ilike(pattern),
            ))

        with storage_errors(db, "list permissions"):
            return query.order_by(Permission.resource, Permission.action).all()

    @staticmethod
    def update_permission(db: Session, permission_id: str, fields: Dict[str, Any]) -> Permission:
        """Update a permission; a new resource or action regenerates the slug.

        ``None`` clears ``description`` and is ignored for the other fields.

        Roles holding the permission get their slug projection refreshed in
        the same transaction.
        """
        permission = PermissionService.get_permission(db, permission_id)
        changes = {
            k: v for k, v in fields.items()
            if k in UPDATABLE_FIELDS and (v is not None or k in NULLABLE_FIELDS)
        }

        with storage_errors(db, "update permission"):
            resource = changes.get("resource", permission.resource)
            action = changes.get("action", permission.action)
            new_slug = permission_slug(resource, action)

            if new_slug != permission.slug:
                clash = db.query(Permission).filter(
                    Permission.slug == new_slug,
                    Permission.id != permission.id,
                ).first()
                if clash:
                    raise DuplicateSlugError(f"Permission '{new_slug}' already exists")

            for field, value in changes.items():
                setattr(permission, field, value)
            slug_changed = new_slug != permission.slug
            permission.slug = new_slug
            db.flush()

            if slug_changed:
                for role in _roles_holding(db, permission.id):
                    role_service.refresh_permission_projection(db, role)

            db.commit()
            db.refresh(permission)

        logger.info(f"Updated permission {permission.id}: {sorted(changes)}")
        return permission

    @staticmethod
    def delete_permission(db: Session, permission_id: str) -> None:
        """Delete a permission and every association referencing it.

        Roles left without permissions are kept.
        """
        permission = PermissionService.get_permission(db, permission_id)

        with storage_errors(db, "delete permission"):
            affected = _roles_holding(db, permission.id)
            db.query(RolePermission).filter(
                RolePermission.permission_id == permission.id
            ).delete(synchronize_session="fetch")
            db.delete(permission)
            db.flush()

            for role in affected:
                role_service.refresh_permission_projection(db, role)
            db.commit()

        logger.info(f"Deleted permission {permission_id}, {len(affected)} role(s) refreshed")

    @staticmethod
    def sync_catalog(
        db: Session,
        catalog: Iterable[Tuple[str, str, str]] = PERMISSION_CATALOG,
    ) -> Dict[str, int]:
        """Upsert the permission catalog by slug. Safe to re-run.

        Existing rows are left as they are so administrator edits to names
        or descriptions survive a re-seed.
        """
        created = 0
        existing = 0
        with storage_errors(db, "sync permission catalog"):
            known = {slug for (slug,) in db.query(Permission.slug).all()}
            for resource, action, name in catalog:
                slug = permission_slug(resource, action)
                if slug in known:
                    existing += 1
                    continue
                db.add(Permission(
                    name=name,
                    slug=slug,
                    description=f"Permission to {action} {resource}",
                    resource=resource,
                    action=action,
                    is_active=True,
                ))
                known.add(slug)
                created += 1
            db.commit()

        logger.info(f"Permission catalog v{CATALOG_VERSION}: {created} created, {existing} existing")
        return {"version": CATALOG_VERSION, "created": created, "existing": existing}


def _roles_holding(db: Session, permission_id: str) -> List[Role]:
    return (
        db.query(Role)
        .join(RolePermission, RolePermission.role_id == Role.id)
        .filter(RolePermission.permission_id == permission_id)
        .all()
    )


permission_service = PermissionService()
