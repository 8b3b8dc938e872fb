"""Authorization evaluator.

Read-only checks over user -> role -> granted permissions. A denied check is
a ``False`` return, never an exception. Every call re-reads the database, so
grant changes apply on the next request.

Rules:
  * unknown user, user without a role, or an inactive role: nothing is granted;
  * a permission counts only through a ``role_permissions`` row with ``granted``;
  * ``is_admin`` reads the role's ``is_admin_role`` flag, not its permissions.
"""

from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from techblog.models.permission import Permission, permission_slug
from techblog.models.role import Role
from techblog.models.role_permission import RolePermission
from techblog.models.user import User


def _active_role(db: Session, user_id: str) -> Optional[Role]:
    user = db.get(User, user_id)
    if user is None or user.role_id is None:
        return None
    role = user.role
    if role is None or not role.is_active:
        return None
    return role


def _granted_slugs(db: Session, user_id: str) -> Set[str]:
    role = _active_role(db, user_id)
    if role is None:
        return set()
    rows = (
        db.query(Permission.slug)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == role.id, RolePermission.granted.is_(True))
        .all()
    )
    return {slug for (slug,) in rows}


def has_permission(db: Session, user_id: str, permission: str) -> bool:
    """True iff the user's active role holds a granted row for ``permission``."""
    return permission in _granted_slugs(db, user_id)


def has_any_permission(db: Session, user_id: str, permissions: Iterable[str]) -> bool:
    """True iff at least one of ``permissions`` is granted. Empty input is False."""
    granted = _granted_slugs(db, user_id)
    return any(p in granted for p in permissions)


def has_resource_permission(db: Session, user_id: str, resource: str, action: str) -> bool:
    return has_permission(db, user_id, permission_slug(resource, action))


def is_admin(db: Session, user_id: str) -> bool:
    """Admin-console check: the user's active role is flagged as an admin role."""
    role = _active_role(db, user_id)
    return bool(role and role.is_admin_role)


def get_user_permissions(db: Session, user_id: str) -> List[str]:
    """Sorted granted slugs for the user; empty when unassigned."""
    return sorted(_granted_slugs(db, user_id))
