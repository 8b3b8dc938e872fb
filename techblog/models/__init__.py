"""Models package: import all models so metadata.create_all sees them."""

from techblog.models.permission import Permission
from techblog.models.role import Role
from techblog.models.role_permission import RolePermission
from techblog.models.user import User
from techblog.models.audit_log import AuditLog

__all__ = [
    "Permission", "Role", "RolePermission", "User", "AuditLog",
]
