"""Seed the permission catalog and the default role ladder."""

import logging
from typing import Dict

from sqlalchemy.orm import Session

from techblog.core.catalog import DEFAULT_ROLES
from techblog.models.permission import Permission
from techblog.models.role import Role
from techblog.services.permission_service import permission_service
from techblog.services.role_service import role_service

logger = logging.getLogger("techblog")


def seed_roles(db: Session) -> Dict[str, int]:
    """Sync the catalog, then create missing default roles with their grants.

    Roles that already exist are left alone so administrator edits survive.
    """
    permission_service.sync_catalog(db)
    ids_by_slug = {slug: pid for pid, slug in db.query(Permission.id, Permission.slug).all()}

    created = 0
    for role_data in DEFAULT_ROLES:
        if db.query(Role).filter(Role.slug == role_data["slug"]).first():
            logger.info(f"Role already exists: {role_data['name']}")
            continue

        role = role_service.create_role(
            db,
            name=role_data["name"],
            slug=role_data["slug"],
            description=role_data["description"],
            is_system=role_data["is_system"],
            is_admin_role=role_data["is_admin_role"],
        )
        role_service.set_role_permissions(
            db, role.id, [ids_by_slug[s] for s in role_data["permissions"] if s in ids_by_slug],
        )
        created += 1

    print(f"✅ Seeded {created} role(s), {len(DEFAULT_ROLES) - created} already present")
    return {"created": created, "existing": len(DEFAULT_ROLES) - created}
