"""Promote the configured super-admin user."""

from sqlalchemy.orm import Session

from techblog.core.config import settings
from techblog.models.role import Role
from techblog.models.user import User


def seed_super_admin(db: Session) -> bool:
    """Give SUPER_ADMIN_EMAIL the Super Admin role if that user has signed in."""
    super_admin_role = db.query(Role).filter(Role.slug == "super-admin").first()
    if not super_admin_role:
        print("⚠️  super-admin role not found. Run seed_roles first.")
        return False

    user = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if not user:
        print(f"ℹ️  '{settings.SUPER_ADMIN_EMAIL}' has not signed in yet, skipping.")
        return False

    if user.role_id == super_admin_role.id:
        print(f"ℹ️  '{settings.SUPER_ADMIN_EMAIL}' is already Super Admin, skipping.")
        return True

    user.role_id = super_admin_role.id
    db.commit()
    print(f"✅ Promoted {settings.SUPER_ADMIN_EMAIL} to Super Admin")
    return True
