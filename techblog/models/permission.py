"""Permission model: one ``resource.action`` capability."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, UniqueConstraint, func
from sqlalchemy.orm import relationship

from techblog.db.base import Base


def permission_slug(resource: str, action: str) -> str:
    """Slug derivation shared by every write path."""
    return f"{resource}.{action}"


class Permission(Base):
    """Catalog entry. ``slug`` always equals ``resource + "." + action``."""
    __tablename__ = "permissions"
    __table_args__ = (UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), nullable=False)
    slug = Column(String(150), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    resource = Column(String(50), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role_permissions = relationship(
        "RolePermission",
        back_populates="permission",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
