"""Role model for RBAC."""

import json
import uuid
from typing import List

from sqlalchemy import Column, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from techblog.db.base import Base


class Role(Base):
    """Named bundle of permissions assignable to users.

    ``permissions_json`` is a read projection of the granted rows in
    ``role_permissions`` (JSON list of slugs). Only the role service
    rewrites it.
    """
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), unique=True, nullable=False, index=True)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    permissions_json = Column(Text, nullable=False, default="[]")
    is_active = Column(Boolean, default=True, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)
    is_admin_role = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role_permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    users = relationship("User", back_populates="role")

    @property
    def permissions(self) -> List[str]:
        """Granted permission slugs, as last projected."""
        return json.loads(self.permissions_json or "[]")
