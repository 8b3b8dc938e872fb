"""Audit log model, append-only."""

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from techblog.db.base import Base


class AuditLog(Base):
    """Trail of access-control mutations made through the admin API.

    APPEND-ONLY: rows are never updated or deleted. ``actor_id`` is kept
    without a foreign key so entries outlive the accounts that wrote them.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(String(36), nullable=True, index=True)
    actor_email = Column(String(255), nullable=True)
    action = Column(String(100), nullable=False, index=True)  # e.g. "role.permissions_set"
    resource_type = Column(String(50), nullable=False, index=True)  # permission, role, user
    resource_id = Column(String(100), nullable=True)
    old_value_json = Column(Text, nullable=True)
    new_value_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
