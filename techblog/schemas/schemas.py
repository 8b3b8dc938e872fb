"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Union
from datetime import datetime


# ---- Common ----
class MessageResponse(BaseModel):
    message: str


# ---- Permission ----
class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    resource: str = Field(..., min_length=1, pattern=r"^[a-z_]+$")
    action: str = Field(..., min_length=1, pattern=r"^[a-z_]+$")
    description: Optional[str] = None
    is_active: bool = True

class PermissionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    resource: Optional[str] = Field(None, min_length=1, pattern=r"^[a-z_]+$")
    action: Optional[str] = Field(None, min_length=1, pattern=r"^[a-z_]+$")
    description: Optional[str] = None
    is_active: Optional[bool] = None

class PermissionOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    resource: str
    action: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Role ----
class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    permission_ids: Optional[List[str]] = None

class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    is_active: Optional[bool] = None
    permission_ids: Optional[List[str]] = None

class RoleOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    permissions: List[str] = []
    is_active: bool
    is_system: bool
    is_admin_role: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Role permissions ----
class PermissionGrant(BaseModel):
    permission_id: str
    granted: bool = True

class RolePermissionsUpdate(BaseModel):
    """Either a plain list of permission ids (replace the set) or grant objects (upsert)."""
    permissions: List[Union[str, PermissionGrant]]

class RolePermissionOut(BaseModel):
    id: str
    role_id: str
    permission_id: str
    granted: bool
    permission: PermissionOut
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- User ----
class RoleBrief(BaseModel):
    id: str
    name: str
    slug: str

    class Config:
        from_attributes = True

class UserOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role_id: Optional[str] = None
    role: Optional[RoleBrief] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserListResponse(BaseModel):
    users: List[UserOut]
    total: int
    page: int
    page_size: int

class UserRoleAssign(BaseModel):
    role_id: Optional[str] = None

class MeOut(BaseModel):
    user: UserOut
    permissions: List[str]
    is_admin: bool


# ---- Admin ----
class StatsOut(BaseModel):
    total_users: int
    users_without_role: int
    total_roles: int
    active_roles: int
    total_permissions: int
    granted_associations: int

class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AuditLogListResponse(BaseModel):
    logs: List[AuditLogOut]
    total: int
    page: int
