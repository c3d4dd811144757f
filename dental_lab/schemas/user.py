"""
User, role and permission administration schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator

from dental_lab.schemas.common import CamelModel, reject_null
from dental_lab.schemas.auth import role_names


class PermissionResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None


class RoleCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    permission_ids: Optional[List[str]] = None


class RoleUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    permission_ids: Optional[List[str]] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_not_null(cls, v):
        return reject_null(v)


class RoleResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    permissions: List[PermissionResponse] = []
    created_at: datetime


class UserCreate(CamelModel):
    """Schema for an administrator creating a user."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    role_ids: Optional[List[str]] = None


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None
    role_ids: Optional[List[str]] = None

    @field_validator("first_name", "last_name", "is_active", mode="before")
    @classmethod
    def required_fields_not_null(cls, v):
        return reject_null(v)


class UserResponse(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    roles: List[str] = []
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("roles", mode="before")
    @classmethod
    def flatten_roles(cls, v):
        return role_names(v)
