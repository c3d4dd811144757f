"""
Authentication schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator, model_validator

from dental_lab.schemas.common import CamelModel


def _check_password_length(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    return value


def role_names(value):
    """Accept either role names or Role rows."""
    return [getattr(role, "name", role) for role in (value or [])]


class RegisterRequest(CamelModel):
    """Schema for self-registration."""
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password_length(v)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class _NewPasswordMixin(CamelModel):
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return _check_password_length(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UpdatePasswordRequest(_NewPasswordMixin):
    """Schema for changing the password of the signed-in user."""
    old_password: str = Field(..., min_length=1)


class ResetPasswordRequest(_NewPasswordMixin):
    """Schema for completing a password reset with an emailed token."""
    token: str = Field(..., min_length=1)


class UserPublic(CamelModel):
    """Public view of a user returned by auth endpoints."""
    id: str
    email: str
    first_name: str
    last_name: str
    roles: List[str] = []

    @field_validator("roles", mode="before")
    @classmethod
    def flatten_roles(cls, v):
        return role_names(v)


class CurrentUser(UserPublic):
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class AuthTokens(CamelModel):
    """Token pair handed out on register, login and refresh."""
    access_token: str
    refresh_token: str
    expires_in: int
    user: UserPublic
