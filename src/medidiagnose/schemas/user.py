"""
User Schemas.

Pydantic models for account profiles and admin user management.
"""
from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..core.responses import PaginationMeta
from ..models.enums import UserRole
from .auth import check_password_length


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class UserCreate(BaseModel):
    """Admin-created account. Active immediately, flags derived from ``role``."""

    email: EmailStr = Field(..., examples=["doctor@example.com"])
    password: str
    full_name: str | None = Field(None, max_length=200)
    role: UserRole = Field(default=UserRole.PATIENT, examples=["Doctor"])

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_length(v)


class UserUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    email: EmailStr | None = None
    full_name: str | None = Field(None, max_length=200)
    role: UserRole | None = None
    is_active: bool | None = None


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserRolesUpdate(BaseModel):
    role_ids: list[int] = Field(default_factory=list, description="Replaces the assigned roles")


class UserPermissionsUpdate(BaseModel):
    permission_ids: list[int] = Field(
        default_factory=list,
        description="Replaces the directly granted permissions",
    )


class PasswordReset(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_password: str = Field(..., alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_length(v)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class UserResponse(BaseModel):
    """Account as returned by the API. The password hash is never included."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str | None = None
    is_active: bool
    is_superuser: bool
    is_staff: bool
    role: UserRole
    role_ids: list[int] = Field(default_factory=list)
    permission_ids: list[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None
    last_login_at: datetime | None = None


class UserProfileResponse(UserResponse):
    """Account plus the optional profile fields."""

    phone: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    address: str | None = None
    emergency_contact: str | None = None
    medical_history: str | None = None
    created_by: int | None = None
    password_reset_at: datetime | None = None


class UserListResponse(BaseModel):
    success: bool = True
    users: list[UserResponse]
    pagination: PaginationMeta


class UserEnvelope(BaseModel):
    success: bool = True
    message: str | None = None
    user: UserProfileResponse
