"""Permission and Role schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be blank")
    return v


class PermissionCreate(BaseModel):
    name: str = Field(..., max_length=100, examples=["scans:read"])
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class PermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    created_at: datetime


class RoleCreate(BaseModel):
    name: str = Field(..., max_length=100, examples=["Radiology"])
    description: str | None = None
    permission_ids: list[int] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    permission_ids: list[int] = Field(default_factory=list)
    created_at: datetime


class PermissionListResponse(BaseModel):
    success: bool = True
    permissions: list[PermissionResponse]


class RoleListResponse(BaseModel):
    success: bool = True
    roles: list[RoleResponse]
