"""Dashboard statistics and activity log schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..core.responses import PaginationMeta
from ..schemas.auth import TokenClaims


class AdminAccessResponse(BaseModel):
    success: bool = True
    message: str = "Admin access granted"
    user: TokenClaims


class AdminDashboardStats(BaseModel):
    total_scans: int
    active_doctors: int = Field(description="Active users with the staff flag")
    total_users: int
    abnormal_rate: float = Field(description="Percentage of records with abnormal findings")
    system_uptime_seconds: float = Field(description="Seconds since this process started")


class DoctorDashboardStats(BaseModel):
    total_patients: int = Field(description="Active patient accounts")
    todays_scans: int
    pending_reviews: int
    completed_scans: int
    abnormal_findings: int


class ActivityLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    timestamp: datetime
    action_type: str
    action: str
    description: str
    user_id: int | None = None
    username: str
    user_email: str | None = None


class ActivityLogResponse(BaseModel):
    success: bool = True
    logs: list[ActivityLogEntry]
    pagination: PaginationMeta


class ActionTypeOption(BaseModel):
    value: str
    label: str


class ActionTypesResponse(BaseModel):
    action_types: list[ActionTypeOption]
