"""Patient dashboard schemas: results, profile and appointments."""
from __future__ import annotations

import re
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.responses import PaginationMeta
from ..models.enums import AppointmentType, AppointmentUrgency
from ..services.findings import ScanStatus

_TIME_SLOT = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class PatientStats(BaseModel):
    total_scans: int
    completed_results: int
    pending_results: int
    abnormal_findings: int
    upcoming_appointments: int
    last_scan_at: datetime | None = None


class ResultItem(BaseModel):
    id: int
    scan_type: str | None = None
    created_at: datetime
    status: ScanStatus
    findings: str | None = None
    diagnosis: str | None = None
    analysis_result: str | None = None
    doctor_name: str | None = None
    image_url: str | None = None


class ResultListResponse(BaseModel):
    success: bool = True
    results: list[ResultItem]
    pagination: PaginationMeta


class RecentResultsResponse(BaseModel):
    results: list[ResultItem]


class ProfileUpdate(BaseModel):
    """Fields a patient may change on their own profile."""

    full_name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    date_of_birth: date | None = None
    gender: str | None = Field(None, max_length=30)
    address: str | None = None
    emergency_contact: str | None = Field(None, max_length=200)
    medical_history: str | None = None


class DoctorOption(BaseModel):
    id: int
    name: str
    email: str


class AvailableDoctorsResponse(BaseModel):
    doctors: list[DoctorOption]


class SlotsResponse(BaseModel):
    doctor_id: int
    day: date
    slots: list[str]


class AppointmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    doctor_id: int = Field(..., alias="doctorId")
    preferred_date: date = Field(..., alias="preferredDate")
    time_slot: str = Field(..., alias="timeSlot", examples=["09:30"])
    appointment_type: AppointmentType = Field(
        default=AppointmentType.CONSULTATION,
        alias="appointmentType",
    )
    reason: str = Field(..., min_length=1, max_length=2000)
    symptoms: str | None = Field(None, max_length=2000)
    urgency: AppointmentUrgency = AppointmentUrgency.ROUTINE

    @field_validator("time_slot")
    @classmethod
    def validate_time_slot(cls, v: str) -> str:
        v = v.strip()
        if not _TIME_SLOT.match(v):
            raise ValueError("timeSlot must use HH:MM (24h)")
        return v


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    doctor_name: str | None = None
    appointment_type: str
    scheduled_date: date
    time_slot: str
    reason: str
    symptoms: str | None = None
    urgency: str
    status: str
    created_at: datetime


class AppointmentEnvelope(BaseModel):
    success: bool = True
    message: str
    appointment: AppointmentResponse


class UpcomingAppointmentsResponse(BaseModel):
    appointments: list[AppointmentResponse]
