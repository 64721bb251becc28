"""Doctor dashboard schemas."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from ..core.responses import PaginationMeta
from ..services.findings import PatientStatus, ScanStatus


def patient_code(user_id: int | None) -> str:
    """Display identifier shown in the patient tables."""
    if user_id is None:
        return "Unknown"
    return f"PAT-{user_id:06d}"


class RecentScan(BaseModel):
    id: int
    patient_name: str
    patient_id: str
    scan_type: str | None = None
    timestamp: datetime
    status: ScanStatus
    findings: str


class RecentScansResponse(BaseModel):
    scans: list[RecentScan]


class RecentPatient(BaseModel):
    id: int
    name: str
    email: str
    last_scan: date | None = Field(None, description="Date of the latest record, null if none")
    status: PatientStatus
    registered_date: date | None = None


class RecentPatientsResponse(BaseModel):
    patients: list[RecentPatient]


class PatientRow(BaseModel):
    id: int
    patient_id: str
    name: str
    email: str
    date_of_birth: date | None = None
    gender: str | None = None
    phone: str | None = None
    last_scan: datetime | None = None
    last_diagnosis: str = Field(description="Latest findings or 'No records'")
    status: PatientStatus
    total_scans: int = 0
    registered_at: datetime


class PatientListResponse(BaseModel):
    success: bool = True
    patients: list[PatientRow]
    pagination: PaginationMeta


class ScanDetail(BaseModel):
    id: int
    patient_id: int
    patient_name: str
    patient_email: str
    doctor_id: int | None = None
    scan_type: str | None = None
    created_at: datetime
    diagnosis: str | None = None
    analysis_result: str | None = None
    status: ScanStatus
    image_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class FilterValuesResponse(BaseModel):
    values: list[str]


class PatientCreate(BaseModel):
    """Patient account registered by a doctor. No password is set."""

    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    date_of_birth: date | None = None
    gender: str | None = Field(None, max_length=30)
    address: str | None = None
    emergency_contact: str | None = Field(None, max_length=200)
    medical_history: str | None = None
