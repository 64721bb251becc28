"""
Patient Dashboard Endpoints.

Every route acts on the token subject: patients only ever see their own
results, profile and appointments. Any valid token is accepted.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import Settings, get_settings
from ....core.exceptions import NotFoundError, UserNotFoundError
from ....core.rbac import CurrentClaims
from ....core.responses import PaginationMeta
from ....db.session import DbSession
from ....models.appointment import Appointment
from ....models.medical_record import MedicalRecord
from ....models.user import User
from ....repositories.appointment_repository import AppointmentRepository
from ....repositories.medical_record_repository import MedicalRecordRepository
from ....repositories.user_repository import UserRepository
from ....schemas.auth import TokenClaims
from ....schemas.patient import (
    AppointmentCreate,
    AppointmentEnvelope,
    AppointmentResponse,
    AvailableDoctorsResponse,
    DoctorOption,
    PatientStats,
    ProfileUpdate,
    RecentResultsResponse,
    ResultItem,
    ResultListResponse,
    SlotsResponse,
    UpcomingAppointmentsResponse,
)
from ....schemas.user import UserEnvelope, UserProfileResponse
from ....services.activity_log_service import display_name
from ....services.findings import ScanStatus, findings_text, scan_status
from ....services.scheduling_service import SchedulingService

router = APIRouter(prefix="/patient", tags=["Patient"])


def get_scheduling_service(
    db: DbSession,
    settings: Annotated[Settings, Depends(get_settings)],
) -> SchedulingService:
    return SchedulingService(db, settings)


Scheduling = Annotated[SchedulingService, Depends(get_scheduling_service)]


def _result_item(record: MedicalRecord, doctors: dict[int, User]) -> ResultItem:
    doctor = doctors.get(record.doctor_id) if record.doctor_id else None
    return ResultItem(
        id=record.id,
        scan_type=record.scan_type,
        created_at=record.created_at,
        status=scan_status(record),
        findings=findings_text(record),
        diagnosis=record.diagnosis,
        analysis_result=record.analysis_result,
        doctor_name=display_name(doctor) if doctor else None,
        image_url=record.image_url,
    )


async def _result_items(db: AsyncSession, records: Sequence[MedicalRecord]) -> list[ResultItem]:
    doctors = await UserRepository(db).get_many(r.doctor_id for r in records if r.doctor_id)
    return [_result_item(r, doctors) for r in records]


async def _appointment_responses(
    db: AsyncSession, appointments: Sequence[Appointment]
) -> list[AppointmentResponse]:
    doctors = await UserRepository(db).get_many(a.doctor_id for a in appointments)
    return [
        AppointmentResponse.model_validate(a).model_copy(
            update={"doctor_name": display_name(doctors.get(a.doctor_id))}
        )
        for a in appointments
    ]


async def _current_user(db: AsyncSession, claims: TokenClaims) -> User:
    user = await UserRepository(db).get_by_id(claims.user_id)
    if user is None:
        raise UserNotFoundError(claims.user_id)
    return user


# =============================================================================
# RESULTS
# =============================================================================

@router.get("/stats", response_model=PatientStats)
async def patient_stats(
    claims: CurrentClaims,
    db: DbSession,
    scheduling: Scheduling,
) -> PatientStats:
    records = MedicalRecordRepository(db)
    counters = await records.patient_counters(claims.user_id)
    latest = await records.latest_for_patients([claims.user_id])
    last = latest.get(claims.user_id)
    upcoming = await AppointmentRepository(db).count_upcoming_for_patient(
        claims.user_id, from_date=scheduling.today()
    )
    return PatientStats(
        total_scans=counters["total"],
        completed_results=counters["completed"],
        pending_results=counters["pending"],
        abnormal_findings=counters["abnormal"],
        upcoming_appointments=upcoming,
        last_scan_at=last.created_at if last else None,
    )


@router.get("/results", response_model=ResultListResponse, summary="My results")
async def list_results(
    claims: CurrentClaims,
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scan_type: str | None = Query(None),
    status_filter: ScanStatus | None = Query(None, alias="status"),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    sort_order: Literal["asc", "desc"] = Query("desc"),
) -> ResultListResponse:
    records, total = await MedicalRecordRepository(db).list_for_patient(
        claims.user_id,
        skip=(page - 1) * limit,
        limit=limit,
        scan_type=scan_type,
        status=status_filter.value if status_filter else None,
        start_date=start_date,
        end_date=end_date,
        sort_order=sort_order,
    )
    return ResultListResponse(
        results=await _result_items(db, records),
        pagination=PaginationMeta.from_total(total=total, page=page, page_size=limit),
    )


@router.get("/results/recent", response_model=RecentResultsResponse)
async def recent_results(
    claims: CurrentClaims,
    db: DbSession,
    limit: int = Query(5, ge=1, le=50),
) -> RecentResultsResponse:
    records, _ = await MedicalRecordRepository(db).list_for_patient(claims.user_id, limit=limit)
    return RecentResultsResponse(results=await _result_items(db, records))


@router.get("/results/{result_id}", response_model=ResultItem)
async def result_detail(result_id: str, claims: CurrentClaims, db: DbSession) -> ResultItem:
    """Records of other patients are reported as not found."""
    not_found = NotFoundError(
        message="Result not found",
        error_code="RESULT_NOT_FOUND",
        resource_type="result",
        resource_id=result_id,
    )
    try:
        record_id = int(result_id)
    except ValueError as exc:
        raise not_found from exc

    record = await MedicalRecordRepository(db).get_by_id(record_id)
    if record is None or record.patient_id != claims.user_id:
        raise not_found
    return (await _result_items(db, [record]))[0]


# =============================================================================
# PROFILE
# =============================================================================

@router.get("/profile", response_model=UserEnvelope)
async def get_profile(claims: CurrentClaims, db: DbSession) -> UserEnvelope:
    user = await _current_user(db, claims)
    return UserEnvelope(user=UserProfileResponse.model_validate(user))


@router.patch("/profile", response_model=UserEnvelope)
async def update_profile(
    payload: ProfileUpdate,
    claims: CurrentClaims,
    db: DbSession,
) -> UserEnvelope:
    user = await _current_user(db, claims)
    changes = payload.model_dump(exclude_unset=True)
    if changes:
        user = await UserRepository(db).update_fields(user, **changes)
    return UserEnvelope(
        message="Profile updated successfully",
        user=UserProfileResponse.model_validate(user),
    )


# =============================================================================
# APPOINTMENTS
# =============================================================================

@router.get("/doctors/available", response_model=AvailableDoctorsResponse)
async def available_doctors(claims: CurrentClaims, db: DbSession) -> AvailableDoctorsResponse:
    doctors = await UserRepository(db).get_available_doctors()
    return AvailableDoctorsResponse(
        doctors=[DoctorOption(id=d.id, name=display_name(d), email=d.email) for d in doctors]
    )


@router.get("/appointments/slots", response_model=SlotsResponse)
async def appointment_slots(
    claims: CurrentClaims,
    scheduling: Scheduling,
    doctor_id: int = Query(...),
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
) -> SlotsResponse:
    slots = await scheduling.available_slots(doctor_id, day)
    return SlotsResponse(doctor_id=doctor_id, day=day, slots=slots)


@router.post(
    "/appointments",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def book_appointment(
    payload: AppointmentCreate,
    claims: CurrentClaims,
    db: DbSession,
    scheduling: Scheduling,
) -> AppointmentEnvelope:
    appointment = await scheduling.book(claims.user_id, payload)
    response = (await _appointment_responses(db, [appointment]))[0]
    return AppointmentEnvelope(message="Appointment booked successfully", appointment=response)


@router.get("/appointments/upcoming", response_model=UpcomingAppointmentsResponse)
async def upcoming_appointments(
    claims: CurrentClaims,
    db: DbSession,
    scheduling: Scheduling,
    limit: int = Query(5, ge=1, le=50),
) -> UpcomingAppointmentsResponse:
    appointments = await AppointmentRepository(db).upcoming_for_patient(
        claims.user_id, from_date=scheduling.today(), limit=limit
    )
    return UpcomingAppointmentsResponse(
        appointments=await _appointment_responses(db, appointments)
    )
