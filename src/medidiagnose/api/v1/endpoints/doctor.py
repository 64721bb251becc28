"""
Doctor Dashboard Endpoints.

Statistics, recent activity, patient search and scan details. Patient
and record joins are batched: one ``IN`` query per request, never one
lookup per row. All endpoints require the superuser or staff flag.
"""
from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Annotated, Literal

import structlog
from fastapi import APIRouter, Depends, Query, status

from ....core.config import Settings, get_settings
from ....core.exceptions import ScanNotFoundError, UserAlreadyExistsError
from ....core.rbac import StaffClaims
from ....core.responses import PaginationMeta
from ....core.security import generate_unusable_password, hash_password
from ....db.session import DbSession
from ....models.enums import UserRole
from ....repositories.medical_record_repository import MedicalRecordRepository
from ....repositories.user_repository import UserRepository
from ....schemas.dashboard import DoctorDashboardStats
from ....schemas.doctor import (
    FilterValuesResponse,
    PatientCreate,
    PatientListResponse,
    PatientRow,
    RecentPatient,
    RecentPatientsResponse,
    RecentScan,
    RecentScansResponse,
    ScanDetail,
    patient_code,
)
from ....schemas.user import UserEnvelope, UserProfileResponse
from ....services.activity_log_service import display_name
from ....services.findings import findings_text, patient_status, scan_status

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/doctor", tags=["Doctor"])


@router.get("/dashboard-stats", response_model=DoctorDashboardStats)
async def dashboard_stats(claims: StaffClaims, db: DbSession) -> DoctorDashboardStats:
    records = MedicalRecordRepository(db)
    today = datetime.now(UTC).date()
    return DoctorDashboardStats(
        total_patients=await UserRepository(db).count_active_patients(),
        todays_scans=await records.count_on_day(today),
        pending_reviews=await records.count_pending(),
        completed_scans=await records.count_completed(),
        abnormal_findings=await records.count_abnormal(),
    )


@router.get("/recent-scans", response_model=RecentScansResponse)
async def recent_scans(
    claims: StaffClaims,
    db: DbSession,
    limit: int = Query(10, ge=1, le=100),
) -> RecentScansResponse:
    records = await MedicalRecordRepository(db).get_recent(limit)
    patients = await UserRepository(db).get_many(r.patient_id for r in records)

    scans = []
    for record in records:
        patient = patients.get(record.patient_id)
        scans.append(
            RecentScan(
                id=record.id,
                patient_name=display_name(patient, "Unknown Patient"),
                patient_id=patient_code(patient.id if patient else None),
                scan_type=record.scan_type,
                timestamp=record.created_at,
                status=scan_status(record),
                findings=findings_text(record) or "Pending analysis",
            )
        )
    return RecentScansResponse(scans=scans)


@router.get("/recent-patients", response_model=RecentPatientsResponse)
async def recent_patients(
    claims: StaffClaims,
    db: DbSession,
    limit: int = Query(10, ge=1, le=100),
) -> RecentPatientsResponse:
    users = await UserRepository(db).get_recent_patients(limit)
    latest = await MedicalRecordRepository(db).latest_for_patients(u.id for u in users)

    patients = []
    for user in users:
        last = latest.get(user.id)
        patients.append(
            RecentPatient(
                id=user.id,
                name=display_name(user, "Unknown"),
                email=user.email,
                last_scan=last.created_at.date() if last else None,
                status=patient_status(last),
                registered_date=user.created_at.date() if user.created_at else None,
            )
        )
    return RecentPatientsResponse(patients=patients)


@router.get("/patients", response_model=PatientListResponse, summary="Search patients")
async def list_patients(
    claims: StaffClaims,
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, description="Substring of email or full name"),
    diagnosis: str | None = Query(None, description="Substring of any record's diagnosis"),
    scan_type: str | None = Query(None),
    start_date: date | None = Query(None, description="Records on or after, YYYY-MM-DD"),
    end_date: date | None = Query(None, description="Records on or before, YYYY-MM-DD"),
    sort_by: Literal["created_at", "full_name", "email"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
) -> PatientListResponse:
    records = MedicalRecordRepository(db)
    users, total = await records.search_patients(
        skip=(page - 1) * limit,
        limit=limit,
        search=search,
        diagnosis=diagnosis,
        scan_type=scan_type,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    ids = [u.id for u in users]
    latest = await records.latest_for_patients(ids)
    counts = await records.count_for_patients(ids)

    rows = []
    for user in users:
        last = latest.get(user.id)
        rows.append(
            PatientRow(
                id=user.id,
                patient_id=patient_code(user.id),
                name=display_name(user, "Unknown"),
                email=user.email,
                date_of_birth=user.date_of_birth,
                gender=user.gender,
                phone=user.phone,
                last_scan=last.created_at if last else None,
                last_diagnosis=(findings_text(last) if last else None) or "No records",
                status=patient_status(last),
                total_scans=counts.get(user.id, 0),
                registered_at=user.created_at,
            )
        )
    return PatientListResponse(
        patients=rows,
        pagination=PaginationMeta.from_total(total=total, page=page, page_size=limit),
    )


@router.post(
    "/patients",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient",
    description="Creates an active patient account with no usable password.",
)
async def create_patient(
    payload: PatientCreate,
    claims: StaffClaims,
    db: DbSession,
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserEnvelope:
    users = UserRepository(db)
    if await users.email_taken(payload.email):
        raise UserAlreadyExistsError(payload.email)

    profile = payload.model_dump(exclude={"email", "full_name"}, exclude_none=True)
    user = await users.create(
        email=payload.email,
        password_hash=hash_password(generate_unusable_password(), rounds=settings.BCRYPT_ROUNDS),
        full_name=payload.full_name,
        role=UserRole.PATIENT,
        is_active=True,
        created_by=claims.user_id,
        **profile,
    )
    logger.info("patient_registered_by_doctor", patient_id=user.id, doctor_id=claims.user_id)
    return UserEnvelope(
        message="Patient created successfully",
        user=UserProfileResponse.model_validate(user),
    )


@router.get("/scan/{scan_id}", response_model=ScanDetail, summary="Scan details")
async def scan_detail(scan_id: str, claims: StaffClaims, db: DbSession) -> ScanDetail:
    """Ids that are not integers are treated as unknown scans."""
    try:
        record_id = int(scan_id)
    except ValueError as exc:
        raise ScanNotFoundError(scan_id) from exc

    record = await MedicalRecordRepository(db).get_by_id(record_id)
    if record is None:
        raise ScanNotFoundError(scan_id)

    patient = await UserRepository(db).get_by_id(record.patient_id)
    return ScanDetail(
        id=record.id,
        patient_id=record.patient_id,
        patient_name=display_name(patient, "Unknown Patient"),
        patient_email=patient.email if patient else "",
        doctor_id=record.doctor_id,
        scan_type=record.scan_type,
        created_at=record.created_at,
        diagnosis=record.diagnosis,
        analysis_result=record.analysis_result,
        status=scan_status(record),
        image_url=record.image_url,
        metadata=record.metadata_ or {},
    )


@router.get("/diagnoses", response_model=FilterValuesResponse)
async def diagnoses(claims: StaffClaims, db: DbSession) -> FilterValuesResponse:
    return FilterValuesResponse(values=await MedicalRecordRepository(db).distinct_diagnoses())


@router.get("/scan-types", response_model=FilterValuesResponse)
async def scan_types(claims: StaffClaims, db: DbSession) -> FilterValuesResponse:
    return FilterValuesResponse(values=await MedicalRecordRepository(db).distinct_scan_types())
