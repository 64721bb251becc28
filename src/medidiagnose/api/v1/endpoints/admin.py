"""
Admin Dashboard Endpoints.

Access probe, dashboard statistics and the derived activity log. All
endpoints require the superuser or staff flag.
"""
from __future__ import annotations

import time
from datetime import date

from fastapi import APIRouter, Query

from ....core.exceptions import ValidationError
from ....core.rbac import StaffClaims
from ....core.responses import PaginationMeta
from ....db.session import DbSession
from ....repositories.medical_record_repository import MedicalRecordRepository
from ....repositories.user_repository import UserRepository
from ....schemas.dashboard import (
    ActionTypeOption,
    ActionTypesResponse,
    ActivityLogEntry,
    ActivityLogResponse,
    AdminAccessResponse,
    AdminDashboardStats,
)
from ....services.activity_log_service import ActionType, ActivityLogService
from ....services.findings import abnormal_rate

router = APIRouter(prefix="/admin", tags=["Admin"])

_PROCESS_STARTED = time.monotonic()


@router.get("", response_model=AdminAccessResponse, summary="Admin access probe")
async def admin_probe(claims: StaffClaims) -> AdminAccessResponse:
    """Succeeds for any staff or superuser token and echoes its claims."""
    return AdminAccessResponse(user=claims)


@router.get("/dashboard-stats", response_model=AdminDashboardStats)
async def dashboard_stats(claims: StaffClaims, db: DbSession) -> AdminDashboardStats:
    users = UserRepository(db)
    records = MedicalRecordRepository(db)

    total_scans = await records.count_all()
    abnormal = await records.count_abnormal()
    return AdminDashboardStats(
        total_scans=total_scans,
        active_doctors=await users.count_active_staff(),
        total_users=await users.count_all(),
        abnormal_rate=abnormal_rate(abnormal, total_scans),
        system_uptime_seconds=round(time.monotonic() - _PROCESS_STARTED, 1),
    )


@router.get("/logs", response_model=ActivityLogResponse, summary="Activity log")
async def activity_logs(
    claims: StaffClaims,
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    start_date: date | None = Query(None, description="Inclusive, YYYY-MM-DD"),
    end_date: date | None = Query(None, description="Inclusive, YYYY-MM-DD"),
    action_type: str | None = Query(None, description="One of the action types, or 'all'"),
    user_search: str | None = Query(None, description="Match on user name or email"),
) -> ActivityLogResponse:
    selected = None
    if action_type not in (None, "", "all"):
        try:
            selected = ActionType(action_type)
        except ValueError as exc:
            raise ValidationError(
                message=f"Unknown action_type '{action_type}'",
                details={"allowed": [t.value for t in ActionType]},
            ) from exc
    entries = await ActivityLogService(db).query(
        start_date=start_date,
        end_date=end_date,
        action_type=selected,
        user_search=user_search,
    )
    skip = (page - 1) * limit
    page_entries = entries[skip: skip + limit]
    return ActivityLogResponse(
        logs=[
            ActivityLogEntry(
                id=e.id,
                timestamp=e.timestamp,
                action_type=e.action_type.value,
                action=e.action,
                description=e.description,
                user_id=e.user_id,
                username=e.username,
                user_email=e.user_email,
            )
            for e in page_entries
        ],
        pagination=PaginationMeta.from_total(total=len(entries), page=page, page_size=limit),
    )


@router.get("/logs/action-types", response_model=ActionTypesResponse)
async def action_types(claims: StaffClaims) -> ActionTypesResponse:
    return ActionTypesResponse(
        action_types=[ActionTypeOption(value=t.value, label=t.label) for t in ActionType]
    )
