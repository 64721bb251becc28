"""Medical Record Repository - scan / diagnosis queries."""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, time, timedelta
from typing import Literal

import structlog
from sqlalchemy import ColumnElement, Select, and_, distinct, func, not_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.medical_record import MedicalRecord
from ..models.user import User
from ..services.findings import ABNORMAL_KEYWORDS

log = structlog.get_logger(__name__)

PatientSortField = Literal["created_at", "full_name", "email"]
SortOrder = Literal["asc", "desc"]


def _has_text(column) -> ColumnElement[bool]:
    return and_(column.is_not(None), func.trim(column) != "")


def completed_clause() -> ColumnElement[bool]:
    return or_(_has_text(MedicalRecord.diagnosis), _has_text(MedicalRecord.analysis_result))


def abnormal_clause() -> ColumnElement[bool]:
    terms = []
    for keyword in ABNORMAL_KEYWORDS:
        pattern = f"%{keyword}%"
        terms.append(func.lower(func.coalesce(MedicalRecord.diagnosis, "")).like(pattern))
        terms.append(func.lower(func.coalesce(MedicalRecord.analysis_result, "")).like(pattern))
    return or_(*terms)


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Inclusive calendar-day range as ``[start 00:00, end+1 00:00)``."""
    lower = datetime.combine(start, time.min, tzinfo=UTC) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=UTC) if end else None
    return lower, upper


def within_days(column, start: date | None, end: date | None) -> list[ColumnElement[bool]]:
    """WHERE clauses keeping ``column`` inside the inclusive day range."""
    lower, upper = day_bounds(start, end)
    clauses = []
    if lower is not None:
        clauses.append(column >= lower)
    if upper is not None:
        clauses.append(column < upper)
    return clauses


class MedicalRecordRepository:
    """Read-mostly access to medical records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # COUNTERS
    # =========================================================================

    async def _count(self, *where: ColumnElement[bool]) -> int:
        query = select(func.count(MedicalRecord.id)).where(*where)
        return (await self.session.execute(query)).scalar_one()

    async def count_all(self) -> int:
        return await self._count()

    async def count_on_day(self, day: date) -> int:
        return await self._count(*within_days(MedicalRecord.created_at, day, day))

    async def count_pending(self) -> int:
        return await self._count(not_(completed_clause()))

    async def count_completed(self) -> int:
        return await self._count(completed_clause())

    async def count_abnormal(self) -> int:
        return await self._count(abnormal_clause())

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_by_id(self, record_id: int) -> MedicalRecord | None:
        result = await self.session.execute(select(MedicalRecord).where(MedicalRecord.id == record_id))
        return result.scalar_one_or_none()

    async def get_recent(self, limit: int = 10) -> Sequence[MedicalRecord]:
        query = (
            select(MedicalRecord)
            .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
            .limit(limit)
        )
        return (await self.session.execute(query)).scalars().all()

    async def list_created_between(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        completed_only: bool = False,
    ) -> Sequence[MedicalRecord]:
        query = select(MedicalRecord).where(*within_days(MedicalRecord.created_at, start, end))
        if completed_only:
            query = query.where(completed_clause())
        query = query.order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
        return (await self.session.execute(query)).scalars().all()

    async def latest_for_patients(self, patient_ids: Iterable[int]) -> dict[int, MedicalRecord]:
        """Most recent record per patient, one query for the whole batch."""
        ids = sorted(set(patient_ids))
        if not ids:
            return {}
        query = (
            select(MedicalRecord)
            .where(MedicalRecord.patient_id.in_(ids))
            .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
        )
        latest: dict[int, MedicalRecord] = {}
        for record in (await self.session.execute(query)).scalars():
            latest.setdefault(record.patient_id, record)
        return latest

    async def count_for_patients(self, patient_ids: Iterable[int]) -> dict[int, int]:
        ids = sorted(set(patient_ids))
        if not ids:
            return {}
        query = (
            select(MedicalRecord.patient_id, func.count(MedicalRecord.id))
            .where(MedicalRecord.patient_id.in_(ids))
            .group_by(MedicalRecord.patient_id)
        )
        return {pid: count for pid, count in (await self.session.execute(query)).all()}

    async def distinct_diagnoses(self) -> list[str]:
        query = (
            select(distinct(MedicalRecord.diagnosis))
            .where(_has_text(MedicalRecord.diagnosis))
            .order_by(MedicalRecord.diagnosis)
        )
        return list((await self.session.execute(query)).scalars().all())

    async def distinct_scan_types(self) -> list[str]:
        query = (
            select(distinct(MedicalRecord.scan_type))
            .where(_has_text(MedicalRecord.scan_type))
            .order_by(MedicalRecord.scan_type)
        )
        return list((await self.session.execute(query)).scalars().all())

    # =========================================================================
    # DOCTOR: PATIENT SEARCH
    # =========================================================================

    def _patient_query(
        self,
        base: Select,
        *,
        search: str | None,
        diagnosis: str | None,
        scan_type: str | None,
        start_date: date | None,
        end_date: date | None,
    ) -> Select:
        query = base.where(User.is_superuser.is_(False), User.is_staff.is_(False))
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(func.coalesce(User.full_name, "")).like(pattern),
                )
            )

        # Record filters match patients with at least one qualifying record.
        record_filters: list[ColumnElement[bool]] = []
        if diagnosis:
            record_filters.append(
                func.lower(MedicalRecord.diagnosis).like(f"%{diagnosis.strip().lower()}%")
            )
        if scan_type:
            record_filters.append(MedicalRecord.scan_type == scan_type)
        record_filters.extend(within_days(MedicalRecord.created_at, start_date, end_date))
        if record_filters:
            query = query.where(
                select(MedicalRecord.id)
                .where(MedicalRecord.patient_id == User.id, *record_filters)
                .exists()
            )
        return query

    async def search_patients(
        self,
        *,
        skip: int = 0,
        limit: int = 10,
        search: str | None = None,
        diagnosis: str | None = None,
        scan_type: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        sort_by: PatientSortField = "created_at",
        sort_order: SortOrder = "desc",
    ) -> tuple[Sequence[User], int]:
        filters = dict(
            search=search,
            diagnosis=diagnosis,
            scan_type=scan_type,
            start_date=start_date,
            end_date=end_date,
        )
        total = (
            await self.session.execute(self._patient_query(select(func.count(User.id)), **filters))
        ).scalar_one()

        column = {
            "created_at": User.created_at,
            "full_name": func.lower(func.coalesce(User.full_name, "")),
            "email": User.email,
        }[sort_by]
        ordering = column.asc() if sort_order == "asc" else column.desc()
        query = (
            self._patient_query(select(User), **filters)
            .order_by(ordering, User.id.desc())
            .offset(skip)
            .limit(limit)
        )
        users = (await self.session.execute(query)).scalars().all()
        return users, total

    # =========================================================================
    # PATIENT: OWN RESULTS
    # =========================================================================

    def _patient_results_query(
        self,
        base: Select,
        patient_id: int,
        *,
        scan_type: str | None,
        status: str | None,
        start_date: date | None,
        end_date: date | None,
    ) -> Select:
        query = base.where(MedicalRecord.patient_id == patient_id)
        if scan_type:
            query = query.where(MedicalRecord.scan_type == scan_type)
        if status == "Processing":
            query = query.where(not_(completed_clause()))
        elif status == "Completed":
            query = query.where(completed_clause(), not_(abnormal_clause()))
        elif status == "Alert":
            query = query.where(completed_clause(), abnormal_clause())
        query = query.where(*within_days(MedicalRecord.created_at, start_date, end_date))
        return query

    async def list_for_patient(
        self,
        patient_id: int,
        *,
        skip: int = 0,
        limit: int = 10,
        scan_type: str | None = None,
        status: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        sort_order: SortOrder = "desc",
    ) -> tuple[Sequence[MedicalRecord], int]:
        filters = dict(scan_type=scan_type, status=status, start_date=start_date, end_date=end_date)
        total = (
            await self.session.execute(
                self._patient_results_query(select(func.count(MedicalRecord.id)), patient_id, **filters)
            )
        ).scalar_one()
        ordering = (
            (MedicalRecord.created_at.asc(), MedicalRecord.id.asc())
            if sort_order == "asc"
            else (MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
        )
        query = (
            self._patient_results_query(select(MedicalRecord), patient_id, **filters)
            .order_by(*ordering)
            .offset(skip)
            .limit(limit)
        )
        records = (await self.session.execute(query)).scalars().all()
        return records, total

    async def patient_counters(self, patient_id: int) -> dict[str, int]:
        """Total / completed / pending / abnormal counts for one patient."""
        own = MedicalRecord.patient_id == patient_id
        return {
            "total": await self._count(own),
            "completed": await self._count(own, completed_clause()),
            "pending": await self._count(own, not_(completed_clause())),
            "abnormal": await self._count(own, abnormal_clause()),
        }

    async def create(self, **fields) -> MedicalRecord:
        """Insert a record produced by the scan pipeline."""
        record = MedicalRecord(**fields)
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        log.info("medical_record_created", record_id=record.id, patient_id=record.patient_id)
        return record
