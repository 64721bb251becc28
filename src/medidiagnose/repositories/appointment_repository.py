"""Appointment Repository."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import SlotUnavailableError
from ..models.appointment import Appointment
from ..models.enums import AppointmentStatus

log = structlog.get_logger(__name__)


class AppointmentRepository:
    """Repository for appointment bookings."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def booked_slots(self, doctor_id: int, day: date) -> set[str]:
        """Time slots already held for a doctor on ``day``."""
        query = select(Appointment.time_slot).where(
            Appointment.doctor_id == doctor_id,
            Appointment.scheduled_date == day,
        )
        return set((await self.session.execute(query)).scalars().all())

    async def create(self, **fields) -> Appointment:
        """Insert a booking. The unique slot constraint turns a race into 409."""
        appointment = Appointment(**fields)
        self.session.add(appointment)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            log.warning(
                "appointment_slot_conflict",
                doctor_id=fields.get("doctor_id"),
                scheduled_date=str(fields.get("scheduled_date")),
                time_slot=fields.get("time_slot"),
            )
            raise SlotUnavailableError(
                doctor_id=fields["doctor_id"],
                date=str(fields["scheduled_date"]),
                time_slot=fields["time_slot"],
            ) from exc
        await self.session.refresh(appointment)
        log.info(
            "appointment_booked",
            appointment_id=appointment.id,
            doctor_id=appointment.doctor_id,
            patient_id=appointment.patient_id,
        )
        return appointment

    async def upcoming_for_patient(
        self,
        patient_id: int,
        *,
        from_date: date,
        limit: int = 5,
    ) -> Sequence[Appointment]:
        query = (
            select(Appointment)
            .where(
                Appointment.patient_id == patient_id,
                Appointment.scheduled_date >= from_date,
                Appointment.status == AppointmentStatus.SCHEDULED.value,
            )
            .order_by(Appointment.scheduled_date.asc(), Appointment.time_slot.asc())
            .limit(limit)
        )
        return (await self.session.execute(query)).scalars().all()

    async def count_upcoming_for_patient(self, patient_id: int, *, from_date: date) -> int:
        query = select(func.count(Appointment.id)).where(
            Appointment.patient_id == patient_id,
            Appointment.scheduled_date >= from_date,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
        )
        return (await self.session.execute(query)).scalar_one()
