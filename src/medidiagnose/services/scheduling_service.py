"""Appointment scheduling: slot grid, availability and booking."""
from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import BadRequestError, NotFoundError, SlotUnavailableError
from ..models.appointment import Appointment
from ..models.user import User
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.user_repository import UserRepository
from ..schemas.patient import AppointmentCreate

log = structlog.get_logger(__name__)


def slot_grid(day_start: int, day_end: int, slot_minutes: int) -> list[str]:
    """``HH:MM`` start times from ``day_start`` until the last slot that ends by ``day_end``."""
    slots = []
    cursor = datetime(2000, 1, 1, day_start)
    end = datetime(2000, 1, 1) + timedelta(hours=day_end)
    step = timedelta(minutes=slot_minutes)
    while cursor + step <= end:
        slots.append(cursor.strftime("%H:%M"))
        cursor += step
    return slots


class SchedulingService:
    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.settings = settings
        self.users = UserRepository(session)
        self.appointments = AppointmentRepository(session)

    @property
    def grid(self) -> list[str]:
        return slot_grid(
            self.settings.APPOINTMENT_DAY_START,
            self.settings.APPOINTMENT_DAY_END,
            self.settings.APPOINTMENT_SLOT_MINUTES,
        )

    @staticmethod
    def today() -> date:
        return datetime.now(UTC).date()

    async def _doctor(self, doctor_id: int) -> User:
        doctor = await self.users.get_active_doctor(doctor_id)
        if doctor is None:
            raise NotFoundError(
                message="Doctor not found",
                error_code="DOCTOR_NOT_FOUND",
                resource_type="doctor",
                resource_id=doctor_id,
            )
        return doctor

    async def available_slots(self, doctor_id: int, day: date) -> list[str]:
        """Grid slots still free for ``doctor_id`` on ``day``. Past days have none."""
        await self._doctor(doctor_id)
        if day < self.today():
            return []
        booked = await self.appointments.booked_slots(doctor_id, day)
        return [slot for slot in self.grid if slot not in booked]

    async def book(self, patient_id: int, payload: AppointmentCreate) -> Appointment:
        """Book a slot.

        Raises:
            NotFoundError: Doctor unknown or not an active staff member.
            BadRequestError: Date in the past or time off the grid.
            SlotUnavailableError: Slot already taken.
        """
        await self._doctor(payload.doctor_id)

        if payload.preferred_date < self.today():
            raise BadRequestError(
                message="Appointment date cannot be in the past",
                error_code="INVALID_APPOINTMENT_DATE",
            )
        if payload.time_slot not in self.grid:
            raise BadRequestError(
                message="Requested time is not a bookable slot",
                error_code="INVALID_TIME_SLOT",
                details={"time_slot": payload.time_slot},
            )
        if payload.time_slot in await self.appointments.booked_slots(
            payload.doctor_id, payload.preferred_date
        ):
            log.info(
                "appointment_slot_taken",
                doctor_id=payload.doctor_id,
                scheduled_date=payload.preferred_date.isoformat(),
                time_slot=payload.time_slot,
            )
            raise SlotUnavailableError(
                doctor_id=payload.doctor_id,
                date=payload.preferred_date.isoformat(),
                time_slot=payload.time_slot,
            )

        return await self.appointments.create(
            patient_id=patient_id,
            doctor_id=payload.doctor_id,
            appointment_type=payload.appointment_type.value,
            scheduled_date=payload.preferred_date,
            time_slot=payload.time_slot,
            reason=payload.reason,
            symptoms=payload.symptoms,
            urgency=payload.urgency.value,
        )
