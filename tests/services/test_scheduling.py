"""Tests for the appointment slot grid and booking rules."""

from datetime import date, timedelta

import pytest

from medidiagnose.core.config import get_settings
from medidiagnose.core.exceptions import BadRequestError, NotFoundError, SlotUnavailableError
from medidiagnose.models.enums import UserRole
from medidiagnose.schemas.patient import AppointmentCreate
from medidiagnose.services.scheduling_service import SchedulingService, slot_grid


def test_default_grid():
    slots = slot_grid(9, 17, 30)

    assert len(slots) == 16
    assert slots[0] == "09:00"
    assert slots[-1] == "16:30"


def test_grid_drops_partial_last_slot():
    assert slot_grid(9, 10, 45) == ["09:00"]


def _booking(doctor_id: int, day: date, slot: str = "10:00") -> AppointmentCreate:
    return AppointmentCreate(doctorId=doctor_id, preferredDate=day, timeSlot=slot, reason="Check-up")


@pytest.fixture
def scheduling(db_session):
    return SchedulingService(db_session, get_settings())


async def test_available_slots_exclude_booked(scheduling, doctor_user, patient_user):
    day = SchedulingService.today() + timedelta(days=1)
    await scheduling.book(patient_user.id, _booking(doctor_user.id, day, "10:00"))

    slots = await scheduling.available_slots(doctor_user.id, day)

    assert "10:00" not in slots
    assert len(slots) == len(scheduling.grid) - 1


async def test_past_day_has_no_slots(scheduling, doctor_user):
    yesterday = SchedulingService.today() - timedelta(days=1)
    assert await scheduling.available_slots(doctor_user.id, yesterday) == []


async def test_unknown_or_patient_doctor_rejected(scheduling, patient_user):
    with pytest.raises(NotFoundError):
        await scheduling.available_slots(patient_user.id, SchedulingService.today())


async def test_inactive_doctor_rejected(scheduling, make_user, patient_user):
    retired = await make_user("retired@example.com", UserRole.DOCTOR, is_active=False)
    with pytest.raises(NotFoundError):
        await scheduling.book(patient_user.id, _booking(retired.id, SchedulingService.today()))


async def test_book_rejects_past_date(scheduling, doctor_user, patient_user):
    with pytest.raises(BadRequestError) as exc:
        await scheduling.book(
            patient_user.id,
            _booking(doctor_user.id, SchedulingService.today() - timedelta(days=2)),
        )
    assert exc.value.error_code == "INVALID_APPOINTMENT_DATE"


async def test_book_rejects_off_grid_slot(scheduling, doctor_user, patient_user):
    with pytest.raises(BadRequestError) as exc:
        await scheduling.book(
            patient_user.id,
            _booking(doctor_user.id, SchedulingService.today() + timedelta(days=1), "10:15"),
        )
    assert exc.value.error_code == "INVALID_TIME_SLOT"


async def test_double_booking_conflicts(scheduling, doctor_user, patient_user, make_user):
    other = await make_user("other@example.com")
    day = SchedulingService.today() + timedelta(days=3)
    await scheduling.book(patient_user.id, _booking(doctor_user.id, day, "11:30"))

    with pytest.raises(SlotUnavailableError):
        await scheduling.book(other.id, _booking(doctor_user.id, day, "11:30"))
