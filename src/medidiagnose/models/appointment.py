"""Appointment Model."""
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .enums import AppointmentStatus, AppointmentType, AppointmentUrgency


class Appointment(Base):
    """
    A booked slot with a doctor.

    ``(doctor_id, scheduled_date, time_slot)`` is unique, so two patients
    can never hold the same slot even when their requests race.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appointment_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=AppointmentType.CONSULTATION.value,
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    time_slot: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    symptoms: Mapped[str | None] = mapped_column(Text, nullable=True)
    urgency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentUrgency.ROUTINE.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentStatus.SCHEDULED.value,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "doctor_id",
            "scheduled_date",
            "time_slot",
            name="uq_appointments_doctor_slot",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, "
            f"date={self.scheduled_date}, slot='{self.time_slot}')>"
        )
