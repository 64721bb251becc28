"""
Medical Record Model.

One scan / diagnosis event for a patient. Records are written by the scan
pipeline and are read-mostly from this service.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    scan_type: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    analysis_result: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Free-text findings produced by the analysis step",
    )
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    # "metadata" is reserved on declarative classes.
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_medical_records_patient_created", "patient_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<MedicalRecord(id={self.id}, patient_id={self.patient_id}, scan_type='{self.scan_type}')>"
