"""Classification of scan findings.

A record is *completed* once it carries a diagnosis or an analysis
result, and *abnormal* when that text mentions one of
``ABNORMAL_KEYWORDS`` (case-insensitive substring match). The same
keyword list drives the SQL counters in the medical record repository.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.medical_record import MedicalRecord

ABNORMAL_KEYWORDS: tuple[str, ...] = ("abnormal", "suspicious", "concerning", "positive")


class ScanStatus(str, Enum):
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    ALERT = "Alert"


class PatientStatus(str, Enum):
    NORMAL = "Normal"
    ABNORMAL = "Abnormal"


def is_abnormal_text(text: str | None) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in ABNORMAL_KEYWORDS)


def findings_text(record: MedicalRecord) -> str | None:
    """Diagnosis if present, else the analysis result. Blank strings count as missing."""
    return (record.diagnosis or "").strip() or (record.analysis_result or "").strip() or None


def is_completed(record: MedicalRecord) -> bool:
    return findings_text(record) is not None


def is_abnormal(record: MedicalRecord) -> bool:
    return is_abnormal_text(record.diagnosis) or is_abnormal_text(record.analysis_result)


def scan_status(record: MedicalRecord) -> ScanStatus:
    if not is_completed(record):
        return ScanStatus.PROCESSING
    if is_abnormal(record):
        return ScanStatus.ALERT
    return ScanStatus.COMPLETED


def patient_status(last_record: MedicalRecord | None) -> PatientStatus:
    """Status of a patient judged by their most recent record."""
    if last_record is not None and is_abnormal(last_record):
        return PatientStatus.ABNORMAL
    return PatientStatus.NORMAL


def abnormal_rate(abnormal: int, total: int) -> float:
    """Percentage of abnormal records, rounded to one decimal."""
    if total <= 0:
        return 0.0
    return round(abnormal * 100.0 / total, 1)
