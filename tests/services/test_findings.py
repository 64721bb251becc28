"""Tests for scan status and abnormality classification."""

import pytest

from medidiagnose.models.medical_record import MedicalRecord
from medidiagnose.services.findings import (
    PatientStatus,
    ScanStatus,
    abnormal_rate,
    findings_text,
    is_abnormal_text,
    patient_status,
    scan_status,
)


def _record(diagnosis=None, analysis_result=None) -> MedicalRecord:
    return MedicalRecord(patient_id=1, scan_type="CT", diagnosis=diagnosis, analysis_result=analysis_result)


@pytest.mark.parametrize(
    "text",
    ["Abnormal mass", "SUSPICIOUS lesion", "concerning shadow", "Covid positive"],
)
def test_abnormal_keywords_case_insensitive(text):
    assert is_abnormal_text(text)


@pytest.mark.parametrize("text", [None, "", "No acute findings", "Normal study"])
def test_normal_text(text):
    assert not is_abnormal_text(text)


def test_scan_status_processing_without_findings():
    assert scan_status(_record()) is ScanStatus.PROCESSING
    assert scan_status(_record(diagnosis="   ")) is ScanStatus.PROCESSING


def test_scan_status_completed_and_alert():
    assert scan_status(_record(diagnosis="Clear lungs")) is ScanStatus.COMPLETED
    assert scan_status(_record(analysis_result="Suspicious nodule")) is ScanStatus.ALERT


def test_findings_prefers_diagnosis():
    assert findings_text(_record("Fracture", "Model output")) == "Fracture"
    assert findings_text(_record(None, "Model output")) == "Model output"
    assert findings_text(_record()) is None


def test_patient_status_uses_latest_record():
    assert patient_status(None) is PatientStatus.NORMAL
    assert patient_status(_record(diagnosis="Abnormal ECG")) is PatientStatus.ABNORMAL
    assert patient_status(_record(diagnosis="Normal ECG")) is PatientStatus.NORMAL


def test_abnormal_rate():
    assert abnormal_rate(0, 0) == 0.0
    assert abnormal_rate(1, 3) == 33.3
    assert abnormal_rate(2, 2) == 100.0
