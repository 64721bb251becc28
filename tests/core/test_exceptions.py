"""Tests for the AppException hierarchy."""

import pytest

from medidiagnose.core.exceptions import (
    AppException,
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    ReferencedIdsNotFoundError,
    ScanNotFoundError,
    SlotUnavailableError,
    SuperuserProtectedError,
    UnauthorizedError,
    UserAlreadyExistsError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (BadRequestError(), 400),
        (UnauthorizedError(), 401),
        (ForbiddenError(), 403),
        (NotFoundError(), 404),
        (ConflictError(), 409),
        (ValidationError(), 400),
        (ExternalServiceError("recaptcha"), 502),
    ],
)
def test_status_codes(exc: AppException, status: int):
    assert exc.status_code == status


def test_domain_error_defaults():
    exc = UserAlreadyExistsError("a@example.com")

    assert exc.message == "Email already exists"
    assert exc.error_code == "EMAIL_ALREADY_EXISTS"
    assert exc.details == {"email": "a@example.com"}
    assert exc.status_code == 409


def test_overrides_keep_class_status():
    exc = ForbiddenError(message="Nope", error_code="ACCOUNT_INACTIVE")

    assert (exc.status_code, exc.error_code, exc.message) == (403, "ACCOUNT_INACTIVE", "Nope")
    assert BadRequestError().message == "Invalid request"


def test_not_found_records_resource():
    exc = NotFoundError(resource_type="doctor", resource_id=3)
    assert exc.details == {"resource_type": "doctor", "resource_id": 3}


def test_validation_error_carries_field_errors():
    exc = ValidationError(errors=[{"field": "email", "message": "bad"}])
    assert exc.details["validation_errors"][0]["field"] == "email"


def test_referenced_ids_not_found_lists_missing():
    exc = ReferencedIdsNotFoundError("permission", [4, 9])

    assert exc.status_code == 404
    assert exc.error_code == "PERMISSION_NOT_FOUND"
    assert exc.details["missing_ids"] == [4, 9]
    assert "4, 9" in exc.message


def test_domain_errors():
    assert SuperuserProtectedError(1).status_code == 403
    assert ScanNotFoundError("abc").details["resource_id"] == "abc"
    slot = SlotUnavailableError(doctor_id=2, date="2030-01-01", time_slot="09:00")
    assert slot.status_code == 409
    assert slot.details["time_slot"] == "09:00"
