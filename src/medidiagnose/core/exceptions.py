"""
Errors raised by services and routers.

Each class fixes an HTTP status and a default error code; the handler in
``main`` turns any ``AppException`` into the standard error envelope.
Routers raise these instead of ``HTTPException``.
"""

from typing import Any, ClassVar


class AppException(Exception):
    status_code: ClassVar[int] = 500
    default_code: ClassVar[str] = "APP_ERROR"
    default_message: ClassVar[str] = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        self.details = dict(details or {})
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code!r}, {self.message!r})"


class BadRequestError(AppException):
    status_code = 400
    default_code = "BAD_REQUEST"
    default_message = "Invalid request"


class ValidationError(BadRequestError):
    """Semantic validation the request schema cannot express."""

    default_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        if errors:
            self.details["validation_errors"] = errors


class UnauthorizedError(AppException):
    status_code = 401
    default_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class ForbiddenError(AppException):
    status_code = 403
    default_code = "FORBIDDEN"
    default_message = "Permission denied"


class NotFoundError(AppException):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Resource not found"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        resource_type: str | None = None,
        resource_id: str | int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        if resource_type:
            self.details["resource_type"] = resource_type
        if resource_id is not None:
            self.details["resource_id"] = resource_id


class ConflictError(AppException):
    status_code = 409
    default_code = "CONFLICT"
    default_message = "Resource conflict"


class ConfigurationError(AppException):
    default_code = "CONFIGURATION_ERROR"
    default_message = "Service misconfigured"


class ExternalServiceError(AppException):
    """An upstream HTTP or SMTP dependency failed."""

    status_code = 502
    default_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message or f"Upstream service '{service_name}' failed",
            error_code,
            {**(details or {}), "service": service_name},
        )


# --- accounts ---------------------------------------------------------------


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int | str | None = None) -> None:
        super().__init__("User not found", "USER_NOT_FOUND", "user", user_id)


class UserAlreadyExistsError(ConflictError):
    def __init__(self, email: str) -> None:
        super().__init__("Email already exists", "EMAIL_ALREADY_EXISTS", {"email": email})


class InvalidCredentialsError(UnauthorizedError):
    """Same response for an unknown email and a wrong password."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials", "INVALID_CREDENTIALS")


class SuperuserProtectedError(ForbiddenError):
    default_message = "Superuser accounts cannot be deleted"

    def __init__(self, user_id: int | None, message: str | None = None) -> None:
        super().__init__(message, "SUPERUSER_PROTECTED", {"user_id": user_id})


class InvalidVerificationCodeError(BadRequestError):
    def __init__(self) -> None:
        super().__init__("Invalid or expired verification code", "INVALID_VERIFICATION_CODE")


class CaptchaVerificationError(BadRequestError):
    default_code = "CAPTCHA_FAILED"
    default_message = "reCAPTCHA verification failed"


# --- access control ---------------------------------------------------------


class PermissionAlreadyExistsError(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Permission '{name}' already exists", "PERMISSION_ALREADY_EXISTS", {"name": name}
        )


class RoleAlreadyExistsError(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Role '{name}' already exists", "ROLE_ALREADY_EXISTS", {"name": name})


class ReferencedIdsNotFoundError(NotFoundError):
    """Some of the role or permission ids in a request do not exist."""

    def __init__(self, resource_type: str, missing_ids: list[int]) -> None:
        super().__init__(
            f"Unknown {resource_type} id(s): {', '.join(map(str, missing_ids))}",
            f"{resource_type.upper()}_NOT_FOUND",
            resource_type,
            details={"missing_ids": missing_ids},
        )


# --- clinical ---------------------------------------------------------------


class ScanNotFoundError(NotFoundError):
    """Unknown or malformed medical record id."""

    def __init__(self, scan_id: int | str) -> None:
        super().__init__("Scan not found", "SCAN_NOT_FOUND", "medical_record", scan_id)


class SlotUnavailableError(ConflictError):
    def __init__(self, doctor_id: int, date: str, time_slot: str) -> None:
        super().__init__(
            "This time slot is no longer available",
            "SLOT_UNAVAILABLE",
            {"doctor_id": doctor_id, "date": date, "time_slot": time_slot},
        )
