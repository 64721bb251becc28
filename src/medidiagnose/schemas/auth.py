"""Authentication Schemas.

Defines request/response models for:
- Registration (with password confirmation and captcha token)
- Login and the issued access token
- Decoded token claims handed to route handlers
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ..core.config import get_settings
from ..models.enums import UserRole


def check_password_length(v: str) -> str:
    settings = get_settings()
    if len(v) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
    if len(v) > settings.PASSWORD_MAX_LENGTH:
        raise ValueError(f"Password must be at most {settings.PASSWORD_MAX_LENGTH} characters")
    return v


class RegisterRequest(BaseModel):
    """Self-service registration. Always creates a patient account."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., description="Login email", examples=["patient@example.com"])
    password: str = Field(..., description="Plain-text password")
    confirm_password: str = Field(..., alias="confirmPassword", description="Must equal password")
    full_name: str | None = Field(None, max_length=200)
    captcha_token: str | None = Field(
        None,
        alias="captchaToken",
        description="reCAPTCHA v3 token (required outside development)",
    )

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_length(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_length(v)


class TokenResponse(BaseModel):
    """Response schema after successful login."""

    success: bool = True
    token: str = Field(..., description="HS256 access token")
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    role: UserRole
    capabilities: list[str]


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user_id: int
    is_active: bool


class TokenClaims(BaseModel):
    """Decoded access token claims exposed to handlers."""

    model_config = ConfigDict(extra="ignore")

    sub: str
    user_id: int
    email: str
    roles: list[int] = Field(default_factory=list)
    extra_permissions: list[int] = Field(default_factory=list)
    is_superuser: bool = False
    is_staff: bool = False
    role: UserRole = UserRole.PATIENT
    capabilities: list[str] = Field(default_factory=list)
    iat: int | None = None
    exp: int

    @property
    def has_staff_access(self) -> bool:
        return self.is_superuser or self.is_staff
