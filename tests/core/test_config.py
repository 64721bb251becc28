"""Tests for Settings parsing and production validation."""

import pytest
from pydantic import ValidationError

import medidiagnose.core as core
from medidiagnose.core.config import Settings

_SECRET = "a-production-secret-key-with-enough-length-123"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("dev", "development"), ("prod", "production"), ("test", "development"), ("staging", "staging")],
)
def test_app_env_aliases(raw, expected):
    settings = Settings(
        APP_ENV=raw,
        SECRET_KEY=_SECRET,
        DATABASE_URL="postgresql+asyncpg://u:p@db/app",
        RECAPTCHA_SECRET="captcha-secret",
        EMAIL_ENABLED=True,
    )
    assert settings.APP_ENV == expected


def test_node_env_alias(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.setenv("NODE_ENV", "dev")
    assert Settings().is_development


def test_legacy_secret_and_email_aliases(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", _SECRET)
    monkeypatch.setenv("EMAIL_USER", "mailer@example.com")
    monkeypatch.setenv("EMAIL_PASS", "app-password")

    settings = Settings()

    assert settings.SECRET_KEY == _SECRET
    assert settings.SMTP_USERNAME == "mailer@example.com"
    assert settings.SMTP_PASSWORD == "app-password"
    assert settings.email_sender == "mailer@example.com"


def test_short_secret_rejected():
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY="short")


def test_production_requires_real_configuration():
    with pytest.raises(ValidationError):
        Settings(APP_ENV="production", SECRET_KEY=_SECRET, RECAPTCHA_SECRET="x")  # sqlite default

    with pytest.raises(ValidationError):
        Settings(
            APP_ENV="production",
            SECRET_KEY=_SECRET,
            DATABASE_URL="postgresql+asyncpg://u:p@db/app",
        )  # no captcha secret

    settings = Settings(
        APP_ENV="production",
        SECRET_KEY=_SECRET,
        DATABASE_URL="postgresql+asyncpg://u:p@db/app",
        RECAPTCHA_SECRET="captcha-secret",
        EMAIL_ENABLED=True,
    )
    assert settings.is_production


def test_production_requires_email_delivery():
    with pytest.raises(ValidationError, match="EMAIL_ENABLED"):
        Settings(
            APP_ENV="production",
            SECRET_KEY=_SECRET,
            DATABASE_URL="postgresql+asyncpg://u:p@db/app",
            RECAPTCHA_SECRET="captcha-secret",
            EMAIL_ENABLED=False,
        )


def test_core_package_exports_settings_accessors():
    assert core.Settings is Settings
    assert isinstance(core.get_settings(), Settings)


def test_wildcard_cors_with_credentials_rejected():
    with pytest.raises(ValidationError):
        Settings(CORS_ORIGINS="*", CORS_ALLOW_CREDENTIALS=True)


def test_cors_origin_list_parsing():
    settings = Settings(CORS_ORIGINS="https://a.example.com, https://b.example.com")
    assert settings.cors_origins_list == ["https://a.example.com", "https://b.example.com"]


def test_appointment_window_must_be_ordered():
    with pytest.raises(ValidationError):
        Settings(APPOINTMENT_DAY_START=17, APPOINTMENT_DAY_END=9)
