"""Portal settings.

Values come from the process environment, then ``.env.<env>``, then
``.env``. The Node-era variable names (``NODE_ENV``, ``JWT_SECRET``,
``EMAIL_USER``, ``EMAIL_PASS``) are accepted as aliases so an existing
deployment's environment file can be reused unchanged.
"""
import os
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_ALIASES = {"dev": "development", "prod": "production", "test": "development"}
_ENV_FILE_SUFFIX = {"development": "dev", "production": "prod", "staging": "staging"}
_INSECURE_SECRET = "change-me-in-production-use-strong-random-key"


def _env_files() -> tuple[str, ...]:
    """``.env`` first, then the per-environment file so it wins on conflicts."""
    raw = (os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "").strip().lower()
    env = _ENV_ALIASES.get(raw, raw)
    candidates = [".env"]
    if env:
        candidates.append(f".env.{_ENV_FILE_SUFFIX.get(env, env)}")
    return tuple(name for name in candidates if Path(name).exists()) or (".env",)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_env_files(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # --- service -------------------------------------------------------
    APP_NAME: str = "medidiagnose-portal"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = Field(default=8000, ge=1, le=65535)
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    PUBLIC_URL: str = Field(
        default="http://localhost:8000",
        description="Base URL placed in verification emails",
    )

    # --- database ------------------------------------------------------
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./medidiagnose.db",
        description="Async SQLAlchemy URL; postgresql+asyncpg://... outside development",
    )
    DATABASE_POOL_SIZE: int = Field(default=5, ge=1, le=100)
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0)
    DATABASE_POOL_TIMEOUT: int = Field(default=30, ge=1, description="Seconds to wait for a pooled connection")
    DATABASE_ECHO: bool = False
    DATABASE_INIT_ON_STARTUP: bool = Field(
        default=True,
        description="Run create_all (checkfirst) in the lifespan",
    )

    # --- tokens and passwords -------------------------------------------
    SECRET_KEY: str = Field(
        default=_INSECURE_SECRET,
        min_length=32,
        validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET"),
        description="HS256 signing key",
    )
    ALGORITHM: Literal["HS256"] = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=7 * 24 * 60, ge=1, description="Seven days by default")
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=16)
    PASSWORD_MIN_LENGTH: int = Field(default=6, ge=1)
    PASSWORD_MAX_LENGTH: int = Field(default=128, ge=8)

    # --- reCAPTCHA v3 ----------------------------------------------------
    RECAPTCHA_SECRET: str = ""
    RECAPTCHA_VERIFY_URL: str = "https://www.google.com/recaptcha/api/siteverify"
    RECAPTCHA_MIN_SCORE: float = Field(default=0.5, ge=0.0, le=1.0)
    RECAPTCHA_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # --- CORS -------------------------------------------------------------
    CORS_ORIGINS: str = Field(default="*", description="Comma separated, or '*'")
    CORS_ALLOW_CREDENTIALS: bool = False
    CORS_ALLOW_METHODS: str = "GET,POST,PUT,PATCH,DELETE,OPTIONS"

    # --- outbound email ---------------------------------------------------
    EMAIL_ENABLED: bool = False
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = Field(default=587, ge=1, le=65535, description="587 for STARTTLS, 465 for implicit SSL")
    SMTP_USERNAME: str = Field(default="", validation_alias=AliasChoices("SMTP_USERNAME", "EMAIL_USER"))
    SMTP_PASSWORD: str = Field(default="", validation_alias=AliasChoices("SMTP_PASSWORD", "EMAIL_PASS"))
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    EMAIL_FROM_ADDRESS: str = Field(default="", description="Falls back to SMTP_USERNAME")
    EMAIL_FROM_NAME: str = "MediDiagnose AI"
    EMAIL_TEMPLATES_PATH: str = Field(
        default="config/email_templates.yaml",
        description="Relative paths resolve against the project root",
    )
    EMAIL_TIMEOUT_SECONDS: int = Field(default=10, ge=1, le=60)

    # --- appointment grid -------------------------------------------------
    APPOINTMENT_DAY_START: int = Field(default=9, ge=0, le=23, description="Hour of the first slot")
    APPOINTMENT_DAY_END: int = Field(default=17, ge=1, le=24, description="Hour every slot must end by")
    APPOINTMENT_SLOT_MINUTES: int = Field(default=30, ge=5, le=240)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def cors_methods_list(self) -> list[str]:
        return [m.strip().upper() for m in self.CORS_ALLOW_METHODS.split(",") if m.strip()]

    @property
    def email_sender(self) -> str:
        return self.EMAIL_FROM_ADDRESS or self.SMTP_USERNAME

    @field_validator("APP_ENV", mode="before")
    @classmethod
    def normalise_app_env(cls, v: str) -> str:
        value = str(v).strip().lower()
        return _ENV_ALIASES.get(value, value)

    @field_validator("RECAPTCHA_SECRET")
    @classmethod
    def validate_recaptcha_secret(cls, v: str) -> str:
        if not v:
            warnings.warn(
                "RECAPTCHA_SECRET is empty; registration is only possible in development.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        if self.CORS_ALLOW_CREDENTIALS and self.cors_origins_list == ["*"]:
            raise ValueError("CORS_ALLOW_CREDENTIALS requires an explicit CORS_ORIGINS list, not '*'")
        if self.APPOINTMENT_DAY_END <= self.APPOINTMENT_DAY_START:
            raise ValueError("APPOINTMENT_DAY_END must be after APPOINTMENT_DAY_START")
        if not self.is_production:
            return self

        problems = []
        if self.DEBUG:
            problems.append("DEBUG must be off")
        if self.SECRET_KEY == _INSECURE_SECRET or "change-me" in self.SECRET_KEY.lower():
            problems.append("SECRET_KEY still has the placeholder value")
        if self.DATABASE_URL.startswith("sqlite"):
            problems.append("DATABASE_URL must point at a database server")
        if not self.RECAPTCHA_SECRET:
            problems.append("RECAPTCHA_SECRET is required")
        if not self.EMAIL_ENABLED:
            # Registrations stay inactive until the emailed link is opened.
            problems.append("EMAIL_ENABLED must be on")
        if problems:
            raise ValueError("Invalid production configuration: " + "; ".join(problems))
        return self


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings. Call ``get_settings.cache_clear()`` after changing the environment."""
    return Settings()
