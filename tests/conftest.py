"""Pytest fixtures and configuration."""

from __future__ import annotations

import os

# Fast hashing and a predictable environment for the whole test session.
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("DATABASE_INIT_ON_STARTUP", "false")

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from medidiagnose import models  # noqa: F401
from medidiagnose.core.config import get_settings
from medidiagnose.core.security import encode_jwt, hash_password
from medidiagnose.db.session import Base, get_db
from medidiagnose.main import app
from medidiagnose.models.enums import UserRole
from medidiagnose.models.medical_record import MedicalRecord
from medidiagnose.models.user import User
from medidiagnose.repositories.medical_record_repository import MedicalRecordRepository
from medidiagnose.repositories.user_repository import UserRepository
from medidiagnose.services.auth_service import build_claims

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Test database URL (in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DEFAULT_PASSWORD = "secret123"

UserFactory = Callable[..., Awaitable[User]]
RecordFactory = Callable[..., Awaitable[MedicalRecord]]


def token_for(user: User, *, expires_delta: timedelta | None = None, **overrides: Any) -> str:
    """Mint an access token for ``user`` with the production encoder."""
    claims = build_claims(user)
    claims.update(overrides)
    return encode_jwt(claims, settings=get_settings(), expires_delta=expires_delta)


def bearer(user: User, **overrides: Any) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user, **overrides)}"}


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with the database dependency overridden."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Insert a user. Password defaults to ``DEFAULT_PASSWORD``."""
    counter = {"n": 0}

    async def _make(
        email: str | None = None,
        role: UserRole = UserRole.PATIENT,
        *,
        is_active: bool = True,
        password: str = DEFAULT_PASSWORD,
        full_name: str | None = None,
        **profile: Any,
    ) -> User:
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        return await UserRepository(db_session).create(
            email=email,
            password_hash=hash_password(password, rounds=4),
            full_name=full_name,
            role=role,
            is_active=is_active,
            **profile,
        )

    return _make


@pytest.fixture
def make_record(db_session: AsyncSession) -> RecordFactory:
    """Insert a medical record."""

    async def _make(patient: User, **fields: Any) -> MedicalRecord:
        fields.setdefault("scan_type", "X-Ray")
        fields.setdefault("created_at", datetime.now(UTC))
        return await MedicalRecordRepository(db_session).create(patient_id=patient.id, **fields)

    return _make


@pytest_asyncio.fixture
async def admin_user(make_user: UserFactory) -> User:
    return await make_user("admin@example.com", UserRole.ADMINISTRATOR, full_name="Ada Admin")


@pytest_asyncio.fixture
async def doctor_user(make_user: UserFactory) -> User:
    return await make_user("doctor@example.com", UserRole.DOCTOR, full_name="Dana Doctor")


@pytest_asyncio.fixture
async def patient_user(make_user: UserFactory) -> User:
    return await make_user("patient@example.com", UserRole.PATIENT, full_name="Pat Patient")


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return bearer(admin_user)


@pytest.fixture
def doctor_headers(doctor_user: User) -> dict[str, str]:
    return bearer(doctor_user)


@pytest.fixture
def patient_headers(patient_user: User) -> dict[str, str]:
    return bearer(patient_user)


@pytest.fixture
def headers_for() -> Callable[..., dict[str, str]]:
    """``headers_for(user, **claim_overrides)`` -> Authorization header."""
    return bearer


@pytest.fixture
def mint_token() -> Callable[..., str]:
    return token_for
