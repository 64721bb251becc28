"""Engine and session lifecycle.

One ``DatabaseManager`` exists per application. The lifespan builds it
and parks it on ``app.state.db``; request handlers receive sessions via
``get_db``. Scripts construct their own manager from ``Settings``.
"""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

import structlog
from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ..core.config import Settings, get_settings

log = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


def engine_options(settings: Settings) -> dict[str, Any]:
    """``create_async_engine`` kwargs. Pool sizing is skipped for SQLite."""
    options: dict[str, Any] = {"echo": settings.DATABASE_ECHO}
    if settings.DATABASE_URL.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
    )
    return options


class DatabaseManager:
    """Lazily builds the engine; ``close`` releases the pool."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            options = engine_options(self.settings)
            self._engine = create_async_engine(self.settings.DATABASE_URL, **options)
            log.info(
                "db_engine_created",
                backend=self._engine.url.get_backend_name(),
                pool_size=options.get("pool_size"),
            )
        return self._engine

    @property
    def sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            self._sessions = async_sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._sessions

    async def init_db(self) -> None:
        """``create_all`` with ``checkfirst``; deployments use Alembic instead."""
        from .. import models  # noqa: F401  (populates Base.metadata)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
        log.info("db_schema_initialized", tables=sorted(Base.metadata.tables))

    async def health_check(self) -> dict[str, str | None]:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            log.error("db_health_check_failed", error=type(exc).__name__)
            return {"status": "unhealthy", "error": str(exc)}
        return {"status": "healthy", "error": None}

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        log.info("db_engine_disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Unit of work: commit on success, roll back on any error."""
        async with self.sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db


async def get_db(
    manager: Annotated[DatabaseManager, Depends(get_db_manager)],
) -> AsyncGenerator[AsyncSession, None]:
    async with manager.session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db)]
