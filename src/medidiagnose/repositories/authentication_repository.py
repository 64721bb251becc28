"""Authentication Repository - verification codes."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, date, datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.authentication import Authentication
from ..models.enums import AuthRecordType
from .medical_record_repository import within_days

log = structlog.get_logger(__name__)


class AuthenticationRepository:
    """Repository for email verification records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        user_id: int,
        auth_code: str,
        *,
        is_verified: bool = False,
    ) -> Authentication:
        record = Authentication(
            user_id=user_id,
            auth_code=auth_code,
            type=AuthRecordType.VERIFY.value,
            is_verified=is_verified,
            verified_at=datetime.now(UTC) if is_verified else None,
        )
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        log.info("verification_record_created", user_id=user_id, auto_verified=is_verified)
        return record

    async def get_pending(self, auth_code: str) -> Authentication | None:
        """Unconsumed ``verify`` record for ``auth_code``."""
        query = select(Authentication).where(
            Authentication.auth_code == auth_code,
            Authentication.type == AuthRecordType.VERIFY.value,
            Authentication.is_verified.is_(False),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def mark_verified(self, record: Authentication) -> Authentication:
        record.is_verified = True
        record.verified_at = datetime.now(UTC)
        await self.session.commit()
        return record

    async def list_verified(
        self, start: date | None = None, end: date | None = None
    ) -> Sequence[Authentication]:
        """Consumed verification records, newest first, by verification day."""
        verified_on = func.coalesce(Authentication.verified_at, Authentication.created_at)
        query = (
            select(Authentication)
            .where(
                Authentication.type == AuthRecordType.VERIFY.value,
                Authentication.is_verified.is_(True),
                *within_days(verified_on, start, end),
            )
            .order_by(verified_on.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()
