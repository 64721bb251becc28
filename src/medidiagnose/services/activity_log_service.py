"""
Activity Log Service.

There is no audit table; the admin activity feed is derived from data
the portal already stores:

    user_created      one per account (users.created_at)
    account_verified  one per consumed verification record
    login             last successful login per account (users.last_login_at)
    uploaded_scan     one per medical record
    result_generated  one per medical record that carries findings

The date range and action type are applied in each source query, and
sources the selected type cannot produce are not queried at all. The
user search matches the derived display name, so it runs in memory.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.authentication import Authentication
from ..models.medical_record import MedicalRecord
from ..models.user import User
from ..repositories.authentication_repository import AuthenticationRepository
from ..repositories.medical_record_repository import MedicalRecordRepository
from ..repositories.user_repository import UserRepository
from .findings import is_completed

log = structlog.get_logger(__name__)


class ActionType(str, Enum):
    LOGIN = "login"
    UPLOADED_SCAN = "uploaded_scan"
    RESULT_GENERATED = "result_generated"
    USER_CREATED = "user_created"
    ACCOUNT_VERIFIED = "account_verified"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


_SCAN_TYPES = frozenset({ActionType.UPLOADED_SCAN, ActionType.RESULT_GENERATED})


@dataclass(slots=True)
class ActivityEntry:
    id: str
    timestamp: datetime
    action_type: ActionType
    action: str
    description: str
    user_id: int | None
    username: str
    user_email: str | None


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def display_name(user: User | None, fallback: str = "Unknown User") -> str:
    if user is None:
        return fallback
    return user.full_name or user.email.split("@")[0] or fallback


def _user_entry(user: User, kind: ActionType) -> ActivityEntry:
    if kind is ActionType.LOGIN:
        entry_id, stamp, action, text = f"login_{user.id}", user.last_login_at, "Login", "Successful login"
    else:
        entry_id, stamp = f"user_{user.id}", user.created_at
        action, text = "User created", f"Created user account for {user.email}"
    return ActivityEntry(
        id=entry_id,
        timestamp=_as_utc(stamp),
        action_type=kind,
        action=action,
        description=text,
        user_id=user.id,
        username=display_name(user),
        user_email=user.email,
    )


def _verification_entry(record: Authentication, owner: User | None) -> ActivityEntry:
    return ActivityEntry(
        id=f"auth_{record.id}",
        timestamp=_as_utc(record.verified_at or record.created_at),
        action_type=ActionType.ACCOUNT_VERIFIED,
        action="Account verified",
        description="Email address verified",
        user_id=record.user_id,
        username=display_name(owner),
        user_email=owner.email if owner else None,
    )


def _scan_entries(
    record: MedicalRecord, actor: User | None, kinds: frozenset[ActionType]
) -> Iterable[ActivityEntry]:
    who = dict(
        user_id=actor.id if actor else None,
        username=display_name(actor, "Dr. Unknown"),
        user_email=actor.email if actor else None,
    )
    stamp = _as_utc(record.created_at)
    if ActionType.UPLOADED_SCAN in kinds:
        yield ActivityEntry(
            id=f"scan_{record.id}",
            timestamp=stamp,
            action_type=ActionType.UPLOADED_SCAN,
            action="Uploaded scan",
            description=f"{record.scan_type or 'Medical scan'} (ID: #{record.id})",
            **who,
        )
    if ActionType.RESULT_GENERATED in kinds and is_completed(record):
        yield ActivityEntry(
            id=f"result_{record.id}",
            timestamp=stamp,
            action_type=ActionType.RESULT_GENERATED,
            action="Result generated",
            description=f"Analysis completed (ID: #{record.id})",
            **who,
        )


class ActivityLogService:
    def __init__(self, session: AsyncSession) -> None:
        self.users = UserRepository(session)
        self.auth_records = AuthenticationRepository(session)
        self.records = MedicalRecordRepository(session)

    async def collect(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        action_type: ActionType | None = None,
    ) -> list[ActivityEntry]:
        """Activities in the inclusive day range, newest first."""
        kinds = frozenset(ActionType) if action_type is None else frozenset({action_type})
        span = (start_date, end_date)

        created = await self.users.created_between(*span) if ActionType.USER_CREATED in kinds else []
        logins = await self.users.logged_in_between(*span) if ActionType.LOGIN in kinds else []
        verified = (
            await self.auth_records.list_verified(*span)
            if ActionType.ACCOUNT_VERIFIED in kinds
            else []
        )
        scans = (
            await self.records.list_created_between(
                *span, completed_only=ActionType.UPLOADED_SCAN not in kinds
            )
            if kinds & _SCAN_TYPES
            else []
        )

        known = {u.id: u for u in (*created, *logins)}
        wanted = {r.user_id for r in verified} | {r.doctor_id or r.patient_id for r in scans}
        known.update(await self.users.get_many(wanted - known.keys()))

        entries = [_user_entry(u, ActionType.USER_CREATED) for u in created]
        entries += [_user_entry(u, ActionType.LOGIN) for u in logins]
        entries += [_verification_entry(r, known.get(r.user_id)) for r in verified]
        for record in scans:
            entries.extend(_scan_entries(record, known.get(record.doctor_id or record.patient_id), kinds))

        entries.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        return entries

    async def query(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        action_type: ActionType | None = None,
        user_search: str | None = None,
    ) -> list[ActivityEntry]:
        """Filtered feed, newest first."""
        entries = await self.collect(start_date, end_date, action_type)
        needle = user_search.strip().lower() if user_search else None
        if not needle:
            return entries

        matched = [
            e for e in entries if needle in f"{e.username} {e.user_email or ''}".lower()
        ]
        log.debug("activity_log_searched", total=len(entries), matched=len(matched))
        return matched
