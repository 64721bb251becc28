"""User Repository - Data access layer for portal accounts."""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime
from typing import Any

import structlog
from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.authentication import Authentication
from ..models.enums import UserRole, UserStatus
from ..models.permission import Permission
from ..models.role import Role
from ..models.user import User
from .medical_record_repository import within_days

log = structlog.get_logger(__name__)


def _is_patient():
    return (User.is_superuser.is_(False)) & (User.is_staff.is_(False))


class UserRepository:
    """Repository for User CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with database session."""
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        query = select(User).where(User.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address (case-insensitive)."""
        query = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, User]:
        """Fetch several users in one ``IN`` query, keyed by id."""
        ids = {i for i in user_ids if i is not None}
        if not ids:
            return {}
        result = await self.session.execute(select(User).where(User.id.in_(sorted(ids))))
        return {u.id: u for u in result.scalars().all()}

    @staticmethod
    def _apply_list_filters(
        query: Select,
        *,
        status: UserStatus | None = None,
        role: UserRole | None = None,
        search: str | None = None,
    ) -> Select:
        if status is UserStatus.ACTIVE:
            query = query.where(User.is_active.is_(True))
        elif status is UserStatus.SUSPENDED:
            query = query.where(User.is_active.is_(False))

        # Coarse buckets: Doctor and Staff share the same flag.
        if role is UserRole.ADMINISTRATOR:
            query = query.where(User.is_superuser.is_(True))
        elif role in (UserRole.DOCTOR, UserRole.STAFF):
            query = query.where(User.is_staff.is_(True))
        elif role is UserRole.PATIENT:
            query = query.where(_is_patient())

        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(func.coalesce(User.full_name, "")).like(pattern),
                )
            )
        return query

    async def list_users(
        self,
        *,
        skip: int = 0,
        limit: int | None = 10,
        status: UserStatus | None = None,
        role: UserRole | None = None,
        search: str | None = None,
    ) -> tuple[Sequence[User], int]:
        """Return one page of users (newest first) and the total match count."""
        query = self._apply_list_filters(select(User), status=status, role=role, search=search)
        count_query = self._apply_list_filters(
            select(func.count(User.id)), status=status, role=role, search=search
        )

        total = (await self.session.execute(count_query)).scalar_one()
        query = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all(), total

    async def count_all(self) -> int:
        result = await self.session.execute(select(func.count(User.id)))
        return result.scalar_one()

    async def count_active_staff(self) -> int:
        """Active users with the staff flag (shown as active doctors)."""
        query = select(func.count(User.id)).where(
            User.is_active.is_(True),
            User.is_staff.is_(True),
        )
        return (await self.session.execute(query)).scalar_one()

    async def created_between(self, start: date | None, end: date | None) -> Sequence[User]:
        query = (
            select(User)
            .where(*within_days(User.created_at, start, end))
            .order_by(User.created_at.desc(), User.id.desc())
        )
        return (await self.session.execute(query)).scalars().all()

    async def logged_in_between(self, start: date | None, end: date | None) -> Sequence[User]:
        """Accounts whose most recent login falls in the day range."""
        query = (
            select(User)
            .where(User.last_login_at.is_not(None), *within_days(User.last_login_at, start, end))
            .order_by(User.last_login_at.desc())
        )
        return (await self.session.execute(query)).scalars().all()

    async def count_active_patients(self) -> int:
        query = select(func.count(User.id)).where(User.is_active.is_(True), _is_patient())
        return (await self.session.execute(query)).scalar_one()

    async def get_recent_patients(self, limit: int = 10) -> Sequence[User]:
        """Newest active patient accounts."""
        query = (
            select(User)
            .where(User.is_active.is_(True), _is_patient())
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_available_doctors(self) -> Sequence[User]:
        """Active staff accounts that are not superusers."""
        query = (
            select(User)
            .where(
                User.is_active.is_(True),
                User.is_staff.is_(True),
                User.is_superuser.is_(False),
            )
            .order_by(User.full_name, User.email)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_active_doctor(self, user_id: int) -> User | None:
        query = select(User).where(
            User.id == user_id,
            User.is_active.is_(True),
            User.is_staff.is_(True),
        )
        return (await self.session.execute(query)).scalar_one_or_none()

    async def email_taken(self, email: str, *, exclude_id: int | None = None) -> bool:
        query = select(User.id).where(User.email == email.strip().lower())
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        return (await self.session.execute(query.limit(1))).first() is not None

    # =========================================================================
    # CREATE OPERATIONS
    # =========================================================================

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: str | None = None,
        role: UserRole = UserRole.PATIENT,
        is_active: bool = False,
        created_by: int | None = None,
        **profile: Any,
    ) -> User:
        """Create a new user. ``profile`` carries optional profile columns."""
        is_superuser, is_staff = role.flags
        user = User(
            email=email.strip().lower(),
            password=password_hash,
            full_name=full_name,
            is_active=is_active,
            is_superuser=is_superuser,
            is_staff=is_staff,
            created_by=created_by,
            roles=[],
            extra_permissions=[],
            **profile,
        )

        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        log.info("user_created", user_id=user.id, role=role.value, created_by=created_by)
        return user

    # =========================================================================
    # UPDATE OPERATIONS
    # =========================================================================

    async def update_fields(self, user: User, **fields: Any) -> User:
        """Apply column updates to ``user`` in a single commit.

        ``role`` (a ``UserRole``) is translated into the access flags.
        """
        role = fields.pop("role", None)
        if role is not None:
            user.apply_role(role)
        if "email" in fields and fields["email"] is not None:
            fields["email"] = fields["email"].strip().lower()
        for name, value in fields.items():
            setattr(user, name, value)
        user.updated_at = datetime.now(UTC)

        await self.session.commit()
        await self.session.refresh(user)

        log.info(
            "user_updated",
            user_id=user.id,
            fields=sorted([*fields.keys(), *(["role"] if role is not None else [])]),
        )
        return user

    async def set_active(self, user: User, is_active: bool) -> User:
        return await self.update_fields(user, is_active=is_active)

    async def set_password(self, user: User, password_hash: str) -> User:
        """Replace the stored hash and stamp ``password_reset_at``."""
        user.password = password_hash
        user.password_reset_at = datetime.now(UTC)
        user.updated_at = user.password_reset_at
        await self.session.commit()
        await self.session.refresh(user)
        log.info("user_password_reset", user_id=user.id)
        return user

    async def touch_last_login(self, user: User) -> None:
        user.last_login_at = datetime.now(UTC)
        await self.session.commit()

    async def replace_roles(self, user: User, roles: Sequence[Role]) -> User:
        user.roles = list(roles)
        user.updated_at = datetime.now(UTC)
        await self.session.commit()
        await self.session.refresh(user)
        log.info("user_roles_replaced", user_id=user.id, role_ids=user.role_ids)
        return user

    async def replace_permissions(self, user: User, permissions: Sequence[Permission]) -> User:
        user.extra_permissions = list(permissions)
        user.updated_at = datetime.now(UTC)
        await self.session.commit()
        await self.session.refresh(user)
        log.info("user_permissions_replaced", user_id=user.id, permission_ids=user.permission_ids)
        return user

    # =========================================================================
    # DELETE OPERATIONS
    # =========================================================================

    async def delete(self, user: User) -> None:
        """Delete a user together with its verification records."""
        user_id = user.id
        await self.session.execute(delete(Authentication).where(Authentication.user_id == user_id))
        await self.session.delete(user)
        await self.session.commit()
        log.info("user_deleted", user_id=user_id)
