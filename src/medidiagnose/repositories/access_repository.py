"""Permission and Role repositories."""
from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ReferencedIdsNotFoundError
from ..models.permission import Permission
from ..models.role import Role

log = structlog.get_logger(__name__)


class PermissionRepository:
    """Repository for Permission rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_name(self, name: str) -> Permission | None:
        result = await self.session.execute(select(Permission).where(Permission.name == name))
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[Permission]:
        result = await self.session.execute(select(Permission).order_by(Permission.name))
        return result.scalars().all()

    async def get_exact(self, ids: Iterable[int]) -> list[Permission]:
        """Load every id with one ``IN`` query or raise listing the missing ones."""
        wanted = sorted(set(ids))
        if not wanted:
            return []
        result = await self.session.execute(select(Permission).where(Permission.id.in_(wanted)))
        found = list(result.scalars().all())
        missing = sorted(set(wanted) - {p.id for p in found})
        if missing:
            raise ReferencedIdsNotFoundError("permission", missing)
        return found

    async def create(self, name: str, description: str | None = None) -> Permission:
        permission = Permission(name=name, description=description)
        self.session.add(permission)
        await self.session.commit()
        await self.session.refresh(permission)
        log.info("permission_created", permission_id=permission.id, name=name)
        return permission


class RoleRepository:
    """Repository for Role rows and their permission lists."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_name(self, name: str) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[Role]:
        result = await self.session.execute(select(Role).order_by(Role.name))
        return result.scalars().all()

    async def get_exact(self, ids: Iterable[int]) -> list[Role]:
        wanted = sorted(set(ids))
        if not wanted:
            return []
        result = await self.session.execute(select(Role).where(Role.id.in_(wanted)))
        found = list(result.scalars().all())
        missing = sorted(set(wanted) - {r.id for r in found})
        if missing:
            raise ReferencedIdsNotFoundError("role", missing)
        return found

    async def create(
        self,
        name: str,
        description: str | None = None,
        permissions: Sequence[Permission] = (),
    ) -> Role:
        role = Role(name=name, description=description, permissions=list(permissions))
        self.session.add(role)
        await self.session.commit()
        await self.session.refresh(role)
        log.info("role_created", role_id=role.id, name=name, permission_ids=role.permission_ids)
        return role
