"""
Permission and Role Endpoints.

Names are unique: creating a permission or role whose name already
exists returns 409.
"""
from __future__ import annotations

from fastapi import APIRouter, status

from ....core.exceptions import PermissionAlreadyExistsError, RoleAlreadyExistsError
from ....core.rbac import StaffClaims
from ....db.session import DbSession
from ....repositories.access_repository import PermissionRepository, RoleRepository
from ....schemas.access import (
    PermissionCreate,
    PermissionListResponse,
    PermissionResponse,
    RoleCreate,
    RoleListResponse,
    RoleResponse,
)

router = APIRouter(prefix="/admin", tags=["Admin - Access Control"])


@router.post(
    "/permissions",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create permission",
)
async def create_permission(
    payload: PermissionCreate,
    claims: StaffClaims,
    db: DbSession,
) -> PermissionResponse:
    repo = PermissionRepository(db)
    if await repo.get_by_name(payload.name) is not None:
        raise PermissionAlreadyExistsError(payload.name)
    permission = await repo.create(payload.name, payload.description)
    return PermissionResponse.model_validate(permission)


@router.get("/permissions", response_model=PermissionListResponse, summary="List permissions")
async def list_permissions(claims: StaffClaims, db: DbSession) -> PermissionListResponse:
    permissions = await PermissionRepository(db).list_all()
    return PermissionListResponse(
        permissions=[PermissionResponse.model_validate(p) for p in permissions]
    )


@router.post(
    "/roles",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create role",
    description="Every id in permission_ids must reference an existing permission.",
)
async def create_role(payload: RoleCreate, claims: StaffClaims, db: DbSession) -> RoleResponse:
    repo = RoleRepository(db)
    if await repo.get_by_name(payload.name) is not None:
        raise RoleAlreadyExistsError(payload.name)
    permissions = await PermissionRepository(db).get_exact(payload.permission_ids)
    role = await repo.create(payload.name, payload.description, permissions)
    return RoleResponse.model_validate(role)


@router.get("/roles", response_model=RoleListResponse, summary="List roles")
async def list_roles(claims: StaffClaims, db: DbSession) -> RoleListResponse:
    roles = await RoleRepository(db).list_all()
    return RoleListResponse(roles=[RoleResponse.model_validate(r) for r in roles])
