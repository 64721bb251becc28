"""
Admin User Management API Endpoints.

- List users with status / role / search filters
- Create, update, activate / suspend and delete accounts
- Replace role and permission assignments
- Reset passwords

All endpoints require the superuser or staff flag. Changing a superuser
account, or creating an Administrator, also needs the ``admin:manage_users``
capability; superusers themselves can never be deleted.
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, status

from ....core.config import Settings, get_settings
from ....core.exceptions import (
    BadRequestError,
    SuperuserProtectedError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from ....core.rbac import StaffClaims
from ....core.responses import MessageResponse, PaginationMeta
from ....core.security import hash_password
from ....db.session import DbSession
from ....models.enums import Capability, UserRole, UserStatus
from ....models.user import User
from ....repositories.access_repository import PermissionRepository, RoleRepository
from ....repositories.user_repository import UserRepository
from ....schemas.auth import TokenClaims
from ....schemas.user import (
    PasswordReset,
    UserCreate,
    UserEnvelope,
    UserListResponse,
    UserPermissionsUpdate,
    UserProfileResponse,
    UserResponse,
    UserRolesUpdate,
    UserStatusUpdate,
    UserUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/admin/users",
    tags=["Admin - User Management"],
)


# =============================================================================
# Dependencies
# =============================================================================

async def get_user_repo(db: DbSession) -> UserRepository:
    """Get user repository with database session."""
    return UserRepository(db)


UserRepo = Annotated[UserRepository, Depends(get_user_repo)]


async def _load_user(repo: UserRepository, user_id: int) -> User:
    user = await repo.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def _envelope(user: User, message: str | None = None) -> UserEnvelope:
    return UserEnvelope(message=message, user=UserProfileResponse.model_validate(user))


def _guard_superuser(claims: TokenClaims, user: User | None, *, grants_superuser: bool = False) -> None:
    """Touching a superuser account, or minting one, needs ``admin:manage_users``."""
    if Capability.ADMIN_MANAGE_USERS.value in claims.capabilities:
        return
    if grants_superuser or (user is not None and user.is_superuser):
        target = user.id if user is not None else None
        logger.warning("superuser_change_blocked", user_id=target, by=claims.user_id)
        raise SuperuserProtectedError(
            target, message="Only administrators can create or change superuser accounts"
        )


# =============================================================================
# LIST / READ
# =============================================================================

@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
    description="Paginated list, newest first, filterable by status, role bucket and search text.",
)
async def list_users(
    claims: StaffClaims,
    repo: UserRepo,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: UserStatus | None = Query(None, alias="status", description="Active or Suspended"),
    role: UserRole | None = Query(None, description="Administrator, Doctor, Staff or Patient"),
    search: str | None = Query(None, description="Substring of email or full name"),
) -> UserListResponse:
    users, total = await repo.list_users(
        skip=(page - 1) * limit,
        limit=limit,
        status=status_filter,
        role=role,
        search=search,
    )
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        pagination=PaginationMeta.from_total(total=total, page=page, page_size=limit),
    )


@router.get("/{user_id}", response_model=UserEnvelope, summary="Get user by ID")
async def get_user(user_id: int, claims: StaffClaims, repo: UserRepo) -> UserEnvelope:
    return _envelope(await _load_user(repo, user_id))


# =============================================================================
# CREATE / UPDATE
# =============================================================================

@router.post(
    "",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Creates an active account; flags follow the requested role.",
)
async def create_user(
    payload: UserCreate,
    claims: StaffClaims,
    repo: UserRepo,
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserEnvelope:
    _guard_superuser(claims, None, grants_superuser=payload.role is UserRole.ADMINISTRATOR)
    if await repo.email_taken(payload.email):
        raise UserAlreadyExistsError(payload.email)

    user = await repo.create(
        email=payload.email,
        password_hash=hash_password(payload.password, rounds=settings.BCRYPT_ROUNDS),
        full_name=payload.full_name,
        role=payload.role,
        is_active=True,
        created_by=claims.user_id,
    )
    return _envelope(user, "User created successfully")


@router.patch("/{user_id}", response_model=UserEnvelope, summary="Update user")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    claims: StaffClaims,
    repo: UserRepo,
) -> UserEnvelope:
    user = await _load_user(repo, user_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    _guard_superuser(claims, user, grants_superuser=changes.get("role") is UserRole.ADMINISTRATOR)

    if "email" in changes and await repo.email_taken(changes["email"], exclude_id=user.id):
        raise UserAlreadyExistsError(changes["email"])
    if not changes:
        return _envelope(user, "No changes")

    user = await repo.update_fields(user, **changes)
    return _envelope(user, "User updated successfully")


@router.patch("/{user_id}/status", response_model=UserEnvelope, summary="Activate or suspend user")
async def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    claims: StaffClaims,
    repo: UserRepo,
) -> UserEnvelope:
    user = await _load_user(repo, user_id)
    _guard_superuser(claims, user)
    user = await repo.set_active(user, payload.is_active)
    logger.info("user_status_changed", user_id=user.id, is_active=user.is_active, by=claims.user_id)
    return _envelope(user, "User activated" if user.is_active else "User suspended")


@router.patch("/{user_id}/roles", response_model=UserEnvelope, summary="Replace assigned roles")
async def update_user_roles(
    user_id: int,
    payload: UserRolesUpdate,
    claims: StaffClaims,
    repo: UserRepo,
    db: DbSession,
) -> UserEnvelope:
    user = await _load_user(repo, user_id)
    _guard_superuser(claims, user)
    roles = await RoleRepository(db).get_exact(payload.role_ids)
    user = await repo.replace_roles(user, roles)
    return _envelope(user, "Roles updated")


@router.patch(
    "/{user_id}/permissions",
    response_model=UserEnvelope,
    summary="Replace directly granted permissions",
)
async def update_user_permissions(
    user_id: int,
    payload: UserPermissionsUpdate,
    claims: StaffClaims,
    repo: UserRepo,
    db: DbSession,
) -> UserEnvelope:
    user = await _load_user(repo, user_id)
    _guard_superuser(claims, user)
    permissions = await PermissionRepository(db).get_exact(payload.permission_ids)
    user = await repo.replace_permissions(user, permissions)
    return _envelope(user, "Permissions updated")


@router.post(
    "/{user_id}/reset-password",
    response_model=MessageResponse,
    summary="Set a new password for a user",
)
async def reset_password(
    user_id: int,
    payload: PasswordReset,
    claims: StaffClaims,
    repo: UserRepo,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    user = await _load_user(repo, user_id)
    _guard_superuser(claims, user)
    await repo.set_password(
        user,
        hash_password(payload.new_password, rounds=settings.BCRYPT_ROUNDS),
    )
    logger.info("admin_password_reset", user_id=user.id, by=claims.user_id)
    return MessageResponse(message="Password reset successfully")


# =============================================================================
# DELETE
# =============================================================================

@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete user")
async def delete_user(user_id: int, claims: StaffClaims, repo: UserRepo) -> MessageResponse:
    """Superusers cannot be deleted, and nobody can delete their own account."""
    user = await _load_user(repo, user_id)
    if user.is_superuser:
        logger.warning("superuser_delete_blocked", user_id=user.id, by=claims.user_id)
        raise SuperuserProtectedError(user.id)
    if user.id == claims.user_id:
        raise BadRequestError(message="Cannot delete your own account", error_code="SELF_DELETE")

    await repo.delete(user)
    return MessageResponse(message="User deleted successfully")
