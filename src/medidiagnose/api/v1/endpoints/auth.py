"""
Authentication Endpoints.

Public:
    POST /auth/register  create a patient account (captcha outside development)
    GET  /auth/verify    consume an email verification code
    POST /auth/login     exchange email + password for an access token

Authenticated:
    GET  /auth/me        profile of the token subject
"""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from ....core.config import Settings, get_settings
from ....core.exceptions import BadRequestError, UserNotFoundError
from ....core.rbac import CurrentClaims
from ....core.responses import MessageResponse
from ....db.session import DbSession
from ....repositories.user_repository import UserRepository
from ....schemas.auth import LoginRequest, RegisterRequest, RegisterResponse, TokenResponse
from ....schemas.user import UserEnvelope, UserProfileResponse
from ....services.auth_service import AuthService
from ....services.captcha_service import CaptchaService, get_captcha_service
from ....services.email_service import EmailService, get_email_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(
    db: DbSession,
    settings: Annotated[Settings, Depends(get_settings)],
    captcha: Annotated[CaptchaService, Depends(get_captcha_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> AuthService:
    return AuthService(db, settings, captcha=captcha, email=email)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient account",
)
async def register(payload: RegisterRequest, service: AuthServiceDep) -> RegisterResponse:
    user = await service.register(payload)
    message = (
        "Registered successfully"
        if user.is_active
        else "Registered successfully, please verify your email!"
    )
    return RegisterResponse(message=message, user_id=user.id, is_active=user.is_active)


@router.get(
    "/verify",
    response_model=MessageResponse,
    summary="Verify email address",
)
async def verify_email(
    service: AuthServiceDep,
    code: str | None = Query(None, description="Verification code from the email link"),
) -> MessageResponse:
    if not code:
        raise BadRequestError(message="Missing verification code", error_code="MISSING_CODE")
    await service.verify(code)
    return MessageResponse(message="Account verified successfully!")


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in with email and password",
)
async def login(
    payload: LoginRequest,
    service: AuthServiceDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    user, token = await service.login(payload.email, payload.password)
    return TokenResponse(
        token=token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=user.role,
        capabilities=user.capabilities,
    )


@router.get(
    "/me",
    response_model=UserEnvelope,
    summary="Current user profile",
)
async def my_profile(claims: CurrentClaims, db: DbSession) -> UserEnvelope:
    user = await UserRepository(db).get_by_id(claims.user_id)
    if user is None:
        raise UserNotFoundError(claims.user_id)
    return UserEnvelope(user=UserProfileResponse.model_validate(user))
