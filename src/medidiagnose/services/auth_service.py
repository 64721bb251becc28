"""
Authentication Service.

Registration, email verification and login. Handlers stay thin; this
module owns the ordering of checks (captcha, duplicate email, hashing,
verification record, email dispatch) and the token claims.
"""
from __future__ import annotations

from datetime import timedelta

import aiosmtplib
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    UserAlreadyExistsError,
)
from ..core.security import encode_jwt, generate_verification_code, hash_password, verify_password
from ..models.enums import UserRole
from ..models.user import User
from ..repositories.authentication_repository import AuthenticationRepository
from ..repositories.user_repository import UserRepository
from ..schemas.auth import RegisterRequest
from .captcha_service import CaptchaService
from .email_service import EmailService

log = structlog.get_logger(__name__)


def build_claims(user: User) -> dict:
    """Token claims for ``user``; flags are copied as persisted right now."""
    return {
        "sub": str(user.id),
        "user_id": user.id,
        "email": user.email,
        "roles": user.role_ids,
        "extra_permissions": user.permission_ids,
        "is_superuser": bool(user.is_superuser),
        "is_staff": bool(user.is_staff),
        "role": user.role.value,
        "capabilities": user.capabilities,
    }


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        *,
        captcha: CaptchaService,
        email: EmailService,
    ) -> None:
        self.settings = settings
        self.users = UserRepository(session)
        self.auth_records = AuthenticationRepository(session)
        self.captcha = captcha
        self.email = email

    async def register(self, payload: RegisterRequest) -> User:
        """Create a patient account plus its verification record.

        In development the account is activated straight away; elsewhere a
        verification link is emailed. A failed email does not undo the
        registration.
        """
        if self.captcha.enforced:
            await self.captcha.verify(payload.captcha_token)

        if await self.users.email_taken(payload.email):
            log.info("registration_duplicate_email")
            raise UserAlreadyExistsError(payload.email)

        auto_activate = self.settings.is_development
        user = await self.users.create(
            email=payload.email,
            password_hash=hash_password(payload.password, rounds=self.settings.BCRYPT_ROUNDS),
            full_name=payload.full_name,
            role=UserRole.PATIENT,
            is_active=auto_activate,
        )
        code = generate_verification_code()
        await self.auth_records.create(user.id, code, is_verified=auto_activate)

        if auto_activate:
            log.info("registration_auto_verified", user_id=user.id)
            return user

        try:
            await self.email.send_verification_email(
                to_address=user.email,
                verification_link=self.email.build_verification_link(code),
            )
        except (aiosmtplib.SMTPException, RuntimeError, OSError) as exc:
            log.error("verification_email_failed", user_id=user.id, error=type(exc).__name__)
        return user

    async def verify(self, code: str) -> User:
        record = await self.auth_records.get_pending(code)
        if record is None:
            raise InvalidVerificationCodeError()

        user = await self.users.get_by_id(record.user_id)
        if user is None:
            raise InvalidVerificationCodeError()

        await self.users.set_active(user, True)
        await self.auth_records.mark_verified(record)
        log.info("account_verified", user_id=user.id)
        return user

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """Check credentials and issue an access token.

        Unknown email and wrong password raise the same error.
        """
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password):
            log.info("login_failed")
            raise InvalidCredentialsError()

        if not user.is_active:
            log.info("login_inactive_account", user_id=user.id)
            raise ForbiddenError(
                message="Account is not active. Verify your email or contact an administrator.",
                error_code="ACCOUNT_INACTIVE",
            )

        await self.users.touch_last_login(user)
        token = encode_jwt(
            build_claims(user),
            settings=self.settings,
            expires_delta=timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        log.info("login_succeeded", user_id=user.id, role=user.role.value)
        return user, token
