"""Role-based access FastAPI dependencies.

Access decisions use only the claims inside the token; the account is not
re-read from the database, so flag changes take effect at the next login.

Usage:
    @router.get("/admin/endpoint")
    async def admin_endpoint(claims: StaffClaims):
        ...

    @router.get("/patient/endpoint")
    async def patient_endpoint(claims: CurrentClaims):
        ...
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import Depends, Request
from pydantic import ValidationError as PydanticValidationError

from ..schemas.auth import TokenClaims
from .config import Settings, get_settings
from .exceptions import ForbiddenError, UnauthorizedError
from .security import decode_jwt

logger = structlog.get_logger(__name__)


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise UnauthorizedError(
            message="Missing or invalid Authorization header",
            error_code="UNAUTHORIZED",
        )

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise UnauthorizedError(message="Missing access token", error_code="UNAUTHORIZED")
    return token


async def get_token_claims(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenClaims:
    """Decode the Bearer token and return its claims. Any valid token passes.

    Raises:
        UnauthorizedError: Missing, malformed, tampered or expired token.
    """
    payload = decode_jwt(_bearer_token(request), settings=settings)
    try:
        claims = TokenClaims.model_validate(payload)
    except PydanticValidationError as exc:
        raise UnauthorizedError(message="Invalid token claims", error_code="INVALID_TOKEN") from exc

    request.state.user_id = claims.user_id
    return claims


async def require_staff(claims: Annotated[TokenClaims, Depends(get_token_claims)]) -> TokenClaims:
    """Require the superuser or staff flag. Raises ForbiddenError otherwise."""
    if not claims.has_staff_access:
        logger.warning("staff_access_denied", user_id=claims.user_id, role=claims.role.value)
        raise ForbiddenError(
            message="Staff or administrator privileges required",
            error_code="STAFF_REQUIRED",
        )
    return claims


# ---------------------------------------------------------------------------
# Convenient type aliases for endpoint signatures
# ---------------------------------------------------------------------------
CurrentClaims = Annotated[TokenClaims, Depends(get_token_claims)]
StaffClaims = Annotated[TokenClaims, Depends(require_staff)]
