"""Security helpers for JWT-based authentication and password hashing.

Tokens are HS256 JWTs built from the standard library (hmac + base64 +
json) so the same helpers sign tokens at login and verify them on every
protected request. Passwords are hashed with bcrypt.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt

from .config import Settings, get_settings
from .exceptions import UnauthorizedError

# bcrypt ignores everything past 72 bytes; truncate explicitly so newer
# bcrypt releases do not raise on long inputs.
_BCRYPT_MAX_BYTES = 72


def _base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _base64url_decode(data: str) -> bytes:
    """Decode a base64url-encoded string, handling missing padding."""

    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(signing_input: bytes, settings: Settings) -> str:
    digest = hmac.new(
        settings.SECRET_KEY.encode("utf-8"),
        signing_input,
        hashlib.sha256,
    ).digest()
    return _base64url_encode(digest)


def encode_jwt(
    claims: dict[str, Any],
    *,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign ``claims`` as an HS256 JWT, adding ``iat`` and ``exp``.

    ``expires_delta`` defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``; a
    negative delta produces an already-expired token (used by tests).
    """
    settings = settings or get_settings()
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = dict(claims)
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + expires_delta).timestamp())

    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _base64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _base64url_encode(
        json.dumps(payload, separators=(",", ":"), default=str).encode("utf-8")
    )
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    return f"{header_b64}.{payload_b64}.{_sign(signing_input, settings)}"


def decode_jwt(token: str, *, settings: Settings | None = None) -> dict[str, Any]:
    """Decode and validate an HS256 JWT.

    - Verifies signature with SECRET_KEY
    - Checks the exp claim against current UTC time
    """
    settings = settings or get_settings()

    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError as exc:  # not enough / too many segments
        raise UnauthorizedError(
            message="Invalid token format",
            error_code="INVALID_TOKEN",
        ) from exc

    signing_input = f"{header_b64}.{payload_b64}".encode("ascii", errors="replace")
    expected_sig_b64 = _sign(signing_input, settings)

    # Header text may hold any latin-1 character; compare as bytes.
    if not hmac.compare_digest(signature_b64.encode("utf-8"), expected_sig_b64.encode("ascii")):
        raise UnauthorizedError(
            message="Invalid token signature",
            error_code="INVALID_TOKEN",
        )

    try:
        payload = json.loads(_base64url_decode(payload_b64))
    except (ValueError, TypeError) as exc:
        raise UnauthorizedError(
            message="Invalid token payload",
            error_code="INVALID_TOKEN",
        ) from exc

    if not isinstance(payload, dict):
        raise UnauthorizedError(message="Invalid token payload", error_code="INVALID_TOKEN")

    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise UnauthorizedError(
            message="Invalid token expiration",
            error_code="INVALID_TOKEN",
        )

    now_ts = int(datetime.now(UTC).timestamp())
    if now_ts >= exp:
        raise UnauthorizedError(
            message="Token has expired",
            error_code="TOKEN_EXPIRED",
        )

    return payload


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int | None = None) -> str:
    """Hash a password with bcrypt."""
    if rounds is None:
        rounds = get_settings().BCRYPT_ROUNDS
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a password against its stored hash. Malformed hashes never match."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def generate_verification_code() -> str:
    """URL-safe one-time code for email verification links."""
    return secrets.token_urlsafe(32)


def generate_unusable_password() -> str:
    """Random password for accounts created without one (never shown to anyone)."""
    return secrets.token_urlsafe(24)
