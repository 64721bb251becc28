"""Tests for JWT encoding/decoding and password hashing."""

import base64
import json
from datetime import UTC, datetime, timedelta

import pytest

from medidiagnose.core.config import Settings
from medidiagnose.core.exceptions import UnauthorizedError
from medidiagnose.core.security import (
    decode_jwt,
    encode_jwt,
    generate_unusable_password,
    generate_verification_code,
    hash_password,
    verify_password,
)


@pytest.fixture
def mock_settings():
    return Settings(SECRET_KEY="test-secret-key-that-is-at-least-32-characters", APP_ENV="development")


def _tamper_payload(token: str, **changes) -> str:
    header, payload, signature = token.split(".")
    data = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
    data.update(changes)
    forged = base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()
    return f"{header}.{forged}.{signature}"


def test_encode_decode_roundtrip_adds_iat_and_exp(mock_settings):
    token = encode_jwt({"sub": "7", "user_id": 7}, settings=mock_settings)
    decoded = decode_jwt(token, settings=mock_settings)

    assert decoded["user_id"] == 7
    now = int(datetime.now(UTC).timestamp())
    assert decoded["iat"] <= now
    assert decoded["exp"] - decoded["iat"] == mock_settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_default_lifetime_is_seven_days(mock_settings):
    assert mock_settings.ACCESS_TOKEN_EXPIRE_MINUTES == 7 * 24 * 60


def test_decode_expired_token(mock_settings):
    token = encode_jwt({"sub": "1"}, settings=mock_settings, expires_delta=timedelta(seconds=-5))

    with pytest.raises(UnauthorizedError) as exc:
        decode_jwt(token, settings=mock_settings)

    assert exc.value.message == "Token has expired"
    assert exc.value.error_code == "TOKEN_EXPIRED"
    assert exc.value.status_code == 401


def test_decode_rejects_tampered_payload(mock_settings):
    token = encode_jwt({"sub": "1", "is_superuser": False}, settings=mock_settings)
    forged = _tamper_payload(token, is_superuser=True)

    with pytest.raises(UnauthorizedError) as exc:
        decode_jwt(forged, settings=mock_settings)
    assert exc.value.message == "Invalid token signature"


def test_decode_rejects_other_secret(mock_settings):
    other = Settings(SECRET_KEY="another-secret-key-that-is-at-least-32-chars", APP_ENV="development")
    token = encode_jwt({"sub": "1"}, settings=other)

    with pytest.raises(UnauthorizedError):
        decode_jwt(token, settings=mock_settings)


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "eyJhbGciOiJIUzI1NiJ9.e30.\u00e9\u00e9\u00e9"])
def test_decode_rejects_malformed(mock_settings, token):
    with pytest.raises(UnauthorizedError):
        decode_jwt(token, settings=mock_settings)


def test_hash_and_verify_password():
    hashed = hash_password("correct horse", rounds=4)

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_handles_missing_or_malformed_hash():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "")
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_long_passwords_are_accepted():
    long_password = "x" * 200
    hashed = hash_password(long_password, rounds=4)
    assert verify_password(long_password, hashed)


def test_generated_codes_are_unique_and_url_safe():
    codes = {generate_verification_code() for _ in range(20)}
    assert len(codes) == 20
    assert all("/" not in c and "+" not in c for c in codes)
    assert generate_unusable_password() != generate_unusable_password()
