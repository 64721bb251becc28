"""Google reCAPTCHA v3 verification."""

from __future__ import annotations

import httpx
import structlog
from fastapi import Depends

from ..core.config import Settings, get_settings
from ..core.exceptions import CaptchaVerificationError, ConfigurationError, ExternalServiceError

logger = structlog.get_logger(__name__)


class CaptchaService:
    """Verifies client captcha tokens against the siteverify endpoint."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    @property
    def enforced(self) -> bool:
        """Captcha is skipped in development."""
        return not self.settings.is_development

    async def verify(self, token: str | None) -> float | None:
        """Validate ``token``; returns the provider score.

        Raises:
            CaptchaVerificationError: Token missing, rejected or below the minimum score.
            ConfigurationError: No secret configured.
            ExternalServiceError: Provider unreachable.
        """
        if not token:
            raise CaptchaVerificationError(message="Missing captcha token")
        if not self.settings.RECAPTCHA_SECRET:
            raise ConfigurationError(message="reCAPTCHA is not configured")

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.RECAPTCHA_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.settings.RECAPTCHA_VERIFY_URL,
                    data={"secret": self.settings.RECAPTCHA_SECRET, "response": token},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as exc:
            logger.error("captcha_timeout")
            raise ExternalServiceError("recaptcha", message="reCAPTCHA verification timed out") from exc
        except (httpx.HTTPError, ValueError) as exc:
            # The request body carries the secret; log the error type only.
            logger.error("captcha_request_failed", error=type(exc).__name__)
            raise ExternalServiceError("recaptcha") from exc

        if not payload.get("success"):
            logger.info("captcha_rejected", error_codes=payload.get("error-codes"))
            raise CaptchaVerificationError(details={"errors": payload.get("error-codes") or []})

        score = payload.get("score")
        if score is not None and float(score) < self.settings.RECAPTCHA_MIN_SCORE:
            logger.info("captcha_score_too_low", score=score)
            raise CaptchaVerificationError(
                message="reCAPTCHA score too low",
                details={"score": score},
            )
        return float(score) if score is not None else None


def get_captcha_service(settings: Settings = Depends(get_settings)) -> CaptchaService:
    """FastAPI dependency."""
    return CaptchaService(settings)
