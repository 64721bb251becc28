"""Transactional email: YAML templates rendered with ``str.format_map`` and
delivered over SMTP with aiosmtplib.

Only the account verification message exists today. The caller decides
what a delivery failure means; registration logs it and carries on.
"""

from __future__ import annotations

from email.message import EmailMessage
from email.utils import formataddr
from functools import lru_cache
from pathlib import Path
from typing import Any

import aiosmtplib
import structlog
import yaml
from fastapi import Depends

from ..core.config import Settings, get_settings

log = structlog.get_logger(__name__)

_PROJECT_ROOT = Path(__file__).parents[3]
_TEMPLATE_PARTS = ("subject", "body_text", "body_html")


@lru_cache(maxsize=4)
def _read_templates(path: str) -> dict[str, Any]:
    location = Path(path)
    if not location.is_absolute():
        location = _PROJECT_ROOT / location
    templates = yaml.safe_load(location.read_text(encoding="utf-8")) or {}
    log.info("email_templates_loaded", path=str(location), names=sorted(templates))
    return templates


def _invalidate_template_cache() -> None:
    _read_templates.cache_clear()


def get_template(name: str, templates_path: str) -> dict[str, str]:
    """Subject and both bodies of template ``name``; absent parts are empty."""
    entry = _read_templates(templates_path).get(name)
    if not entry:
        raise ValueError(f"No email template found for '{name}'")
    return {part: entry.get(part, "") for part in _TEMPLATE_PARTS}


class _KeepUnknown(dict):  # type: ignore[type-arg]
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render_template(template: dict[str, str], variables: dict[str, str]) -> dict[str, str]:
    """Fill ``{placeholders}``. Names missing from ``variables`` stay verbatim."""
    values = _KeepUnknown(variables)
    return {part: text.format_map(values) for part, text in template.items()}


class EmailService:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def build_verification_link(self, code: str) -> str:
        base = self._settings.PUBLIC_URL.rstrip("/")
        return f"{base}/api/v1/auth/verify?code={code}"

    async def send_verification_email(self, *, to_address: str, verification_link: str) -> None:
        """Deliver the ``verify_account`` template.

        Raises:
            RuntimeError: ``EMAIL_ENABLED`` is off.
            aiosmtplib.SMTPException: The SMTP exchange failed or timed out.
        """
        variables = {
            "verification_link": verification_link,
            "platform_name": self._settings.EMAIL_FROM_NAME,
        }
        await self._deliver("verify_account", to_address, variables)

    def compose(self, template_name: str, to_address: str, variables: dict[str, str]) -> EmailMessage:
        parts = render_template(
            get_template(template_name, self._settings.EMAIL_TEMPLATES_PATH), variables
        )
        message = EmailMessage()
        message["Subject"] = parts["subject"]
        message["From"] = formataddr((self._settings.EMAIL_FROM_NAME, self._settings.email_sender))
        message["To"] = to_address
        message.set_content(parts["body_text"])
        message.add_alternative(parts["body_html"], subtype="html")
        return message

    async def _deliver(self, template_name: str, to_address: str, variables: dict[str, str]) -> None:
        if not self._settings.EMAIL_ENABLED:
            log.warning("email_disabled", template=template_name)
            raise RuntimeError("Email sending is disabled (EMAIL_ENABLED=false)")

        message = self.compose(template_name, to_address, variables)
        await self._transmit(message)
        log.info("email_sent", template=template_name)

    async def _transmit(self, message: EmailMessage) -> None:
        cfg = self._settings
        # SMTP_USE_SSL means implicit TLS (port 465); otherwise STARTTLS when enabled.
        client = aiosmtplib.SMTP(
            hostname=cfg.SMTP_HOST,
            port=cfg.SMTP_PORT,
            timeout=cfg.EMAIL_TIMEOUT_SECONDS,
            use_tls=cfg.SMTP_USE_SSL,
            start_tls=cfg.SMTP_USE_TLS and not cfg.SMTP_USE_SSL,
            username=cfg.SMTP_USERNAME or None,
            password=cfg.SMTP_PASSWORD or None,
        )
        try:
            async with client:
                await client.send_message(message)
        except TimeoutError as exc:
            log.error("smtp_timeout", host=cfg.SMTP_HOST, port=cfg.SMTP_PORT)
            raise aiosmtplib.SMTPTimeoutError(
                f"No SMTP response within {cfg.EMAIL_TIMEOUT_SECONDS}s"
            ) from exc
        except aiosmtplib.SMTPException as exc:
            log.error("smtp_failed", host=cfg.SMTP_HOST, port=cfg.SMTP_PORT, error=str(exc))
            raise


def get_email_service(settings: Settings = Depends(get_settings)) -> EmailService:
    return EmailService(settings)
