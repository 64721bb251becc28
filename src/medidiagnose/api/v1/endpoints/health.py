"""Probes for load balancers and the status page."""
import time
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ....core.config import Settings, get_settings
from ....core.responses import ComponentStatus, HealthCheck, HealthResponse
from ....db.session import DbSession

router = APIRouter()

_SEVERITY: dict[ComponentStatus, int] = {"healthy": 0, "degraded": 1, "unhealthy": 2}


def _config_check(enabled: bool, ok: str, missing: str) -> HealthCheck:
    return HealthCheck(status="healthy" if enabled else "degraded", message=ok if enabled else missing)


async def _probe_database(db: DbSession) -> HealthCheck:
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return HealthCheck(status="unhealthy", message=str(exc))
    elapsed = (time.perf_counter() - started) * 1000
    return HealthCheck(status="healthy", latency_ms=round(elapsed, 2), message="Connected")


@router.get("/health", response_model=HealthResponse, summary="Component status")
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
    db: DbSession,
) -> HealthResponse:
    """Database round trip plus the SMTP and reCAPTCHA configuration.

    A missing integration only degrades the service; an unreachable
    database makes it unhealthy.
    """
    checks = {
        "database": await _probe_database(db),
        "email": _config_check(settings.EMAIL_ENABLED, "SMTP enabled", "Email sending disabled"),
        "recaptcha": _config_check(
            bool(settings.RECAPTCHA_SECRET), "Secret configured", "Secret not configured"
        ),
    }
    worst = max((c.status for c in checks.values()), key=_SEVERITY.__getitem__)
    return HealthResponse(
        status=worst,
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        checks=checks,
    )


@router.get("/ready", summary="Readiness probe")
async def readiness_probe(db: DbSession) -> dict[str, str]:
    # A database failure propagates to the 500 handler.
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}


@router.get("/live", summary="Liveness probe")
async def liveness_probe() -> dict[str, str]:
    return {"status": "alive"}
