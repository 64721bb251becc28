"""
MediDiagnose portal API.

``create_application`` assembles the FastAPI app: structlog output,
request-id and hardening middleware, CORS, the error envelope handlers
and the ``/api/v1`` router. Run with ``uvicorn medidiagnose.main:app``.
"""
from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .api.v1 import router as v1_router
from .core.config import Settings, get_settings
from .core.exceptions import AppException
from .core.responses import ErrorDetail, ErrorResponse, ResponseMeta
from .db.session import DatabaseManager

_DOCS_PATHS = frozenset({"/docs", "/redoc", "/openapi.json"})

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "TOO_MANY_REQUESTS",
}

_TAGS = [
    {"name": "Health", "description": "Liveness, readiness and dependency status."},
    {"name": "Authentication", "description": "Registration, email verification and login."},
    {"name": "Admin", "description": "Dashboard statistics and activity log."},
    {"name": "Admin - User Management", "description": "Account administration."},
    {"name": "Admin - Access Control", "description": "Permission and role catalogue."},
    {"name": "Doctor", "description": "Clinical dashboard, patient search and scans."},
    {"name": "Patient", "description": "Own results, profile and appointments."},
]


def configure_logging(settings: Settings) -> None:
    """structlog to stdout: coloured console in development, JSON lines elsewhere."""
    level = logging.getLevelName(settings.LOG_LEVEL)
    renderer: Any = (
        structlog.dev.ConsoleRenderer()
        if settings.is_development
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # uvicorn, SQLAlchemy and httpx log through the stdlib.
    logging.basicConfig(
        stream=sys.stdout,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "no-referrer"
        if request.url.path not in _DOCS_PATHS:
            # JSON only; the Swagger UI needs inline scripts.
            headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        if get_settings().is_production:
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's ``X-Request-ID`` or mint one; bind it for structlog."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    configure_logging(settings)
    log = structlog.get_logger("medidiagnose")
    log.info("startup", service=settings.APP_NAME, version=settings.APP_VERSION, env=settings.APP_ENV)

    db = DatabaseManager(settings)
    app.state.db = db
    if settings.DATABASE_INIT_ON_STARTUP:
        await db.init_db()
    database = await db.health_check()
    if database["status"] != "healthy":
        log.warning("startup_database_unavailable", error=database["error"])

    try:
        yield
    finally:
        await db.close()
        log.info("shutdown")


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Render the standard error envelope."""
    body = ErrorResponse(
        message=message,
        error=ErrorDetail(code=code, message=message, details=details),
        meta=ResponseMeta(
            request_id=getattr(request.state, "request_id", None),
            version=get_settings().APP_VERSION,
        ),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def install_error_handlers(app: FastAPI) -> None:
    log = structlog.get_logger("medidiagnose.errors")

    @app.exception_handler(AppException)
    async def _app_exc(request: Request, exc: AppException) -> JSONResponse:
        log.info("request_failed", code=exc.error_code, status=exc.status_code, path=request.url.path)
        return error_response(request, exc.status_code, exc.error_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        log.info("request_invalid", path=request.url.path, fields=[p["field"] for p in problems])
        return error_response(
            request,
            400,
            "VALIDATION_ERROR",
            "Request validation failed",
            {"validation_errors": problems},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
        return error_response(request, exc.status_code, code, str(exc.detail))

    @app.exception_handler(Exception)
    async def _generic_exc(request: Request, exc: Exception) -> JSONResponse:
        log.exception("request_crashed", path=request.url.path)
        message = str(exc) if get_settings().DEBUG else "An unexpected error occurred"
        return error_response(request, 500, "INTERNAL_ERROR", message)


def create_application(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    show_docs = settings.is_development

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Medical imaging diagnostics portal. Every route lives under `/api/v1`.",
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
        openapi_tags=_TAGS,
        lifespan=lifespan,
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.cors_methods_list,
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    install_error_handlers(app)
    app.include_router(v1_router)

    @app.get("/", include_in_schema=False)
    async def index() -> dict[str, str]:
        links = {"service": settings.APP_NAME, "version": settings.APP_VERSION, "health": "/api/v1/health"}
        if show_docs:
            links["docs"] = "/docs"
        return links

    return app


app = create_application()
