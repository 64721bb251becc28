"""
Response envelopes shared by every router.

Errors always serialize as ``{success, message, error, meta}``; list
endpoints attach a ``PaginationMeta`` block.
"""
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ComponentStatus = Literal["healthy", "degraded", "unhealthy"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ResponseMeta(BaseModel):
    """Tracing block appended to error bodies."""

    request_id: str | None = Field(None, description="X-Request-ID of the failing request")
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str = Field("1.0.0", description="APP_VERSION that produced the response")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class PaginationMeta(BaseModel):
    """Page window over a counted result set."""

    total: int = Field(ge=0, description="Rows matching the filters")
    page: int = Field(ge=1)
    page_size: int = Field(ge=1, le=100)
    total_pages: int = Field(ge=1, description="Never below 1, even for an empty set")
    has_next: bool
    has_previous: bool

    @classmethod
    def from_total(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        pages = max(1, -(-total // page_size))
        return cls(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=pages,
            has_next=page < pages,
            has_previous=page > 1,
        )


class ErrorDetail(BaseModel):
    code: str = Field(description="Stable machine-readable code, e.g. EMAIL_ALREADY_EXISTS")
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Body written by the global exception handlers.

    ``message`` repeats ``error.message`` at the top level for clients
    that only read the flat ``{success, message}`` shape.
    """

    success: Literal[False] = False
    message: str
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class HealthCheck(BaseModel):
    status: ComponentStatus
    latency_ms: float | None = Field(None, description="Round trip for probes that make a call")
    message: str | None = None


class HealthResponse(BaseModel):
    status: ComponentStatus = Field(description="Worst status among the component checks")
    service: str
    version: str
    environment: str
    checks: dict[str, HealthCheck] = Field(default_factory=dict)
