"""API layer — Request and response schemas.

These are the external API contracts.  They are kept separate from the
internal security dataclasses so the wire format can evolve on its own.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from coursegate.security.models import AuditRecord, Category, Severity


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ClearRateLimitsRequest(BaseModel):
    """POST /admin/rate-limits/clear — omit ``prefix`` to clear everything."""

    prefix: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Key prefix to clear, e.g. 'login' or 'password-reset'.",
    )


class RecordEventRequest(BaseModel):
    """POST /audit/events — a client-side event to record for the caller.

    Severity and category are not accepted: they are always derived from
    the action label on the server.
    """

    action: str = Field(min_length=1, max_length=100, pattern=r"^[A-Z][A-Z0-9_]*$")
    target_type: str | None = Field(default=None, max_length=64)
    target_id: str | None = Field(default=None, max_length=128)
    details: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    uptime_seconds: float
    rate_limit_entries: int = Field(
        default=0, description="Rate limit keys currently held in memory."
    )


class PrincipalResponse(BaseModel):
    id: str
    role: str
    name: str = ""
    email: str = ""
    capabilities: list[str] = Field(default_factory=list)


class AuditRecordResponse(BaseModel):
    id: str
    action: str
    severity: Severity
    category: Category
    created_at: float
    actor_id: str | None = None
    target_type: str | None = None
    target_id: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditRecordResponse":
        return cls(**record.to_dict())


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AuditLogPage(BaseModel):
    logs: list[AuditRecordResponse]
    pagination: Pagination


class RecordEventResponse(BaseModel):
    recorded: bool
    record: AuditRecordResponse | None = None


class ClearRateLimitsResponse(BaseModel):
    success: bool = True
    message: str
    cleared: int = Field(description="Entries removed; -1 when every entry was cleared.")


class RateLimitPresetInfo(BaseModel):
    name: str
    max_attempts: int
    window_ms: int
    lockout_duration_ms: int | None = None
    message: str


class RateLimitInfoResponse(BaseModel):
    active_entries: int
    known_prefixes: list[str]
    presets: list[RateLimitPresetInfo]


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: Any | None = None
    request_id: str | None = None


class RateLimitErrorResponse(BaseModel):
    """429 body.  Field names match what existing web clients read."""

    error: str
    retryAfter: int
    lockout: bool
