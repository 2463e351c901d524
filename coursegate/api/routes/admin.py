"""Admin endpoints — audit log review and rate limit administration.

GET  /admin/audit-logs           — paginated audit trail (admin or moderator)
GET  /admin/audit-logs/export    — CSV / JSON download (admin)
GET  /admin/rate-limits          — limiter occupancy and preset table (admin)
POST /admin/rate-limits/clear    — clear one prefix or everything (admin)
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Query, Response

from coursegate.api.dependencies import (
    AdminDep,
    AuditDep,
    ConfigDep,
    ModeratorDep,
    PresetsDep,
    RateLimiterDep,
)
from coursegate.api.schemas import (
    AuditLogPage,
    AuditRecordResponse,
    ClearRateLimitsRequest,
    ClearRateLimitsResponse,
    Pagination,
    RateLimitInfoResponse,
    RateLimitPresetInfo,
)
from coursegate.logging import get_logger
from coursegate.security.audit_store import AuditQuery
from coursegate.security.export import export_csv, export_filename, export_json
from coursegate.security.models import Category, Severity
from coursegate.security.rate_limiter import KNOWN_PREFIXES

log = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _ts(value: datetime | None) -> float | None:
    return value.timestamp() if value is not None else None


# ---------------------------------------------------------------------------
# Audit logs
# ---------------------------------------------------------------------------


@router.get("/audit-logs", response_model=AuditLogPage, summary="List audit records")
async def list_audit_logs(
    _viewer: ModeratorDep,
    audit: AuditDep,
    config: ConfigDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1),
    action: str | None = Query(default=None),
    actor_id: str | None = Query(default=None),
    target_type: str | None = Query(default=None),
    severity: Severity | None = Query(default=None),
    category: Category | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
) -> AuditLogPage:
    limit = min(limit, config.audit.page_size_max)
    query = AuditQuery(
        action=action,
        actor_id=actor_id,
        target_type=target_type,
        severity=severity,
        category=category,
        start=_ts(start_date),
        end=_ts(end_date),
        limit=limit,
        offset=(page - 1) * limit,
    )
    records = await audit.store.list(query)
    total = await audit.store.count(query)
    return AuditLogPage(
        logs=[AuditRecordResponse.from_record(r) for r in records],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get("/audit-logs/export", summary="Export audit records")
async def export_audit_logs(
    admin: AdminDep,
    audit: AuditDep,
    config: ConfigDep,
    format: Literal["csv", "json"] = Query(default="csv"),
    action: str | None = Query(default=None),
    actor_id: str | None = Query(default=None),
    target_type: str | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
) -> Any:
    query = AuditQuery(
        action=action,
        actor_id=actor_id,
        target_type=target_type,
        start=_ts(start_date),
        end=_ts(end_date),
        limit=config.audit.export_limit,
    )
    records = await audit.store.list(query)
    log.info("audit_export", admin_id=admin.id, format=format, records=len(records))

    if format == "csv":
        return Response(
            content=export_csv(records),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{export_filename("csv")}"'
            },
        )
    return {"success": True, **export_json(records)}


# ---------------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------------


@router.get(
    "/rate-limits", response_model=RateLimitInfoResponse, summary="Rate limiter status"
)
async def rate_limit_info(
    _admin: AdminDep, limiter: RateLimiterDep, presets: PresetsDep
) -> RateLimitInfoResponse:
    return RateLimitInfoResponse(
        active_entries=len(limiter),
        known_prefixes=list(KNOWN_PREFIXES),
        presets=[
            RateLimitPresetInfo(
                name=name,
                max_attempts=cfg.max_attempts,
                window_ms=cfg.window_ms,
                lockout_duration_ms=cfg.lockout_duration_ms,
                message=cfg.rejection_message,
            )
            for name, cfg in presets.items()
        ],
    )


@router.post(
    "/rate-limits/clear",
    response_model=ClearRateLimitsResponse,
    summary="Clear rate limit entries",
)
async def clear_rate_limits(
    body: ClearRateLimitsRequest,
    admin: AdminDep,
    limiter: RateLimiterDep,
    audit: AuditDep,
) -> ClearRateLimitsResponse:
    if body.prefix:
        cleared = limiter.clear_prefix(body.prefix)
        message = f"Cleared {cleared} rate limit entries for prefix: {body.prefix}"
        await audit.rate_limits_cleared(admin.id, prefix=body.prefix, cleared=cleared)
    else:
        removed = limiter.clear_all()
        cleared = -1
        message = "Cleared all rate limit entries"
        await audit.rate_limits_cleared(admin.id, prefix=None, cleared=removed)
    return ClearRateLimitsResponse(success=True, message=message, cleared=cleared)
