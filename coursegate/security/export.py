"""Security layer — Audit record export for offline review.

CSV cells are always double-quoted with embedded quotes doubled, so the
output opens cleanly in spreadsheet tools regardless of what ended up in an
action label or a details payload.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from coursegate.security.models import AuditRecord

CSV_HEADER = (
    "Timestamp",
    "Actor ID",
    "Action",
    "Target Type",
    "Target ID",
    "Severity",
    "Category",
    "Details",
)


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def export_csv(records: Iterable[AuditRecord]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for record in records:
        writer.writerow(
            (
                _iso(record.created_at),
                record.actor_id or "System",
                record.action,
                record.target_type or "",
                record.target_id or "",
                record.severity.value,
                record.category.value,
                json.dumps(record.details, default=str) if record.details else "",
            )
        )
    return buf.getvalue()


def export_json(records: Iterable[AuditRecord]) -> dict[str, Any]:
    data = [r.to_dict() for r in records]
    return {
        "data": data,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "total_records": len(data),
    }


def export_filename(fmt: str, now: datetime | None = None) -> str:
    day = (now or datetime.now(timezone.utc)).date().isoformat()
    return f"audit-logs-{day}.{fmt}"
