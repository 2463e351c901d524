"""Security layer — Append-only audit record persistence.

Two backends behind one interface:
  - ``SQLiteAuditStore``   — aiosqlite, durable, the daemon default
  - ``InMemoryAuditStore`` — tests and local tooling

Stores assign ``id`` and ``created_at``.  Neither backend exposes an update
or delete operation; retention and archival belong to the database owner.

Schema::

    CREATE TABLE audit_log (
        id           TEXT PRIMARY KEY,
        actor_id     TEXT,
        action       TEXT NOT NULL,
        target_type  TEXT,
        target_id    TEXT,
        details      TEXT,            -- JSON
        severity     TEXT NOT NULL,
        category     TEXT NOT NULL,
        created_at   REAL NOT NULL
    );

Usage::

    store = SQLiteAuditStore(Path("~/.coursegate/audit.db"))
    await store.init()
    record = await store.append(entry)
    page = await store.list(AuditQuery(actor_id="u1", limit=50))
    await store.close()
"""

from __future__ import annotations

import json
import sqlite3
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosqlite

from coursegate.exceptions import AuditStoreError
from coursegate.logging import get_logger
from coursegate.security.models import AuditEntry, AuditRecord, Category, Severity

log = get_logger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS audit_log (
    id           TEXT PRIMARY KEY,
    actor_id     TEXT,
    action       TEXT NOT NULL,
    target_type  TEXT,
    target_id    TEXT,
    details      TEXT,
    severity     TEXT NOT NULL,
    category     TEXT NOT NULL,
    created_at   REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_created ON audit_log (created_at);
CREATE INDEX IF NOT EXISTS idx_audit_actor ON audit_log (actor_id);
CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_log (action);
"""

_COLUMNS = (
    "id, actor_id, action, target_type, target_id, details, severity, category, created_at"
)


@dataclass(frozen=True)
class AuditQuery:
    """Filters for listing audit records.  Results are newest first."""

    action: str | None = None
    target_type: str | None = None
    actor_id: str | None = None
    severity: Severity | None = None
    category: Category | None = None
    start: float | None = None
    end: float | None = None
    limit: int = 50
    offset: int = 0

    def matches(self, record: AuditRecord) -> bool:
        if self.action is not None and record.action != self.action:
            return False
        if self.target_type is not None and record.target_type != self.target_type:
            return False
        if self.actor_id is not None and record.actor_id != self.actor_id:
            return False
        if self.severity is not None and record.severity != self.severity:
            return False
        if self.category is not None and record.category != self.category:
            return False
        if self.start is not None and record.created_at < self.start:
            return False
        if self.end is not None and record.created_at > self.end:
            return False
        return True

    def where_clause(self) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (
            ("action", self.action),
            ("target_type", self.target_type),
            ("actor_id", self.actor_id),
            ("severity", self.severity.value if self.severity else None),
            ("category", self.category.value if self.category else None),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        if self.start is not None:
            clauses.append("created_at >= ?")
            params.append(self.start)
        if self.end is not None:
            clauses.append("created_at <= ?")
            params.append(self.end)
        sql = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return sql, params


def _detached(details: dict[str, Any] | None) -> dict[str, Any] | None:
    """Copy *details* through JSON so both backends store the same shape."""
    if details is None:
        return None
    return json.loads(json.dumps(details, default=str))


def _build_record(entry: AuditEntry, record_id: str, created_at: float) -> AuditRecord:
    if entry.severity is None or entry.category is None:
        raise ValueError("Audit entries must be classified before they are stored")
    return AuditRecord(
        id=record_id,
        actor_id=entry.actor_id,
        action=entry.action,
        target_type=entry.target_type,
        target_id=entry.target_id,
        details=_detached(entry.details),
        severity=entry.severity,
        category=entry.category,
        created_at=created_at,
    )


class AuditStore(ABC):
    """Append-only audit repository."""

    async def init(self) -> None:
        """Prepare the backend.  No-op by default."""

    async def close(self) -> None:
        """Release backend resources.  No-op by default."""

    @abstractmethod
    async def append(self, entry: AuditEntry) -> AuditRecord:
        """Persist a classified entry and return the stored record."""

    @abstractmethod
    async def get(self, record_id: str) -> AuditRecord | None: ...

    @abstractmethod
    async def list(self, query: AuditQuery | None = None) -> list[AuditRecord]: ...

    @abstractmethod
    async def count(self, query: AuditQuery | None = None) -> int: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryAuditStore(AuditStore):
    """Keeps records in a list.  Data is lost on restart."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._records: list[AuditRecord] = []
        self._clock = clock

    async def append(self, entry: AuditEntry) -> AuditRecord:
        record = _build_record(entry, uuid.uuid4().hex, self._clock())
        self._records.append(record)
        return record

    async def get(self, record_id: str) -> AuditRecord | None:
        return next((r for r in self._records if r.id == record_id), None)

    async def list(self, query: AuditQuery | None = None) -> list[AuditRecord]:
        query = query or AuditQuery()
        # Ties on created_at: most recently appended first.
        matching = [r for r in reversed(self._records) if query.matches(r)]
        matching.sort(key=lambda r: r.created_at, reverse=True)
        return matching[query.offset : query.offset + query.limit]

    async def count(self, query: AuditQuery | None = None) -> int:
        query = query or AuditQuery()
        return sum(1 for r in self._records if query.matches(r))

    @property
    def records(self) -> list[AuditRecord]:
        """All records in insertion order (copy)."""
        return list(self._records)


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------


class SQLiteAuditStore(AuditStore):
    """Async SQLite audit store."""

    def __init__(self, db_path: Path | str, clock: Callable[[], float] = time.time) -> None:
        self._db_path = Path(db_path).expanduser()
        self._clock = clock
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self._db_path))
        await self._conn.executescript(_SCHEMA_SQL)
        await self._conn.commit()
        log.debug("audit_store_init", path=str(self._db_path))

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self, operation: str) -> aiosqlite.Connection:
        if self._conn is None:
            raise AuditStoreError(operation, "store is not initialised")
        return self._conn

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def append(self, entry: AuditEntry) -> AuditRecord:
        conn = self._require_conn("append")
        record = _build_record(entry, uuid.uuid4().hex, self._clock())
        try:
            await conn.execute(
                f"INSERT INTO audit_log ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.actor_id,
                    record.action,
                    record.target_type,
                    record.target_id,
                    json.dumps(record.details, default=str) if record.details is not None else None,
                    record.severity.value,
                    record.category.value,
                    record.created_at,
                ),
            )
            await conn.commit()
        except sqlite3.Error as exc:
            raise AuditStoreError("append", str(exc)) from exc
        return record

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, record_id: str) -> AuditRecord | None:
        rows = await self._fetchall(
            "get", f"SELECT {_COLUMNS} FROM audit_log WHERE id = ?", (record_id,)
        )
        return self._row_to_record(rows[0]) if rows else None

    async def list(self, query: AuditQuery | None = None) -> list[AuditRecord]:
        query = query or AuditQuery()
        where, params = query.where_clause()
        sql = (
            f"SELECT {_COLUMNS} FROM audit_log{where} "
            "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        )
        rows = await self._fetchall("list", sql, (*params, query.limit, query.offset))
        return [self._row_to_record(row) for row in rows]

    async def count(self, query: AuditQuery | None = None) -> int:
        where, params = (query or AuditQuery()).where_clause()
        rows = await self._fetchall("count", f"SELECT COUNT(*) FROM audit_log{where}", params)
        return int(rows[0][0]) if rows else 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetchall(
        self, operation: str, sql: str, params: tuple | list  # type: ignore[type-arg]
    ) -> list[tuple]:  # type: ignore[type-arg]
        conn = self._require_conn(operation)
        try:
            async with conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except sqlite3.Error as exc:
            raise AuditStoreError(operation, str(exc)) from exc

    @staticmethod
    def _row_to_record(row: tuple) -> AuditRecord:  # type: ignore[type-arg]
        return AuditRecord(
            id=row[0],
            actor_id=row[1],
            action=row[2],
            target_type=row[3],
            target_id=row[4],
            details=json.loads(row[5]) if row[5] is not None else None,
            severity=Severity(row[6]),
            category=Category(row[7]),
            created_at=row[8],
        )
