"""Security layer — Audit logger.

Writes immutable, append-only audit records for security- and state-relevant
events:
  - authentication (login, logout, failed login)
  - administration (user / role / room changes, rate limit resets)
  - access denials for authenticated principals
  - system faults (errors, integration failures)
  - coursework and enrollment decisions

Entries that do not carry an explicit severity or category are classified
from their action label before the write, so every persisted record has
both.  Writes are best-effort: a store failure is logged on the operational
channel and swallowed, it never aborts the action being audited.

Usage::

    audit = AuditLogger(store)
    await audit.record(AuditEntry(action="ENROLLMENT_REJECTED", actor_id="u-42"))
    await audit.user_role_changed(admin.id, user_id, {"from": "STUDENT", "to": "INSTRUCTOR"})
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from coursegate.logging import get_logger
from coursegate.security.audit_store import AuditStore
from coursegate.security.classifier import classify_category, classify_severity
from coursegate.security.models import (
    AccessGrant,
    AuditEntry,
    AuditRecord,
    Category,
    Severity,
)

log = get_logger(__name__)


def resolve_classification(entry: AuditEntry) -> AuditEntry:
    """Fill in severity/category from the action label where they are unset."""
    if entry.severity is not None and entry.category is not None:
        return entry
    return replace(
        entry,
        severity=entry.severity or classify_severity(entry.action),
        category=entry.category or classify_category(entry.action),
    )


class AuditLogger:
    """Best-effort writer over an :class:`AuditStore`."""

    def __init__(self, store: AuditStore) -> None:
        self._store = store

    @property
    def store(self) -> AuditStore:
        return self._store

    async def record(self, entry: AuditEntry) -> AuditRecord | None:
        """Classify and persist *entry*.

        Returns the stored record, or None when the write failed.  Never raises
        for store failures.
        """
        resolved = resolve_classification(entry)
        try:
            record = await self._store.append(resolved)
        except Exception as exc:
            log.error(
                "audit_write_failed",
                action=resolved.action,
                actor_id=resolved.actor_id,
                error=str(exc),
            )
            return None
        log.debug(
            "audit_recorded",
            action=record.action,
            severity=record.severity.value,
            category=record.category.value,
        )
        return record

    async def log(
        self,
        action: str,
        *,
        actor_id: str | None = None,
        target_type: str | None = None,
        target_id: str | None = None,
        details: dict[str, Any] | None = None,
        severity: Severity | None = None,
        category: Category | None = None,
    ) -> AuditRecord | None:
        """Keyword form of :meth:`record`."""
        return await self.record(
            AuditEntry(
                action=action,
                actor_id=actor_id,
                target_type=target_type,
                target_id=target_id,
                details=details,
                severity=severity,
                category=category,
            )
        )

    # ------------------------------------------------------------------
    # Security events
    # ------------------------------------------------------------------

    async def user_login(self, user_id: str, details: dict[str, Any] | None = None) -> None:
        await self.log(
            "USER_LOGIN", actor_id=user_id, target_type="User", target_id=user_id, details=details
        )

    async def user_logout(self, user_id: str) -> None:
        await self.log("USER_LOGOUT", actor_id=user_id)

    async def failed_login(self, email: str, details: dict[str, Any] | None = None) -> None:
        await self.log("LOGIN_FAILED", details={"email": email, **(details or {})})

    async def access_denied(
        self,
        *,
        actor_id: str | None,
        reason: str,
        path: str | None = None,
        required: list[str] | None = None,
    ) -> None:
        await self.log(
            "ACCESS_DENIED",
            actor_id=actor_id,
            details={"reason": reason, "path": path, "required": required or []},
            severity=Severity.WARNING,
            category=Category.SECURITY,
        )

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------

    async def user_created(
        self, admin_id: str, target_user_id: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log(
            "USER_CREATED",
            actor_id=admin_id,
            target_type="User",
            target_id=target_user_id,
            details=details,
            severity=Severity.CRITICAL,
        )

    async def user_role_changed(
        self, admin_id: str, target_user_id: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log(
            "USER_ROLE_CHANGED",
            actor_id=admin_id,
            target_type="User",
            target_id=target_user_id,
            details=details,
        )

    async def user_deleted(
        self, admin_id: str, target_user_id: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log(
            "USER_DELETED",
            actor_id=admin_id,
            target_type="User",
            target_id=target_user_id,
            details=details,
        )

    async def room_created(
        self, admin_id: str, room_id: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log(
            "ROOM_CREATED",
            actor_id=admin_id,
            target_type="Room",
            target_id=room_id,
            details=details,
            severity=Severity.CRITICAL,
        )

    async def room_deleted(
        self, admin_id: str, room_id: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log(
            "ROOM_DELETED",
            actor_id=admin_id,
            target_type="Room",
            target_id=room_id,
            details=details,
        )

    async def rate_limits_cleared(
        self, admin_id: str, *, prefix: str | None, cleared: int
    ) -> None:
        await self.log(
            "RATE_LIMITS_CLEARED",
            actor_id=admin_id,
            target_type="RateLimit",
            target_id=prefix,
            details={"prefix": prefix, "cleared": cleared},
            severity=Severity.WARNING,
            category=Category.ADMIN_ACTION,
        )

    # ------------------------------------------------------------------
    # System events
    # ------------------------------------------------------------------

    async def system_error(self, error: str, details: dict[str, Any] | None = None) -> None:
        await self.log("SYSTEM_ERROR", details={"error": error, **(details or {})})

    async def integration_failure(
        self, service: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log("INTEGRATION_FAILURE", details={"service": service, **(details or {})})

    async def performance_warning(
        self, operation: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log(
            "PERFORMANCE_WARNING",
            details={"operation": operation, **(details or {})},
            category=Category.SYSTEM,
        )

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def enrollment_requested(
        self, user_id: str, section_id: str, details: dict[str, Any] | None = None
    ) -> None:
        await self.log(
            "ENROLLMENT_REQUESTED",
            actor_id=user_id,
            target_type="Section",
            target_id=section_id,
            details=details,
        )

    async def enrollment_approved(
        self,
        instructor_id: str,
        enrollment_id: str,
        details: dict[str, Any] | None = None,
        *,
        grant: AccessGrant | None = None,
    ) -> None:
        await self.log(
            "ENROLLMENT_APPROVED",
            actor_id=instructor_id,
            target_type="Enrollment",
            target_id=enrollment_id,
            details=_with_grant(details, grant),
        )

    async def enrollment_rejected(
        self,
        instructor_id: str,
        enrollment_id: str,
        details: dict[str, Any] | None = None,
        *,
        grant: AccessGrant | None = None,
    ) -> None:
        await self.log(
            "ENROLLMENT_REJECTED",
            actor_id=instructor_id,
            target_type="Enrollment",
            target_id=enrollment_id,
            details=_with_grant(details, grant),
        )

    async def assignment_graded(
        self,
        instructor_id: str,
        submission_id: str,
        details: dict[str, Any] | None = None,
        *,
        grant: AccessGrant | None = None,
    ) -> None:
        await self.log(
            "ASSIGNMENT_GRADED",
            actor_id=instructor_id,
            target_type="Submission",
            target_id=submission_id,
            details=_with_grant(details, grant),
        )


def _with_grant(
    details: dict[str, Any] | None, grant: AccessGrant | None
) -> dict[str, Any] | None:
    """Tag *details* with how an ownership check was satisfied."""
    if grant is None:
        return details
    return {**(details or {}), "access": grant.value}
