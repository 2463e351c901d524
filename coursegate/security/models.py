"""Security layer — Roles, principals, and audit data models.

Defines the core types shared by the rate limiter, the authorizer and the
audit log:
  - ``Role``         — closed set of platform roles
  - ``Principal``    — frozen record of the authenticated caller
  - ``AccessGrant``  — how an owner-or-admin check was satisfied
  - ``Severity``     — INFO / WARNING / ERROR / CRITICAL
  - ``Category``     — SECURITY / SYSTEM / ADMIN_ACTION / USER_ACTION
  - ``AuditEntry``   — what a caller asks to record
  - ``AuditRecord``  — what the store persisted (id + created_at assigned)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Role(str, Enum):
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    INSTRUCTOR = "INSTRUCTOR"
    STUDENT = "STUDENT"


class AccessGrant(str, Enum):
    """Why an ownership-guarded action was allowed.

    ``ADMIN_OVERRIDE`` is recorded in audit details so that an admin acting on
    someone else's resource stays distinguishable from the owner acting.
    """

    OWNER = "owner"
    ADMIN_OVERRIDE = "admin_override"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Category(str, Enum):
    SECURITY = "SECURITY"
    SYSTEM = "SYSTEM"
    ADMIN_ACTION = "ADMIN_ACTION"
    USER_ACTION = "USER_ACTION"


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Principal:
    """The authenticated actor, as supplied by the session collaborator."""

    id: str
    role: Role
    name: str = ""
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "name": self.name,
            "email": self.email,
        }


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditEntry:
    """A request to record an event.  Unset severity/category get classified."""

    action: str
    actor_id: str | None = None
    target_type: str | None = None
    target_id: str | None = None
    details: dict[str, Any] | None = None
    severity: Severity | None = None
    category: Category | None = None


@dataclass(frozen=True)
class AuditRecord:
    """Immutable persisted audit fact.  Severity and category are always set."""

    id: str
    action: str
    severity: Severity
    category: Category
    created_at: float
    actor_id: str | None = None
    target_type: str | None = None
    target_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "details": self.details,
            "severity": self.severity.value,
            "category": self.category.value,
            "created_at": self.created_at,
        }
