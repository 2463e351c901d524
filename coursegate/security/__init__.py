"""Security layer — Rate limiting, role-based authorization, audit trail."""

from coursegate.security.audit import AuditLogger, resolve_classification
from coursegate.security.audit_store import (
    AuditQuery,
    AuditStore,
    InMemoryAuditStore,
    SQLiteAuditStore,
)
from coursegate.security.authorizer import (
    Authorizer,
    BearerTokenSession,
    SessionProvider,
    StaticSessionProvider,
    TokenDirectory,
    authorize_owner_or_admin,
)
from coursegate.security.classifier import classify_category, classify_severity
from coursegate.security.models import (
    AccessGrant,
    AuditEntry,
    AuditRecord,
    Category,
    Principal,
    Role,
    Severity,
)
from coursegate.security.permissions import (
    ROLE_PERMISSIONS,
    Capability,
    has_all_permissions,
    has_any_permission,
    has_permission,
)
from coursegate.security.rate_limiter import (
    Allowed,
    InMemoryRateLimitStore,
    RateLimitConfig,
    RateLimiter,
    RateLimitPresets,
    RateLimitStore,
    Rejected,
)

__all__ = [
    # Models
    "Role",
    "Principal",
    "AccessGrant",
    "Severity",
    "Category",
    "AuditEntry",
    "AuditRecord",
    # Rate limiting
    "RateLimiter",
    "RateLimitConfig",
    "RateLimitPresets",
    "RateLimitStore",
    "InMemoryRateLimitStore",
    "Allowed",
    "Rejected",
    # Authorization
    "ROLE_PERMISSIONS",
    "Capability",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
    "Authorizer",
    "SessionProvider",
    "StaticSessionProvider",
    "TokenDirectory",
    "BearerTokenSession",
    "authorize_owner_or_admin",
    # Audit
    "AuditLogger",
    "AuditStore",
    "AuditQuery",
    "InMemoryAuditStore",
    "SQLiteAuditStore",
    "classify_severity",
    "classify_category",
    "resolve_classification",
]
