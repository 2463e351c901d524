"""CourseGate — Exception hierarchy.

All exceptions raised by the package inherit from CourseGateError so that
callers can catch the full family with a single except clause when needed.
Each class carries an :class:`ErrorCode`; the HTTP boundary maps codes to
status codes by table lookup, never by inspecting the message.

Hierarchy:
    CourseGateError
    ├── AccessError
    │   ├── UnauthorizedError       (401)
    │   └── ForbiddenError          (403)
    ├── RateLimitedError            (429)
    ├── NotFoundError               (404)
    ├── ConflictError               (409)
    ├── ValidationError             (400)
    └── AuditError
        └── AuditStoreError         (500, never reaches callers of record())
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INTERNAL_ERROR = "internal_error"


ERROR_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.CONFLICT: 409,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.INTERNAL_ERROR: 500,
}

# Messages that are safe to show to any caller, including unauthenticated ones.
SAFE_ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.UNAUTHORIZED: "Authentication required. Please sign in.",
    ErrorCode.FORBIDDEN: "You do not have permission to perform this action.",
    ErrorCode.NOT_FOUND: "The requested resource was not found.",
    ErrorCode.VALIDATION_ERROR: "Validation failed. Please check your input.",
    ErrorCode.CONFLICT: "This action conflicts with existing data.",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Too many attempts. Please try again later.",
    ErrorCode.INTERNAL_ERROR: "An internal error occurred. Please try again later.",
}


class CourseGateError(Exception):
    """Base exception for all CourseGate errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.code]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AccessError(CourseGateError):
    """Base for authorization failures."""


class UnauthorizedError(AccessError):
    """No principal could be resolved for the caller."""

    code = ErrorCode.UNAUTHORIZED

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or SAFE_ERROR_MESSAGES[ErrorCode.UNAUTHORIZED])


class ForbiddenError(AccessError):
    """A principal was resolved but lacks the required role or permission."""

    code = ErrorCode.FORBIDDEN

    def __init__(
        self,
        message: str | None = None,
        *,
        principal_id: str | None = None,
        role: str | None = None,
        required: list[str] | None = None,
    ) -> None:
        super().__init__(
            message or SAFE_ERROR_MESSAGES[ErrorCode.FORBIDDEN],
            context={
                "principal_id": principal_id,
                "role": role,
                "required": required or [],
            },
        )
        self.principal_id = principal_id
        self.role = role
        self.required = required or []


# ---------------------------------------------------------------------------
# Abuse prevention
# ---------------------------------------------------------------------------


class RateLimitedError(CourseGateError):
    """Too many attempts for a rate-limit key.

    ``retry_after`` is in whole seconds.  When ``lockout`` is True, retrying
    before ``retry_after`` elapses is rejected identically.
    """

    code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(
        self,
        key: str,
        retry_after: int,
        lockout: bool = False,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or SAFE_ERROR_MESSAGES[ErrorCode.RATE_LIMIT_EXCEEDED],
            context={"key": key, "retry_after": retry_after, "lockout": lockout},
        )
        self.key = key
        self.retry_after = retry_after
        self.lockout = lockout


# ---------------------------------------------------------------------------
# Domain CRUD collaborators
# ---------------------------------------------------------------------------


class NotFoundError(CourseGateError):
    code = ErrorCode.NOT_FOUND


class ConflictError(CourseGateError):
    code = ErrorCode.CONFLICT


class ValidationError(CourseGateError):
    """Input failed validation before reaching the store."""

    code = ErrorCode.VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditError(CourseGateError):
    """Base for audit subsystem errors."""


class AuditStoreError(AuditError):
    """The audit store could not persist or read records."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Audit store {operation} failed: {reason}",
            context={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason
