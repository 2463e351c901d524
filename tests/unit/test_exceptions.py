"""Unit tests — Exception hierarchy and error code tables."""

from __future__ import annotations

import pytest

from coursegate.exceptions import (
    ERROR_STATUS_CODES,
    SAFE_ERROR_MESSAGES,
    AccessError,
    AuditStoreError,
    ConflictError,
    CourseGateError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    ValidationError,
)

pytestmark = pytest.mark.unit


class TestErrorTables:

    def test_every_code_has_status_and_message(self) -> None:
        for code in ErrorCode:
            assert code in ERROR_STATUS_CODES
            assert SAFE_ERROR_MESSAGES[code]

    @pytest.mark.parametrize(
        "exc,status",
        [
            (UnauthorizedError(), 401),
            (ForbiddenError(), 403),
            (NotFoundError("missing"), 404),
            (ValidationError("bad"), 400),
            (ConflictError("dup"), 409),
            (RateLimitedError("login:x", 60), 429),
            (AuditStoreError("append", "locked"), 500),
            (CourseGateError("boom"), 500),
        ],
    )
    def test_status_codes(self, exc: CourseGateError, status: int) -> None:
        assert exc.status_code == status


class TestExceptions:

    def test_access_errors_share_base(self) -> None:
        assert isinstance(UnauthorizedError(), AccessError)
        assert isinstance(ForbiddenError(), AccessError)
        assert not isinstance(RateLimitedError("k", 1), AccessError)

    def test_unauthorized_default_message(self) -> None:
        assert UnauthorizedError().message == SAFE_ERROR_MESSAGES[ErrorCode.UNAUTHORIZED]

    def test_forbidden_context(self) -> None:
        err = ForbiddenError("nope", principal_id="u", role="STUDENT", required=["ADMIN"])
        assert err.context == {"principal_id": "u", "role": "STUDENT", "required": ["ADMIN"]}
        assert str(err) == "nope"

    def test_rate_limited_attributes(self) -> None:
        err = RateLimitedError("login:1.2.3.4", 3600, lockout=True)
        assert (err.key, err.retry_after, err.lockout) == ("login:1.2.3.4", 3600, True)
        assert err.code is ErrorCode.RATE_LIMIT_EXCEEDED

    def test_audit_store_error_message(self) -> None:
        err = AuditStoreError("list", "disk I/O error")
        assert err.message == "Audit store list failed: disk I/O error"
        assert err.operation == "list"

    def test_repr(self) -> None:
        assert repr(NotFoundError("gone")) == "NotFoundError('gone', context={})"
