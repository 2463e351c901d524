"""Unit tests — Severity and category classifiers (classifier.py)."""

from __future__ import annotations

import pytest

from coursegate.security.classifier import classify_category, classify_severity
from coursegate.security.models import Category, Severity

pytestmark = pytest.mark.unit


class TestClassifySeverity:

    @pytest.mark.parametrize(
        "action,expected",
        [
            ("USER_DELETED", Severity.CRITICAL),
            ("USER_ROLE_CHANGED", Severity.CRITICAL),
            ("PERMISSION_GRANTED", Severity.CRITICAL),
            ("SYSTEM_ERROR", Severity.CRITICAL),
            ("INTEGRATION_FAILURE", Severity.CRITICAL),
            ("DATA_INCONSISTENCY", Severity.CRITICAL),
            ("LOGIN_FAILED", Severity.WARNING),
            ("EMAIL_RETRY", Severity.WARNING),
            ("REQUEST_TIMEOUT", Severity.WARNING),
            ("PERFORMANCE_WARNING", Severity.WARNING),
            ("ENROLLMENT_REJECTED", Severity.WARNING),
            ("USER_LOGIN", Severity.INFO),
            ("ASSIGNMENT_SUBMITTED", Severity.INFO),
        ],
    )
    def test_keywords(self, action: str, expected: Severity) -> None:
        assert classify_severity(action) is expected

    def test_substring_match(self) -> None:
        assert classify_severity("DELETEDPOST") is Severity.CRITICAL
        assert classify_severity("PREFAILED") is Severity.WARNING

    def test_case_sensitive_miss(self) -> None:
        assert classify_severity("user_deleted") is Severity.INFO

    def test_precedence_critical_before_warning(self) -> None:
        assert classify_severity("DELETE_FAILED_ROLE_CHANGED") is Severity.CRITICAL
        assert classify_severity("ROOM_DELETED_REJECTED") is Severity.CRITICAL

    def test_empty(self) -> None:
        assert classify_severity("") is Severity.INFO

    def test_deterministic(self) -> None:
        results = {classify_severity("SOMETHING_TIMEOUT") for _ in range(20)}
        assert results == {Severity.WARNING}


class TestClassifyCategory:

    @pytest.mark.parametrize(
        "action,expected",
        [
            ("USER_LOGIN", Category.SECURITY),
            ("USER_LOGOUT", Category.SECURITY),
            ("AUTH_TOKEN_ISSUED", Category.SECURITY),
            ("SYSTEM_ERROR", Category.SYSTEM),
            ("INTEGRATION_FAILURE", Category.SYSTEM),
            ("USER_ROLE_CHANGED", Category.ADMIN_ACTION),
            ("PERMISSION_GRANTED", Category.ADMIN_ACTION),
            ("USER_CREATED", Category.ADMIN_ACTION),
            ("USER_DELETED", Category.ADMIN_ACTION),
            ("ROOM_UPDATED", Category.ADMIN_ACTION),
            ("ASSIGNMENT_SUBMITTED", Category.USER_ACTION),
            ("ENROLLMENT_REJECTED", Category.USER_ACTION),
        ],
    )
    def test_keywords(self, action: str, expected: Category) -> None:
        assert classify_category(action) is expected

    def test_login_failed_is_security(self) -> None:
        assert classify_category("USER_LOGIN_FAILED") is Category.SECURITY

    def test_error_before_role(self) -> None:
        assert classify_category("ROLE_SYNC_ERROR") is Category.SYSTEM

    def test_empty(self) -> None:
        assert classify_category("") is Category.USER_ACTION

    def test_case_sensitive_miss(self) -> None:
        assert classify_category("user_login") is Category.USER_ACTION


class TestIndependentPasses:

    def test_compound_label(self) -> None:
        assert classify_severity("USER_LOGIN_FAILED") is Severity.WARNING
        assert classify_category("USER_LOGIN_FAILED") is Category.SECURITY
