"""Security layer — Severity and category classifiers for audit action labels.

Action labels follow an UPPER_SNAKE_CASE convention (``USER_ROLE_CHANGED``,
``ENROLLMENT_REJECTED``).  Each classifier is an ordered table of
``(keyword, result)`` pairs; the first keyword found as a substring of the
raw label wins, otherwise the fallback applies.

Matching is a plain case-sensitive substring test:
  - ``DELETEDPOST`` matches ``DELETED``        -> CRITICAL
  - ``user_deleted`` matches nothing          -> INFO
  - ``""`` matches nothing                    -> INFO / USER_ACTION

The two classifiers are independent passes with their own tables and
precedence, so ``USER_LOGIN_FAILED`` is WARNING *and* SECURITY.
"""

from __future__ import annotations

from coursegate.security.models import Category, Severity

SEVERITY_RULES: tuple[tuple[str, Severity], ...] = (
    ("ROLE_CHANGED", Severity.CRITICAL),
    ("DELETED", Severity.CRITICAL),
    ("PERMISSION", Severity.CRITICAL),
    ("SYSTEM_ERROR", Severity.CRITICAL),
    ("INTEGRATION_FAILURE", Severity.CRITICAL),
    ("DATA_INCONSISTENCY", Severity.CRITICAL),
    ("FAILED", Severity.WARNING),
    ("RETRY", Severity.WARNING),
    ("TIMEOUT", Severity.WARNING),
    ("WARNING", Severity.WARNING),
    ("REJECTED", Severity.WARNING),
)

CATEGORY_RULES: tuple[tuple[str, Category], ...] = (
    ("LOGIN", Category.SECURITY),
    ("LOGOUT", Category.SECURITY),
    ("AUTH", Category.SECURITY),
    ("ERROR", Category.SYSTEM),
    ("FAILURE", Category.SYSTEM),
    ("SYSTEM", Category.SYSTEM),
    ("INTEGRATION", Category.SYSTEM),
    ("ROLE", Category.ADMIN_ACTION),
    ("PERMISSION", Category.ADMIN_ACTION),
    ("CREATED", Category.ADMIN_ACTION),
    ("DELETED", Category.ADMIN_ACTION),
    ("ROOM", Category.ADMIN_ACTION),
)


def classify_severity(action: str) -> Severity:
    for keyword, severity in SEVERITY_RULES:
        if keyword in action:
            return severity
    return Severity.INFO


def classify_category(action: str) -> Category:
    for keyword, category in CATEGORY_RULES:
        if keyword in action:
            return category
    return Category.USER_ACTION
