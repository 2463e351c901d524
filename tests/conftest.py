"""Shared pytest fixtures for the coursegate test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from coursegate.config import Settings, override_settings
from coursegate.security.audit import AuditLogger
from coursegate.security.audit_store import InMemoryAuditStore
from coursegate.security.models import Principal, Role
from coursegate.security.rate_limiter import RateLimiter

ADMIN_TOKEN = "admin-token-0000000001"
MODERATOR_TOKEN = "moderator-token-00000002"
INSTRUCTOR_TOKEN = "instructor-token-0000003"
STUDENT_TOKEN = "student-token-0000000004"


class FakeClock:
    """Manually advanced clock.  ``now`` is in milliseconds."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        audit={"db_path": str(tmp_path / "audit.db")},
        logging={"level": "debug", "format": "console"},
        sessions={
            "tokens": [
                {"token": ADMIN_TOKEN, "id": "admin-1", "role": "ADMIN", "name": "Ada"},
                {"token": MODERATOR_TOKEN, "id": "mod-1", "role": "MODERATOR"},
                {"token": INSTRUCTOR_TOKEN, "id": "inst-1", "role": "INSTRUCTOR"},
                {"token": STUDENT_TOKEN, "id": "stu-1", "role": "STUDENT"},
            ]
        },
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Security collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def audit_logger(audit_store: InMemoryAuditStore) -> AuditLogger:
    return AuditLogger(audit_store)


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin-1", role=Role.ADMIN, name="Ada")


@pytest.fixture
def instructor() -> Principal:
    return Principal(id="inst-1", role=Role.INSTRUCTOR)


@pytest.fixture
def student() -> Principal:
    return Principal(id="stu-1", role=Role.STUDENT)


@pytest.fixture
def tokens() -> dict[str, str]:
    """Bearer tokens configured in ``test_settings``, keyed by role."""
    return {
        "admin": ADMIN_TOKEN,
        "moderator": MODERATOR_TOKEN,
        "instructor": INSTRUCTOR_TOKEN,
        "student": STUDENT_TOKEN,
    }
