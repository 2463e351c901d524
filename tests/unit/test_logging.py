"""Unit tests — Request context binding for the operational log."""

from __future__ import annotations

import logging

import pytest
import structlog

from coursegate.logging import bind_request_context, clear_request_context, configure_logging


@pytest.fixture(autouse=True)
def _clean_context():
    clear_request_context()
    yield
    clear_request_context()


@pytest.mark.unit
class TestRequestContext:
    def test_bind_sets_fields(self) -> None:
        bind_request_context(request_id="rid-1", actor_id="admin-1")
        assert structlog.contextvars.get_contextvars() == {
            "request_id": "rid-1",
            "actor_id": "admin-1",
        }

    def test_none_values_are_skipped(self) -> None:
        bind_request_context(request_id="rid-1")
        bind_request_context(actor_id="stu-1")
        assert structlog.contextvars.get_contextvars() == {
            "request_id": "rid-1",
            "actor_id": "stu-1",
        }

    def test_clear(self) -> None:
        bind_request_context(request_id="rid-1")
        clear_request_context()
        assert structlog.contextvars.get_contextvars() == {}


@pytest.mark.unit
class TestConfigureLogging:
    def test_file_sink_and_level(self, tmp_path) -> None:
        log_file = tmp_path / "coursegate.log"
        configure_logging(level="warning", format="json", log_file=str(log_file))
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 2
        assert logging.getLogger("aiosqlite").level == logging.WARNING
