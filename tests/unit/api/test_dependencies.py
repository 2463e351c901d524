"""Unit tests — rate limit dependency factories and bearer token parsing."""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from coursegate.api.dependencies import (
    _bearer_token,
    rate_limit_by_identifier,
    rate_limit_by_ip,
)
from coursegate.api.middleware import build_error_handler
from coursegate.config import Settings
from coursegate.exceptions import CourseGateError, RateLimitedError
from coursegate.security.rate_limiter import RateLimitConfig, RateLimiter


def _make_app(enabled: bool = True) -> FastAPI:
    app = FastAPI()
    app.state.settings = Settings(rate_limit={"enabled": enabled})
    app.state.rate_limiter = RateLimiter()
    app.state.rate_limit_presets = {"tiny": RateLimitConfig(max_attempts=2, window_ms=60_000)}
    handler = build_error_handler()
    app.add_exception_handler(CourseGateError, handler)
    app.add_exception_handler(RateLimitedError, handler)

    @app.post("/login", dependencies=[Depends(rate_limit_by_ip("login", "tiny"))])
    async def login() -> dict:
        return {"ok": True}

    @app.post(
        "/reset",
        dependencies=[Depends(rate_limit_by_identifier("password-reset", "tiny", "x-email"))],
    )
    async def reset() -> dict:
        return {"ok": True}

    return app


@pytest.mark.unit
class TestRateLimitByIp:
    def test_third_request_rejected(self) -> None:
        app = _make_app()
        client = TestClient(app)
        headers = {"X-Forwarded-For": "198.51.100.4"}
        assert client.post("/login", headers=headers).status_code == 200
        assert client.post("/login", headers=headers).status_code == 200
        resp = client.post("/login", headers=headers)
        assert resp.status_code == 429
        assert resp.json()["lockout"] is False
        assert app.state.rate_limiter.get_entry("login:198.51.100.4").count == 3

    def test_distinct_ips_are_independent(self) -> None:
        client = TestClient(_make_app())
        for _ in range(2):
            client.post("/login", headers={"X-Forwarded-For": "198.51.100.4"})
        resp = client.post("/login", headers={"X-Forwarded-For": "198.51.100.5"})
        assert resp.status_code == 200

    def test_disabled_never_rejects(self) -> None:
        app = _make_app(enabled=False)
        client = TestClient(app)
        for _ in range(5):
            assert client.post("/login").status_code == 200
        assert len(app.state.rate_limiter) == 0


@pytest.mark.unit
class TestRateLimitByIdentifier:
    def test_keyed_by_normalised_header(self) -> None:
        app = _make_app()
        client = TestClient(app)
        client.post("/reset", headers={"X-Email": "Ada@Example.com"})
        client.post("/reset", headers={"X-Email": "ada@example.com "})
        resp = client.post("/reset", headers={"X-Email": "ADA@example.com"})
        assert resp.status_code == 429
        assert app.state.rate_limiter.get_entry("password-reset:ada@example.com") is not None

    def test_missing_header_uses_address(self) -> None:
        app = _make_app()
        client = TestClient(app)
        client.post("/reset", headers={"X-Real-IP": "192.0.2.1"})
        assert app.state.rate_limiter.get_entry("password-reset:192.0.2.1") is not None


@pytest.mark.unit
class TestBearerToken:
    @pytest.mark.parametrize(
        "header,expected",
        [
            (None, None),
            ("", None),
            ("Bearer abc", "abc"),
            ("bearer  abc ", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
        ],
    )
    def test_parse(self, header: str | None, expected: str | None) -> None:
        assert _bearer_token(header) == expected
