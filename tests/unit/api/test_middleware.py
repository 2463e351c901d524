"""Unit tests — API middleware (RequestIDMiddleware, AccessLogMiddleware, error handler)."""

from __future__ import annotations

import sqlite3

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coursegate.api.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    build_error_handler,
)
from coursegate.exceptions import (
    AuditStoreError,
    CourseGateError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
)


def _make_test_app(expose_details: bool = False) -> FastAPI:
    """Build a minimal FastAPI app with all middleware registered."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AccessLogMiddleware)
    handler = build_error_handler(expose_details=expose_details)
    for exc_cls in [
        CourseGateError,
        UnauthorizedError,
        ForbiddenError,
        RateLimitedError,
        NotFoundError,
        AuditStoreError,
        Exception,
    ]:
        app.add_exception_handler(exc_cls, handler)

    @app.get("/ok")
    async def ok() -> dict:
        return {"status": "ok"}

    @app.get("/error/unauthorized")
    async def raise_unauthorized():
        raise UnauthorizedError()

    @app.get("/error/forbidden")
    async def raise_forbidden():
        raise ForbiddenError(principal_id="stu-1", role="STUDENT", required=["ADMIN"])

    @app.get("/error/rate-limited")
    async def raise_rate_limited():
        raise RateLimitedError("login:1.2.3.4", 3600, lockout=True, message="Locked out")

    @app.get("/error/not-found")
    async def raise_not_found():
        raise NotFoundError("Section sec-1 not found")

    @app.get("/error/internal")
    async def raise_internal():
        raise AuditStoreError("append", "database is locked")

    @app.get("/error/unhandled")
    async def raise_unhandled():
        raise sqlite3.OperationalError("database is locked")

    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(_make_test_app(), raise_server_exceptions=False)


@pytest.mark.unit
class TestRequestIDMiddleware:
    def test_request_id_injected_in_response(self, client: TestClient) -> None:
        resp = client.get("/ok")
        assert resp.status_code == 200
        assert "X-Request-ID" in resp.headers

    def test_custom_request_id_echoed(self, client: TestClient) -> None:
        resp = client.get("/ok", headers={"X-Request-ID": "test-rid-123"})
        assert resp.headers["X-Request-ID"] == "test-rid-123"

    def test_request_id_in_error_body(self, client: TestClient) -> None:
        resp = client.get("/error/not-found", headers={"X-Request-ID": "rid-9"})
        assert resp.json()["request_id"] == "rid-9"


@pytest.mark.unit
class TestErrorHandler:
    def test_unauthorized(self, client: TestClient) -> None:
        resp = client.get("/error/unauthorized")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"
        assert resp.json()["code"] == "unauthorized"

    def test_forbidden_hides_detail_in_production(self, client: TestClient) -> None:
        resp = client.get("/error/forbidden")
        assert resp.status_code == 403
        body = resp.json()
        assert body["code"] == "forbidden"
        assert body["detail"] is None

    def test_forbidden_detail_in_development(self) -> None:
        client = TestClient(_make_test_app(expose_details=True), raise_server_exceptions=False)
        body = client.get("/error/forbidden").json()
        assert body["detail"]["required"] == ["ADMIN"]

    def test_rate_limited(self, client: TestClient) -> None:
        resp = client.get("/error/rate-limited")
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "3600"
        assert resp.json() == {"error": "Locked out", "retryAfter": 3600, "lockout": True}

    def test_not_found(self, client: TestClient) -> None:
        resp = client.get("/error/not-found")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Section sec-1 not found"

    def test_internal_error_message_is_generic(self, client: TestClient) -> None:
        resp = client.get("/error/internal")
        assert resp.status_code == 500
        body = resp.json()
        assert body["code"] == "internal_error"
        assert "database is locked" not in body["error"]
        assert body["detail"] is None

    def test_internal_error_exposed_in_development(self) -> None:
        client = TestClient(_make_test_app(expose_details=True), raise_server_exceptions=False)
        body = client.get("/error/internal").json()
        assert "database is locked" in body["error"]

    def test_unhandled_exception_returns_json_500(self, client: TestClient) -> None:
        resp = client.get("/error/unhandled", headers={"X-Request-ID": "rid-500"})
        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("application/json")
        body = resp.json()
        assert body["code"] == "internal_error"
        assert "database is locked" not in body["error"]
        assert body["detail"] is None
        assert body["request_id"] == "rid-500"

    def test_unhandled_exception_exposed_in_development(self) -> None:
        client = TestClient(_make_test_app(expose_details=True), raise_server_exceptions=False)
        body = client.get("/error/unhandled").json()
        assert body["code"] == "internal_error"
        assert body["error"] == "database is locked"
