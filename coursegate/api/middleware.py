"""API layer — Request middleware.

- Request ID injection (X-Request-ID header) and log context binding
- Structured access logging
- Exception handler mapping the CourseGateError family, and anything
  unexpected, to JSON responses
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from coursegate.api.schemas import ErrorResponse, RateLimitErrorResponse
from coursegate.exceptions import (
    SAFE_ERROR_MESSAGES,
    CourseGateError,
    ErrorCode,
    RateLimitedError,
    UnauthorizedError,
)
from coursegate.logging import bind_request_context, clear_request_context, get_logger

log = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique X-Request-ID to every request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        bind_request_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log each request with timing information."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = round((time.time() - start) * 1000, 2)

        log.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
            request_id=getattr(request.state, "request_id", None),
        )
        return response


def build_error_handler(expose_details: bool = False) -> Any:
    """Return a FastAPI exception handler for CourseGateError and unhandled errors.

    Status codes come from the error's code.  Internal failures are reported
    with the generic safe message unless *expose_details* is set
    (development mode).
    """

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)

        if not isinstance(exc, CourseGateError):
            log.error(
                "request_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                path=request.url.path,
            )
            body = ErrorResponse(
                error=(
                    str(exc)
                    if expose_details
                    else SAFE_ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR]
                ),
                code=ErrorCode.INTERNAL_ERROR.value,
                request_id=request_id,
            )
            return JSONResponse(status_code=500, content=body.model_dump())

        if isinstance(exc, RateLimitedError):
            body = RateLimitErrorResponse(
                error=exc.message, retryAfter=exc.retry_after, lockout=exc.lockout
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=body.model_dump(),
                headers={"Retry-After": str(exc.retry_after)},
            )

        headers: dict[str, str] | None = None
        if isinstance(exc, UnauthorizedError):
            headers = {"WWW-Authenticate": "Bearer"}

        message = exc.message
        detail = exc.context or None
        if exc.code is ErrorCode.INTERNAL_ERROR:
            log.error("request_failed", error=exc.message, error_type=type(exc).__name__)
            if not expose_details:
                message = SAFE_ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR]
                detail = None
        elif not expose_details:
            detail = None

        body = ErrorResponse(
            error=message,
            code=exc.code.value,
            detail=detail,
            request_id=request_id,
        )
        return JSONResponse(
            status_code=exc.status_code, content=body.model_dump(), headers=headers
        )

    return handler
