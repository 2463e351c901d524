"""API layer — FastAPI application factory.

``create_app()`` is the single entry point for building the FastAPI app.
All collaborators are wired here so that tests can override them by
calling ``create_app()`` with custom objects.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable

from fastapi import FastAPI

from coursegate import __version__
from coursegate.api.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    build_error_handler,
)
from coursegate.api.routes import admin, audit, health, session
from coursegate.config import Settings, get_settings
from coursegate.exceptions import (
    AuditStoreError,
    ConflictError,
    CourseGateError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    ValidationError,
)
from coursegate.logging import configure_logging, get_logger
from coursegate.security.audit import AuditLogger
from coursegate.security.audit_store import AuditStore, SQLiteAuditStore
from coursegate.security.authorizer import TokenDirectory
from coursegate.security.models import Principal
from coursegate.security.rate_limiter import RateLimiter, run_sweeper

log = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    audit_store: AuditStore | None = None,
    rate_limiter: RateLimiter | None = None,
    clock: Callable[[], float] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (used in tests).
        audit_store: Audit backend; defaults to SQLite at ``settings.audit.db_path``.
        rate_limiter: Limiter instance; defaults to an in-memory one.
        clock: Millisecond clock for the default limiter.

    Returns:
        A fully configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    app = FastAPI(
        title="CourseGate",
        description="Access control, rate limiting and audit trail for the course platform.",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Middleware: the last one added is outermost
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Exception handlers, registered per subclass; Exception is the catch-all
    error_handler = build_error_handler(expose_details=settings.is_development)
    for exc_cls in (
        CourseGateError,
        UnauthorizedError,
        ForbiddenError,
        RateLimitedError,
        NotFoundError,
        ConflictError,
        ValidationError,
        AuditStoreError,
        Exception,
    ):
        app.add_exception_handler(exc_cls, error_handler)  # type: ignore[arg-type]

    # Routers
    app.include_router(health.router)
    app.include_router(session.router)
    app.include_router(admin.router)
    app.include_router(audit.router)

    # Collaborators live on app.state from construction; startup only does I/O.
    store = audit_store if audit_store is not None else SQLiteAuditStore(settings.audit.db_path)
    app.state.settings = settings
    app.state.audit_store = store
    app.state.audit_logger = AuditLogger(store)
    app.state.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter(clock=clock)
    app.state.rate_limit_presets = settings.rate_limit.effective_presets()
    app.state.token_directory = _build_token_directory(settings)

    @app.on_event("startup")
    async def startup() -> None:
        log.info("daemon_starting", version=__version__)
        await app.state.audit_store.init()

        if settings.rate_limit.enabled:
            app.state.sweeper_task = asyncio.create_task(
                run_sweeper(app.state.rate_limiter, settings.rate_limit.sweep_interval_seconds)
            )

        log.info(
            "daemon_started",
            sessions=len(app.state.token_directory),
            rate_limiting=settings.rate_limit.enabled,
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        log.info("daemon_stopping")
        task = getattr(app.state, "sweeper_task", None)
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await app.state.audit_store.close()

    return app


def _build_token_directory(settings: Settings) -> TokenDirectory:
    return TokenDirectory(
        {
            entry.token: Principal(
                id=entry.id, role=entry.role, name=entry.name, email=entry.email
            )
            for entry in settings.sessions.tokens
        }
    )
