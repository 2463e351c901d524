"""API layer — FastAPI dependency injection.

Long-lived objects (rate limiter, audit logger, token directory) are created
once in ``create_app()`` and read back from ``app.state``.  Each request gets
its own :class:`Authorizer` bound to the caller's bearer token.

Guards are exposed as ``Annotated`` aliases so routes read::

    async def export(admin: AdminDep, audit: AuditDep) -> ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header, Request

from coursegate.config import Settings
from coursegate.exceptions import ForbiddenError
from coursegate.logging import bind_request_context
from coursegate.security.audit import AuditLogger
from coursegate.security.authorizer import Authorizer, BearerTokenSession, TokenDirectory
from coursegate.security.models import Principal
from coursegate.security.rate_limiter import (
    RateLimitConfig,
    RateLimiter,
    client_ip,
    rate_limit_key,
)


def get_config(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter  # type: ignore[no-any-return]


def get_presets(request: Request) -> dict[str, RateLimitConfig]:
    return request.app.state.rate_limit_presets  # type: ignore[no-any-return]


def get_audit_logger(request: Request) -> AuditLogger:
    return request.app.state.audit_logger  # type: ignore[no-any-return]


def get_token_directory(request: Request) -> TokenDirectory:
    return request.app.state.token_directory  # type: ignore[no-any-return]


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_authorizer(
    directory: Annotated[TokenDirectory, Depends(get_token_directory)],
    authorization: Annotated[str | None, Header()] = None,
) -> Authorizer:
    return Authorizer(BearerTokenSession(directory, _bearer_token(authorization)))


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


async def _guard(
    request: Request,
    audit: AuditLogger,
    check: Callable[[], Awaitable[Principal]],
) -> Principal:
    try:
        principal = await check()
    except ForbiddenError as exc:
        await audit.access_denied(
            actor_id=exc.principal_id,
            reason=exc.message,
            path=request.url.path,
            required=exc.required,
        )
        raise
    bind_request_context(actor_id=principal.id)
    return principal


async def require_authenticated(
    request: Request,
    authz: Annotated[Authorizer, Depends(get_authorizer)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
) -> Principal:
    return await _guard(request, audit, authz.require_authenticated)


async def require_admin(
    request: Request,
    authz: Annotated[Authorizer, Depends(get_authorizer)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
) -> Principal:
    return await _guard(request, audit, authz.require_admin)


async def require_moderator(
    request: Request,
    authz: Annotated[Authorizer, Depends(get_authorizer)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
) -> Principal:
    return await _guard(request, audit, authz.require_moderator)


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


def enforce_rate_limit(request: Request, prefix: str, subject: str, preset: str) -> None:
    """Consume one attempt for ``prefix:subject`` or raise RateLimitedError.

    A no-op when rate limiting is disabled in configuration.
    """
    settings: Settings = request.app.state.settings
    if not settings.rate_limit.enabled:
        return
    limiter: RateLimiter = request.app.state.rate_limiter
    config = request.app.state.rate_limit_presets[preset]
    limiter.check_or_raise(rate_limit_key(prefix, subject), config)


def rate_limit_by_ip(prefix: str, preset: str) -> Callable[[Request], None]:
    """Dependency factory keyed by the caller's address.

    Usage::

        @router.post("/login", dependencies=[Depends(rate_limit_by_ip("login", "login"))])
    """

    def dependency(request: Request) -> None:
        fallback = request.client.host if request.client else None
        enforce_rate_limit(request, prefix, client_ip(request.headers, fallback), preset)

    return dependency


def rate_limit_by_identifier(
    prefix: str, preset: str, header: str
) -> Callable[[Request], None]:
    """Dependency factory keyed by a request header value (e.g. an e-mail or token id).

    Requests without the header fall back to the caller's address.
    """

    def dependency(request: Request) -> None:
        subject = request.headers.get(header)
        if not subject:
            fallback = request.client.host if request.client else None
            subject = client_ip(request.headers, fallback)
        enforce_rate_limit(request, prefix, subject.strip().lower(), preset)

    return dependency


# Shorthand type aliases for route signatures.
ConfigDep = Annotated[Settings, Depends(get_config)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
PresetsDep = Annotated[dict[str, RateLimitConfig], Depends(get_presets)]
AuditDep = Annotated[AuditLogger, Depends(get_audit_logger)]
PrincipalDep = Annotated[Principal, Depends(require_authenticated)]
AdminDep = Annotated[Principal, Depends(require_admin)]
ModeratorDep = Annotated[Principal, Depends(require_moderator)]
