"""Security layer — RBAC Authorizer.

Resolves "who is calling" through a :class:`SessionProvider` collaborator and
enforces role / capability predicates against the static table in
:mod:`coursegate.security.permissions`.

Failures are typed:
  - :class:`UnauthorizedError` — no principal (401 at the HTTP boundary)
  - :class:`ForbiddenError`    — principal lacks role or capability (403)

The authorizer deliberately has no admin bypass.  Where a call site lets any
admin act on a resource owned by someone else, it calls
:func:`authorize_owner_or_admin` and records the returned
:class:`AccessGrant` in the audit details.

Usage::

    authz = Authorizer(session)
    principal = await authz.require_permission(Capability.GRADE_SUBMISSIONS)
    grant = authorize_owner_or_admin(principal, section.instructor_id)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from coursegate.exceptions import ForbiddenError, UnauthorizedError
from coursegate.logging import get_logger
from coursegate.security.models import AccessGrant, Principal, Role
from coursegate.security.permissions import has_permission

log = get_logger(__name__)

INSTRUCTOR_ROLES: frozenset[Role] = frozenset({Role.INSTRUCTOR, Role.ADMIN})
MODERATOR_ROLES: frozenset[Role] = frozenset({Role.MODERATOR, Role.ADMIN})


# ---------------------------------------------------------------------------
# Session collaborators
# ---------------------------------------------------------------------------


class SessionProvider(ABC):
    """The identity/session collaborator.  Owns principal lifetime and caching."""

    @abstractmethod
    async def current_principal(self) -> Principal | None:
        """Return the caller's principal, or None for anonymous callers."""


class StaticSessionProvider(SessionProvider):
    """Always resolves the same principal.  Used by the CLI and in tests."""

    def __init__(self, principal: Principal | None = None) -> None:
        self._principal = principal

    async def current_principal(self) -> Principal | None:
        return self._principal


class TokenDirectory:
    """Bearer token -> principal lookup loaded from configuration."""

    def __init__(self, principals: dict[str, Principal] | None = None) -> None:
        self._by_token: dict[str, Principal] = dict(principals or {})

    def lookup(self, token: str | None) -> Principal | None:
        if not token:
            return None
        return self._by_token.get(token)

    def __len__(self) -> int:
        return len(self._by_token)


class BearerTokenSession(SessionProvider):
    """Session for one request, resolved from its bearer token."""

    def __init__(self, directory: TokenDirectory, token: str | None) -> None:
        self._directory = directory
        self._token = token

    async def current_principal(self) -> Principal | None:
        return self._directory.lookup(self._token)


# ---------------------------------------------------------------------------
# Authorizer
# ---------------------------------------------------------------------------


class Authorizer:
    """Guard functions over a session collaborator."""

    def __init__(self, session: SessionProvider) -> None:
        self._session = session

    async def resolve_principal(self) -> Principal | None:
        return await self._session.current_principal()

    async def require_authenticated(self) -> Principal:
        principal = await self.resolve_principal()
        if principal is None:
            log.info("access_denied", reason="unauthenticated")
            raise UnauthorizedError()
        return principal

    async def require_role(self, allowed_roles: Iterable[Role]) -> Principal:
        allowed = frozenset(allowed_roles)
        principal = await self.require_authenticated()
        if principal.role not in allowed:
            required = sorted(r.value for r in allowed)
            log.info(
                "access_denied",
                reason="role",
                principal_id=principal.id,
                role=principal.role.value,
                required=required,
            )
            raise ForbiddenError(
                "Forbidden: Insufficient permissions",
                principal_id=principal.id,
                role=principal.role.value,
                required=required,
            )
        return principal

    async def require_permission(self, permission: str) -> Principal:
        principal = await self.require_authenticated()
        if not has_permission(principal.role, permission):
            log.info(
                "access_denied",
                reason="permission",
                principal_id=principal.id,
                role=principal.role.value,
                permission=permission,
            )
            raise ForbiddenError(
                f"Forbidden: Missing permission '{permission}'",
                principal_id=principal.id,
                role=principal.role.value,
                required=[permission],
            )
        return principal

    # -- Role families -------------------------------------------------

    async def require_admin(self) -> Principal:
        return await self.require_role({Role.ADMIN})

    async def require_instructor(self) -> Principal:
        return await self.require_role(INSTRUCTOR_ROLES)

    async def require_moderator(self) -> Principal:
        return await self.require_role(MODERATOR_ROLES)


def authorize_owner_or_admin(principal: Principal, owner_id: str | None) -> AccessGrant:
    """Allow the owner of a resource, or any admin as an explicit override.

    Raises :class:`ForbiddenError` for everyone else.  The owner check wins
    when an admin owns the resource themselves.
    """
    if owner_id is not None and principal.id == owner_id:
        return AccessGrant.OWNER
    if principal.is_admin:
        log.info("admin_override", principal_id=principal.id, owner_id=owner_id)
        return AccessGrant.ADMIN_OVERRIDE
    raise ForbiddenError(
        principal_id=principal.id,
        role=principal.role.value,
        required=["owner", Role.ADMIN.value],
    )
