"""Security layer — Keyed fixed-window rate limiter with lockout escalation.

Keys are composite ``prefix:subject`` strings (``login:203.0.113.5``,
``login-email:alice@example.com``).  Each key holds one
:class:`RateLimitEntry`:

  - first attempt (or first after the window elapsed) opens a window, count=1
  - every further attempt in the window increments the count
  - count > max_attempts rejects; with a lockout configured the key is locked
    until ``now + lockout_duration_ms``
  - while locked, every attempt is rejected *without* touching the counter

Check and increment are a single step under a lock: there is no peek.  The
clock is injected (milliseconds) and entries live behind
:class:`RateLimitStore` so a shared store can replace the in-memory map
without changing call sites.

Usage::

    limiter = RateLimiter()
    decision = limiter.check_and_consume(rate_limit_key("login", ip), RateLimitPresets.LOGIN)
    if not decision.allowed:
        ...  # 429 with Retry-After: decision.retry_after_seconds
"""

from __future__ import annotations

import asyncio
import math
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Union

from coursegate.exceptions import RateLimitedError
from coursegate.logging import get_logger

log = get_logger(__name__)

DEFAULT_MESSAGE = "Too many attempts. Please try again later."

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateLimitConfig:
    """Limit for one class of keys.

    A non-positive ``max_attempts`` or ``window_ms`` is a programming error and
    raises ``ValueError`` immediately.
    """

    max_attempts: int
    window_ms: int
    lockout_duration_ms: int | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        if self.window_ms <= 0:
            raise ValueError("window_ms must be > 0")
        if self.lockout_duration_ms is not None and self.lockout_duration_ms <= 0:
            raise ValueError("lockout_duration_ms must be > 0 when set")

    @property
    def rejection_message(self) -> str:
        return self.message or DEFAULT_MESSAGE


class RateLimitPresets:
    """Named configurations for the platform's sensitive endpoints."""

    LOGIN = RateLimitConfig(
        max_attempts=5,
        window_ms=15 * _MINUTE_MS,
        lockout_duration_ms=_HOUR_MS,
        message="Too many login attempts. Account temporarily locked. Please try again later.",
    )
    REGISTER = RateLimitConfig(
        max_attempts=3,
        window_ms=_HOUR_MS,
        message="Too many registration attempts. Please try again later.",
    )
    PASSWORD_RESET = RateLimitConfig(
        max_attempts=3,
        window_ms=_HOUR_MS,
        message="Too many password reset requests. Please try again later.",
    )
    PASSWORD_RESET_CONFIRM = RateLimitConfig(
        max_attempts=5,
        window_ms=_HOUR_MS,
        lockout_duration_ms=24 * _HOUR_MS,
        message="Too many attempts with this reset token. Please request a new password reset.",
    )
    API = RateLimitConfig(
        max_attempts=100,
        window_ms=15 * _MINUTE_MS,
        message="Rate limit exceeded. Please slow down.",
    )

    @classmethod
    def all(cls) -> dict[str, RateLimitConfig]:
        return {
            "login": cls.LOGIN,
            "register": cls.REGISTER,
            "password_reset": cls.PASSWORD_RESET,
            "password_reset_confirm": cls.PASSWORD_RESET_CONFIRM,
            "api": cls.API,
        }


def build_presets(
    overrides: Mapping[str, RateLimitConfig] | None = None,
) -> dict[str, RateLimitConfig]:
    """Return the preset table with *overrides* applied by name."""
    presets = RateLimitPresets.all()
    for name, config in (overrides or {}).items():
        if name not in presets:
            raise ValueError(f"Unknown rate limit preset: {name}")
        presets[name] = config
    return presets


# Prefixes used by the platform's endpoints; informational for operators.
KNOWN_PREFIXES: tuple[str, ...] = (
    "login",
    "login-email",
    "register",
    "password-reset",
    "password-reset-confirm",
    "certificate-issue",
    "audit-events",
)


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Allowed:
    """The attempt was consumed.  ``attempts`` is the count in the current window."""

    attempts: int

    @property
    def allowed(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    retry_after_seconds: int
    is_lockout: bool
    message: str

    @property
    def allowed(self) -> bool:
        return False

    def to_response(self) -> dict[str, object]:
        """Body returned to HTTP clients alongside status 429."""
        return {
            "error": self.message,
            "retryAfter": self.retry_after_seconds,
            "lockout": self.is_lockout,
        }


Decision = Union[Allowed, Rejected]


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float
    lockout_until: float | None = None

    def is_locked(self, now: float) -> bool:
        return self.lockout_until is not None and self.lockout_until > now

    def is_reclaimable(self, now: float) -> bool:
        """Both the window and any lockout have passed."""
        return self.reset_at < now and (
            self.lockout_until is None or self.lockout_until < now
        )


class RateLimitStore(ABC):
    """Backing map for rate limit entries."""

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None: ...

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def clear(self) -> int: ...

    @abstractmethod
    def keys(self) -> list[str]: ...

    def __len__(self) -> int:
        return len(self.keys())


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store.  Not shared across workers and lost on restart."""

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> RateLimitEntry | None:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Limiter
# ---------------------------------------------------------------------------


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


def _seconds_until(deadline: float, now: float) -> int:
    return math.ceil((deadline - now) / 1000.0)


class RateLimiter:
    """Fixed-window counter with optional lockout, keyed by ``prefix:subject``."""

    def __init__(
        self,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock or _wall_clock_ms
        self._lock = threading.Lock()

    def check_and_consume(self, key: str, config: RateLimitConfig) -> Decision:
        """Consume one attempt for *key*, or reject it."""
        with self._lock:
            now = self._clock()
            entry = self._store.get(key)

            if entry is not None and entry.is_locked(now):
                assert entry.lockout_until is not None
                return self._reject(
                    key,
                    retry_after=_seconds_until(entry.lockout_until, now),
                    lockout=True,
                    config=config,
                )

            if entry is None or entry.reset_at < now:
                self._store.set(key, RateLimitEntry(count=1, reset_at=now + config.window_ms))
                return Allowed(attempts=1)

            entry.count += 1

            if entry.count > config.max_attempts:
                if config.lockout_duration_ms:
                    entry.lockout_until = now + config.lockout_duration_ms
                    retry_after = math.ceil(config.lockout_duration_ms / 1000.0)
                else:
                    retry_after = _seconds_until(entry.reset_at, now)
                self._store.set(key, entry)
                return self._reject(
                    key,
                    retry_after=retry_after,
                    lockout=bool(config.lockout_duration_ms),
                    config=config,
                )

            self._store.set(key, entry)
            return Allowed(attempts=entry.count)

    def check_or_raise(self, key: str, config: RateLimitConfig) -> Allowed:
        """Like :meth:`check_and_consume` but raise :class:`RateLimitedError` on rejection."""
        decision = self.check_and_consume(key, config)
        if isinstance(decision, Rejected):
            raise RateLimitedError(
                key=key,
                retry_after=decision.retry_after_seconds,
                lockout=decision.is_lockout,
                message=decision.message,
            )
        return decision

    def record_success(self, key: str) -> None:
        """Forget *key* after a successful attempt (e.g. a correct password)."""
        with self._lock:
            self._store.delete(key)

    # -- Administration ------------------------------------------------

    def clear_prefix(self, prefix: str) -> int:
        """Delete every entry under ``prefix:``.  Returns the number removed."""
        marker = f"{prefix}:"
        with self._lock:
            doomed = [k for k in self._store.keys() if k.startswith(marker)]
            for key in doomed:
                self._store.delete(key)
        log.info("rate_limits_cleared", prefix=prefix, count=len(doomed))
        return len(doomed)

    def clear_all(self) -> int:
        with self._lock:
            count = self._store.clear()
        log.info("rate_limits_cleared", prefix=None, count=count)
        return count

    def purge_expired(self) -> int:
        """Drop entries whose window and lockout have both passed."""
        with self._lock:
            now = self._clock()
            expired = []
            for key in self._store.keys():
                entry = self._store.get(key)
                if entry is not None and entry.is_reclaimable(now):
                    expired.append(key)
            for key in expired:
                self._store.delete(key)
        if expired:
            log.debug("rate_limit_entries_purged", count=len(expired))
        return len(expired)

    # -- Introspection -------------------------------------------------

    def get_entry(self, key: str) -> RateLimitEntry | None:
        """Return a copy of the entry for *key*, if any."""
        with self._lock:
            entry = self._store.get(key)
            return replace(entry) if entry is not None else None

    def __len__(self) -> int:
        return len(self._store)

    # -- Internal ------------------------------------------------------

    def _reject(
        self, key: str, *, retry_after: int, lockout: bool, config: RateLimitConfig
    ) -> Rejected:
        log.warning(
            "rate_limit_exceeded",
            key=key,
            retry_after=retry_after,
            lockout=lockout,
        )
        return Rejected(
            retry_after_seconds=retry_after,
            is_lockout=lockout,
            message=config.rejection_message,
        )


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------


def rate_limit_key(prefix: str, subject: str) -> str:
    return f"{prefix}:{subject}"


def client_ip(headers: Mapping[str, str], fallback: str | None = None) -> str:
    """Best-effort client address: X-Forwarded-For first hop, X-Real-IP, then *fallback*."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return fallback or "unknown"


# ---------------------------------------------------------------------------
# Background reclamation
# ---------------------------------------------------------------------------


async def run_sweeper(limiter: RateLimiter, interval_seconds: float) -> None:
    """Purge expired entries every *interval_seconds* until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            purged = limiter.purge_expired()
            if purged:
                log.info("rate_limit_sweep_completed", entries_purged=purged)
        except Exception as exc:
            log.warning("rate_limit_sweep_failed", error=str(exc))
