"""CourseGate — Daemon configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/coursegate/config.yaml
    3. User config:   ~/.coursegate/config.yaml
    4. Explicit config file passed to ``Settings.load()``
    5. Environment variables prefixed with COURSEGATE_

Call ``Settings.load()`` once at daemon startup and inject the instance
through FastAPI dependencies.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coursegate.security.models import Role
from coursegate.security.rate_limiter import RateLimitConfig, build_presets


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8040, ge=1024, le=65535)
    log_level: Literal["debug", "info", "warning", "error"] = "info"
    environment: Literal["development", "production"] = Field(
        default="production",
        description="In development, error responses include internal details.",
    )


class RateLimitPresetConfig(BaseModel):
    """Override for one of the named rate limit presets."""

    max_attempts: Annotated[int, Field(ge=1)]
    window_ms: Annotated[int, Field(ge=1)]
    lockout_duration_ms: Annotated[int, Field(ge=1)] | None = None
    message: str | None = None


class RateLimitSettings(BaseModel):
    enabled: bool = True
    sweep_interval_seconds: Annotated[int, Field(ge=1, le=86_400)] = Field(
        default=600,
        description="How often expired rate limit entries are purged from memory.",
    )
    presets: dict[
        Literal["login", "register", "password_reset", "password_reset_confirm", "api"],
        RateLimitPresetConfig,
    ] = Field(
        default_factory=dict,
        description="Per-preset overrides; presets not listed keep their built-in values.",
    )

    def effective_presets(self) -> dict[str, RateLimitConfig]:
        """Built-in presets with the configured overrides applied."""
        return build_presets(
            {
                name: RateLimitConfig(
                    max_attempts=cfg.max_attempts,
                    window_ms=cfg.window_ms,
                    lockout_duration_ms=cfg.lockout_duration_ms,
                    message=cfg.message,
                )
                for name, cfg in self.presets.items()
            }
        )


class AuditConfig(BaseModel):
    db_path: Path = Path("~/.coursegate/audit.db")
    export_limit: Annotated[int, Field(ge=1, le=100_000)] = 10_000
    page_size_max: Annotated[int, Field(ge=1, le=1000)] = 200


class SessionEntry(BaseModel):
    """Static bearer token -> principal mapping for the built-in session provider."""

    token: str = Field(min_length=16)
    id: str
    role: Role
    name: str = ""
    email: str = ""


class SessionConfig(BaseModel):
    tokens: list[SessionEntry] = Field(
        default_factory=list,
        description=(
            "Principals known to the daemon.  Production deployments replace the "
            "token provider with the platform's identity service."
        ),
    )


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COURSEGATE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    sessions: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("audit", mode="before")
    @classmethod
    def expand_audit_path(cls, v: object) -> object:
        if isinstance(v, dict) and isinstance(v.get("db_path"), str):
            v["db_path"] = Path(v["db_path"]).expanduser()
        return v

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/coursegate/config.yaml"),
            Path.home() / ".coursegate" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)

    @property
    def is_development(self) -> bool:
        return self.server.environment == "development"


# Module-level singleton, replaced by ``Settings.load()`` at daemon startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
