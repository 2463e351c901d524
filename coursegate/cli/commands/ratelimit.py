"""CLI — Rate limit preset inspection."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from coursegate.security.rate_limiter import KNOWN_PREFIXES, RateLimitPresets

app = typer.Typer(help="Inspect rate limit presets.")
console = Console()


@app.callback()
def ratelimit_callback() -> None:
    pass


def _fmt_ms(ms: int | None) -> str:
    if ms is None:
        return "-"
    minutes = ms // 60_000
    if minutes >= 60 and minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes}m" if minutes else f"{ms}ms"


@app.command("presets")
def presets(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Apply overrides from this config.yaml."),
    ] = None,
) -> None:
    """Show the effective rate limit presets."""
    table_data = RateLimitPresets.all()
    if config is not None:
        from coursegate.config import Settings

        table_data = Settings.load(config_file=config).rate_limit.effective_presets()

    table = Table(title="Rate limit presets")
    table.add_column("Preset", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Window")
    table.add_column("Lockout")
    table.add_column("Message", style="dim")
    for name, cfg in table_data.items():
        table.add_row(
            name,
            str(cfg.max_attempts),
            _fmt_ms(cfg.window_ms),
            _fmt_ms(cfg.lockout_duration_ms),
            cfg.rejection_message,
        )
    console.print(table)
    console.print(f"Known key prefixes: {', '.join(KNOWN_PREFIXES)}")
