"""CLI — Audit classification preview and offline export."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from coursegate.security.audit_store import AuditQuery, SQLiteAuditStore
from coursegate.security.classifier import classify_category, classify_severity
from coursegate.security.export import export_csv, export_json
from coursegate.security.models import AuditRecord

app = typer.Typer(help="Preview classification and export audit records.")
console = Console()

_SEVERITY_STYLE = {"INFO": "green", "WARNING": "yellow", "CRITICAL": "bold red"}


@app.command("classify")
def classify(
    actions: Annotated[list[str], typer.Argument(help="Action labels, e.g. USER_DELETED.")],
) -> None:
    """Show the severity and category an action label would be stored with."""
    table = Table(title="Audit classification")
    table.add_column("Action", style="cyan")
    table.add_column("Severity")
    table.add_column("Category", style="magenta")

    for action in actions:
        severity = classify_severity(action)
        style = _SEVERITY_STYLE[severity.value]
        table.add_row(
            action, f"[{style}]{severity.value}[/{style}]", classify_category(action).value
        )

    console.print(table)


async def _load(db: Path, query: AuditQuery) -> list[AuditRecord]:
    store = SQLiteAuditStore(db)
    await store.init()
    try:
        return await store.list(query)
    finally:
        await store.close()


@app.command("export")
def export(
    db: Annotated[
        Path, typer.Option("--db", help="Audit database path.")
    ] = Path("~/.coursegate/audit.db"),
    fmt: Annotated[str, typer.Option("--format", "-f", help="csv or json.")] = "csv",
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to this file instead of stdout.")
    ] = None,
    action: Annotated[str | None, typer.Option(help="Only this action label.")] = None,
    actor: Annotated[str | None, typer.Option(help="Only this actor id.")] = None,
    limit: Annotated[int, typer.Option(help="Maximum records.", min=1)] = 10_000,
) -> None:
    """Export audit records from a daemon database."""
    if fmt not in ("csv", "json"):
        console.print(f"[red]Unsupported format '{fmt}' (use csv or json).[/red]")
        raise typer.Exit(2)

    path = db.expanduser()
    if not path.exists():
        console.print(f"[red]Audit database not found: {path}[/red]")
        raise typer.Exit(1)

    records = asyncio.run(
        _load(path, AuditQuery(action=action, actor_id=actor, limit=limit))
    )
    text = (
        export_csv(records) if fmt == "csv" else json.dumps(export_json(records), indent=2)
    )

    if output is None:
        typer.echo(text, nl=False)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Exported {len(records)} records to {output}[/green]")
