"""CLI — Inspect the role -> capability table."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from coursegate.security.models import Role
from coursegate.security.permissions import ROLE_PERMISSIONS, has_permission

app = typer.Typer(help="Inspect roles and their capabilities.")
console = Console()


@app.command("list")
def list_roles(
    role: str | None = typer.Option(None, "--role", "-r", help="Only show this role."),
) -> None:
    """List every role and the capabilities it grants."""
    table = Table(title="Role capabilities")
    table.add_column("Role", style="cyan")
    table.add_column("Capabilities", style="green")

    for r, caps in ROLE_PERMISSIONS.items():
        if role is not None and r.value != role.upper():
            continue
        table.add_row(r.value, ", ".join(sorted(caps)))

    console.print(table)


@app.command("check")
def check(
    role: str = typer.Argument(..., help="Role name, e.g. INSTRUCTOR."),
    permission: str = typer.Argument(..., help="Capability, e.g. grade_submissions."),
) -> None:
    """Exit 0 when ROLE holds PERMISSION, 1 otherwise."""
    if role not in {r.value for r in Role}:
        console.print(f"[yellow]Unknown role '{role}': no capabilities.[/yellow]")
    if has_permission(role, permission):
        console.print(f"[green]{role} has '{permission}'[/green]")
        return
    console.print(f"[red]{role} does not have '{permission}'[/red]")
    raise typer.Exit(1)
