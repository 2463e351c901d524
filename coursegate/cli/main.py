"""CourseGate CLI — Entry point.

Usage:
    coursegate serve
    coursegate status
    coursegate roles list
    coursegate roles check <role> <permission>
    coursegate audit classify <action>...
    coursegate audit export --format csv --output audit.csv
    coursegate ratelimit presets
"""

from __future__ import annotations

import typer

from coursegate.cli.commands import audit, daemon, ratelimit, roles

app = typer.Typer(
    name="coursegate",
    help="CourseGate — Access control, rate limiting and audit trail for the course platform.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.command("serve")(daemon.serve)
app.command("status")(daemon.status)
app.add_typer(roles.app, name="roles")
app.add_typer(audit.app, name="audit")
app.add_typer(ratelimit.app, name="ratelimit")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
