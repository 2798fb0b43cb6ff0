"""Preference centre CLI tool (prefsctl)."""

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError as SettingsValidationError

from mailprefs.core.config import get_settings
from mailprefs.core.exceptions import PreferenceCentreError
from mailprefs.db.session import build_engine, build_session_factory, init_db
from mailprefs.services.actions import KNOWN_ACTIONS, with_summary_defaults
from mailprefs.services.audit_service import SqlAuditStore
from mailprefs.services.export_service import render_csv

DEFAULT_DATABASE_URL = "sqlite:///./email_processing.db"

app = typer.Typer(name="prefsctl", help="Email preference centre CLI")
db_app = typer.Typer(help="Database management commands")
records_app = typer.Typer(help="Inspect, export and clear the audit log")
app.add_typer(db_app, name="db")
app.add_typer(records_app, name="records")

DatabaseUrl = typer.Option(DEFAULT_DATABASE_URL, "--database-url", envvar="DATABASE_URL", help="SQLAlchemy URL")
DisplayTimezone = typer.Option("Australia/Sydney", "--timezone", envvar="DISPLAY_TIMEZONE", help="Display timezone")


def _store(database_url: str, timezone: str) -> SqlAuditStore:
    engine = build_engine(database_url)
    init_db(engine)
    return SqlAuditStore(build_session_factory(engine), timezone)


def _fail(message: str):
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@db_app.command("init")
def db_init(database_url: str = DatabaseUrl):
    """Create the audit table if it doesn't exist."""
    try:
        init_db(build_engine(database_url))
    except PreferenceCentreError as exc:
        _fail(exc.message)
    typer.echo("Audit table ready")


@records_app.command("summary")
def records_summary(database_url: str = DatabaseUrl, timezone: str = DisplayTimezone):
    """Print record counts per action."""
    try:
        summary = with_summary_defaults(_store(database_url, timezone).summarize())
    except PreferenceCentreError as exc:
        _fail(exc.message)
    for action, count in sorted(summary.items()):
        typer.echo(f"{action:<22}{count}")


@records_app.command("list")
def records_list(
    action: Optional[str] = typer.Option(None, help="Only show this action tag"),
    database_url: str = DatabaseUrl,
    timezone: str = DisplayTimezone,
):
    """Print records, newest first."""
    try:
        store = _store(database_url, timezone)
        records = store.list_by_action(action) if action else store.list_all()
    except PreferenceCentreError as exc:
        _fail(exc.message)
    for record in records:
        typer.echo(f"{record.formatted_date}  {record.action:<20}{record.email}")
    typer.echo(f"{len(records)} record(s)")


@records_app.command("export")
def records_export(
    action: str = typer.Argument(..., help=f"One of {', '.join(KNOWN_ACTIONS)}"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File to write (default: stdout)"),
    database_url: str = DatabaseUrl,
    timezone: str = DisplayTimezone,
):
    """Export one action's records as CSV."""
    try:
        records = _store(database_url, timezone).list_by_action(action)
    except PreferenceCentreError as exc:
        _fail(exc.message)
    content = render_csv(records)
    if output is None:
        typer.echo(content, nl=False)
    else:
        output.write_text(content, encoding="utf-8")
        typer.echo(f"Wrote {len(records)} record(s) to {output}")


@records_app.command("clear")
def records_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    database_url: str = DatabaseUrl,
    timezone: str = DisplayTimezone,
):
    """Delete every audit record (DANGER)."""
    if not yes:
        confirm = typer.confirm("This permanently deletes every audit record. Continue?")
        if not confirm:
            raise typer.Abort()
    try:
        deleted = _store(database_url, timezone).clear()
    except PreferenceCentreError as exc:
        _fail(exc.message)
    typer.echo(f"Cleared {deleted} record(s)")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: Optional[int] = typer.Option(None, help="Port (default: the PORT setting)"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the web server."""
    import uvicorn

    if port is None:
        try:
            port = get_settings().PORT
        except SettingsValidationError as exc:
            _fail(f"Invalid configuration: {exc}")
    uvicorn.run("mailprefs.main:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
