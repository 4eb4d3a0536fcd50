"""crmcore CLI - inspect the CRM data core from a terminal."""

import asyncio
import json
import logging
import uuid
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from .config import settings
from .errors import CRMError

app = typer.Typer(
    name="crmcore",
    help="CRM relational data core - schema, records and audit trail",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _core():
    from .core import CRMCore

    return CRMCore()


def _parse_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        console.print(f"[red]Not a valid id: {raw}[/red]")
        raise typer.Exit(1)


def _run(coro) -> Any:
    try:
        return asyncio.run(coro)
    except CRMError as exc:
        console.print(f"[red]{type(exc).__name__}: {exc}[/red]")
        raise typer.Exit(1)


def _as_dict(obj) -> dict[str, Any]:
    return {column.key: getattr(obj, column.key) for column in obj.__table__.columns}


@app.command("init-db")
def init_db_cmd():
    """Create all tables in the configured database."""
    from .database import init_db

    asyncio.run(init_db())
    console.print(f"[green]Tables created in {settings.database_url}[/green]")


@app.command("show")
def show(
    kind: str = typer.Argument(..., help="Entity kind, e.g. deal"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
    include_deleted: bool = typer.Option(False, "--include-deleted", help="Show tombstoned records"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Show one record."""
    obj = _run(_core().get_entity(kind, _parse_id(entity_id), include_deleted=include_deleted))
    data = _as_dict(obj)

    if json_output:
        console.print_json(json.dumps(data, default=str))
        return

    table = Table(title=f"{kind} {entity_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    for key, value in data.items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@app.command("audit")
def audit(
    kind: str = typer.Argument(..., help="Entity kind, e.g. deal"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Print the audit trail of one record, oldest first."""
    records = _run(_core().audit_trail(kind, _parse_id(entity_id)).all())

    if json_output:
        console.print_json(json.dumps([_as_dict(r) for r in records], default=str))
        return

    table = Table(title=f"Audit trail ({len(records)})")
    table.add_column("#", style="dim")
    table.add_column("When", style="white")
    table.add_column("Action", style="cyan")
    table.add_column("Actor", style="yellow")
    table.add_column("Changes", style="green")
    for r in records:
        changes = ", ".join(f"{k}: {old} -> {new}" for k, (old, new) in r.field_changes.items())
        if r.description:
            changes = f"{changes} ({r.description})" if changes else r.description
        table.add_row(
            str(r.seq),
            r.recorded_at.isoformat(timespec="seconds"),
            r.action,
            str(r.actor_id) if r.actor_id else "-",
            changes or "-",
        )
    console.print(table)


@app.command("stats")
def stats(
    pipeline_id: str = typer.Argument(..., help="Pipeline ID"),
):
    """Open deals per stage and weighted pipeline value."""
    core = _core()
    pid = _parse_id(pipeline_id)

    async def _collect():
        return await core.pipeline_stats(pid), await core.weighted_value(pid)

    counts, weighted = _run(_collect())

    table = Table(title="Open deals by stage")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Stage", style="cyan")
    table.add_column("Deals", style="green", justify="right")
    for row in counts:
        table.add_row(str(row.order), row.name, str(row.open_deals))
    console.print(table)
    console.print(f"Weighted value: [bold]{weighted:,.2f}[/bold]")


if __name__ == "__main__":
    app()
