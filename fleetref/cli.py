"""FleetRef CLI - master data administration.

Commands:
- init: Create tables and seed the default aircraft type rules
- import: Validate (and optionally commit) a customer or aircraft file
- canonicalize: Resolve a raw aircraft type string with the current rules
- rules / rules-reset: Inspect or restore the aircraft type rules
- history: Page through the import audit log
- confirm: Mark customers or aircraft as confirmed
- export: Write all customers or aircraft to CSV
- web serve: Run the HTTP API
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from fleetref.canonical import rules_repository
from fleetref.canonical.rules_repository import ConfigurationError
from fleetref.config import get_config
from fleetref.core.logging import configure_logging
from fleetref.db.connection import close_db, get_engine, get_session, init_db
from fleetref.db.models import Base
from fleetref.db.snapshots import load_snapshot
from fleetref.models import (
    CommitOptions,
    ConflictMode,
    DataType,
    ImportChannel,
    InputFormat,
    ValidationResult,
)
from fleetref.reconciliation.admin import (
    confirm_aircraft,
    confirm_customers,
    export_aircraft_csv,
    export_customers_csv,
    list_import_history,
)
from fleetref.reconciliation.committer import commit_import
from fleetref.reconciliation.validator import validate_content

app = typer.Typer(
    name="fleetref",
    help="FleetRef - customer and aircraft reference data imports",
    no_args_is_help=True,
)
web_cli = typer.Typer(help="Web API")
app.add_typer(web_cli, name="web")

console = Console()


@app.callback()
def main():
    configure_logging()


def _data_type(value: str) -> DataType:
    value = value.lower()
    if value == "customers":
        value = DataType.CUSTOMER.value
    try:
        return DataType(value)
    except ValueError:
        raise typer.BadParameter(f"Unknown data type: {value}") from None


def _input_format(path: Path, fmt: str | None) -> InputFormat:
    value = (fmt or path.suffix.lstrip(".")).lower()
    try:
        return InputFormat(value)
    except ValueError:
        raise typer.BadParameter(f"Cannot infer format from '{path.name}', pass --format") from None


def _print_validation(result: ValidationResult) -> None:
    summary = result.summary
    table = Table(title=f"Validation ({result.data_type.value})")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Records", str(summary.total))
    table.add_row("Rejected rows", str(result.rows_rejected))
    table.add_row("To add", str(summary.to_add))
    table.add_row("To update", str(summary.to_update))
    table.add_row("Conflicts", str(summary.conflicts))
    if summary.invalid_operators is not None:
        table.add_row("Unmatched operators", str(summary.invalid_operators))
    console.print(table)

    for match in result.details.fuzzy_matches or []:
        console.print(
            f'  [cyan]~[/cyan] {match.registration}: "{match.raw_operator}" -> '
            f'"{match.matched_customer}" ({match.confidence}%)'
        )
    for warning in result.details.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")
    for error in result.details.errors:
        console.print(f"  [red]✗[/red] {error}")


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
    seed: bool = typer.Option(True, "--seed/--no-seed", help="Load default aircraft type rules"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        if drop:
            console.print("[yellow]Dropping existing tables...[/yellow]")
            async with get_engine().begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        console.print("[green]Creating tables...[/green]")
        await init_db()

        if seed:
            async with get_session() as session:
                count = await rules_repository.reset_to_defaults(session)
            console.print(f"[green]Seeded {count} aircraft type rules[/green]")
        await close_db()

    try:
        asyncio.run(_init())
    except ConfigurationError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(1) from e
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="import")
def import_cmd(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV or JSON file"),
    data_type: str = typer.Option(..., "--type", "-t", help="customer or aircraft"),
    fmt: str | None = typer.Option(None, "--format", help="csv or json (default: file suffix)"),
    mode: ConflictMode | None = typer.Option(None, "--mode", help="Conflict mode override"),
    commit: bool = typer.Option(False, "--commit", help="Commit after validating"),
    override: bool = typer.Option(False, "--override", help="Commit despite validation errors"),
    user: str = typer.Option("cli", "--by", help="User recorded on the audit log"),
):
    """Validate an import file; with --commit, write it."""
    kind = _data_type(data_type)
    input_format = _input_format(file, fmt)
    content = file.read_text(encoding="utf-8-sig")
    console.print(f"[bold]Importing {kind.value} records:[/bold] {file}")

    async def _import() -> bool:
        async with get_session() as session:
            snapshot = await load_snapshot(session, kind)
        result = validate_content(content, input_format, kind, snapshot, mode)
        _print_validation(result)

        if not commit:
            await close_db()
            return result.valid

        options = CommitOptions(
            source=ImportChannel.FILE,
            format=input_format,
            file_name=file.name,
            user_id=user,
            override_conflicts=override,
            conflict_mode=mode,
        )
        async with get_session() as session:
            outcome = await commit_import(session, result, options)
        await close_db()

        if outcome.success:
            s = outcome.summary
            console.print(
                f"\n[bold green]✓[/bold green] Committed: {s.added} added, "
                f"{s.updated} updated, {s.skipped} skipped (log {outcome.log_id})"
            )
        else:
            console.print(f"\n[bold red]✗[/bold red] Commit failed (log {outcome.log_id})")
            for error in outcome.errors or []:
                console.print(f"  {error}", style="dim")
        return outcome.success

    if not asyncio.run(_import()):
        raise typer.Exit(1)


@app.command()
def canonicalize(
    raw_type: str = typer.Argument(..., help="Raw aircraft type, e.g. '777-200F'"),
    registration: str | None = typer.Option(None, "--registration", "-r"),
):
    """Show which canonical family a raw type resolves to."""

    async def _check():
        async with get_session() as session:
            result = await rules_repository.test_raw_type(session, raw_type, registration)
        await close_db()
        return result

    result = asyncio.run(_check())
    console.print(
        f"[cyan]{result.raw}[/cyan] -> [bold]{result.canonical.value}[/bold] "
        f"({result.confidence.value}, rule {result.rule_id})"
    )


@app.command()
def rules(
    active_only: bool = typer.Option(False, "--active-only", help="Hide inactive rules"),
):
    """List aircraft type rules in evaluation order."""

    async def _list():
        async with get_session() as session:
            items = await rules_repository.list_rules(session, include_inactive=not active_only)
        await close_db()
        return items

    table = Table(title="Aircraft Type Rules")
    table.add_column("ID", justify="right")
    table.add_column("Pattern", style="cyan")
    table.add_column("Canonical", style="green")
    table.add_column("Priority", justify="right")
    table.add_column("Target")
    table.add_column("Active")
    for rule in asyncio.run(_list()):
        table.add_row(
            str(rule.id),
            rule.pattern,
            rule.canonical_type.value,
            str(rule.priority),
            rule.target.value if rule.target else "auto",
            "yes" if rule.is_active else "no",
        )
    console.print(table)


@app.command(name="rules-reset")
def rules_reset():
    """Replace all aircraft type rules with the shipped defaults."""

    async def _reset():
        async with get_session() as session:
            count = await rules_repository.reset_to_defaults(session)
        await close_db()
        return count

    try:
        count = asyncio.run(_reset())
    except ConfigurationError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(1) from e
    console.print(f"[bold green]✓[/bold green] Restored {count} rules")


@app.command()
def history(
    page: int = typer.Option(1, "--page", min=1),
    page_size: int | None = typer.Option(None, "--page-size", min=1),
    data_type: str | None = typer.Option(None, "--type", "-t", help="customer or aircraft"),
):
    """Show the import audit log, newest first."""
    kind = _data_type(data_type) if data_type else None

    async def _history():
        async with get_session() as session:
            result = await list_import_history(session, page, page_size, kind)
        await close_db()
        return result

    result = asyncio.run(_history())
    table = Table(title=f"Import History (page {result.page}/{max(result.total_pages, 1)})")
    table.add_column("When", style="cyan")
    table.add_column("Type")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Added", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("By")
    for entry in result.entries:
        status = "[green]success[/green]" if entry.status == "success" else "[red]failed[/red]"
        table.add_row(
            entry.imported_at.strftime("%Y-%m-%d %H:%M"),
            entry.data_type.value,
            entry.file_name or "-",
            status,
            str(entry.records_added),
            str(entry.records_updated),
            str(entry.records_skipped),
            entry.imported_by,
        )
    console.print(table)


@app.command()
def confirm(
    data_type: str = typer.Argument(..., help="customer or aircraft"),
    keys: list[str] = typer.Argument(..., help="Customer names or registrations"),
    user: str = typer.Option("cli", "--by", help="User recorded on the rows"),
):
    """Mark entities as confirmed so imports cannot silently overwrite them."""
    kind = _data_type(data_type)

    async def _confirm():
        async with get_session() as session:
            if kind == DataType.CUSTOMER:
                count = await confirm_customers(session, keys, user)
            else:
                count = await confirm_aircraft(session, keys, user)
        await close_db()
        return count

    count = asyncio.run(_confirm())
    console.print(f"[bold green]✓[/bold green] Confirmed {count} of {len(keys)}")


@app.command()
def export(
    data_type: str = typer.Argument(..., help="customer or aircraft"),
    output: Path | None = typer.Option(None, "--out", "-o", help="Output CSV file"),
):
    """Export all customers or aircraft as CSV."""
    kind = _data_type(data_type)

    async def _export():
        async with get_session() as session:
            if kind == DataType.CUSTOMER:
                content = await export_customers_csv(session)
            else:
                content = await export_aircraft_csv(session)
        await close_db()
        return content

    content = asyncio.run(_export())
    if output is None:
        typer.echo(content, nl=False)
        return
    output.write_text(content, encoding="utf-8")
    console.print(f"[bold green]✓[/bold green] Wrote {output}")


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI service."""
    import uvicorn

    typer.echo(f"Starting FleetRef API on http://{host}:{port}")
    uvicorn.run("fleetref.web.app:app", host=host, port=port, reload=reload, workers=1)


if __name__ == "__main__":
    app()
