"""
Root Typer application for the recordspine CLI.

Commands::

    recordspine describe game.models            # descriptors as a table
    recordspine migrate game.models --plan      # DDL preview, nothing executed
    recordspine migrate game.models --json      # apply, print MigrationResult

Connection settings come from ``RECORDSPINE_*`` environment variables;
``--database PATH`` targets a SQLite file instead.
"""

from __future__ import annotations

import typer
from typer import Typer

from recordspine import __version__
from recordspine.cli.utils import (
    console,
    descriptor_dict,
    err_console,
    fail,
    load_models,
    load_settings,
    print_descriptor,
    print_json,
    setup_logging,
)
from recordspine.core.adapters import get_adapter
from recordspine.core.errors import RecordSpineError, SchemaError
from recordspine.mapping.registry import MetadataRegistry
from recordspine.schema.synchronizer import SchemaSynchronizer

app = Typer(
    name="recordspine",
    help="recordspine: dataclass models, additive schema sync, active-record persistence.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"recordspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """recordspine CLI: inspect models and synchronize schemas."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def describe(
    module: str = typer.Argument(..., help="Module or package containing the models"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the table layout derived from each model."""
    setup_logging()
    try:
        models = load_models(module)
        descriptors = MetadataRegistry().register(*models)
    except RecordSpineError as e:
        fail(e.message)
        return

    if json_out:
        print_json([descriptor_dict(d) for d in descriptors])
        return
    for descriptor in descriptors:
        print_descriptor(descriptor)


@app.command()
def migrate(
    module: str = typer.Argument(..., help="Module or package containing the models"),
    plan_only: bool = typer.Option(False, "--plan", help="Preview DDL without executing it"),
    database: str | None = typer.Option(None, "--database", "-d", help="SQLite database path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create missing tables and append missing columns."""
    try:
        settings = load_settings(database)
        models = load_models(module)
        descriptors = MetadataRegistry().register(*models)
    except RecordSpineError as e:
        fail(e.message)
        return

    try:
        with get_adapter(settings) as adapter:
            synchronizer = SchemaSynchronizer(adapter)
            if plan_only:
                plans = synchronizer.plan_all(descriptors)
                if json_out:
                    print_json([
                        {"table": p.table, "action": p.action, "columns": list(p.columns),
                         "statements": list(p.statements)}
                        for p in plans
                    ])
                    return
                for p in plans:
                    if p.is_empty:
                        console.print(f"[dim]{p.table}: up to date[/dim]")
                    for statement in p.statements:
                        console.print(f"{statement};", markup=False, highlight=False)
                return

            result = synchronizer.migrate(descriptors)
    except SchemaError as e:
        if json_out and e.result is not None:
            print_json(e.result)
        for table, error in (e.result.errors.items() if e.result else ()):
            err_console.print(f"[red]{table}[/red]: {error}", highlight=False)
        fail(e.message)
        return
    except RecordSpineError as e:
        fail(e.message)
        return

    if json_out:
        print_json(result)
        return
    console.print(
        f"[green]✓[/green] {len(result.applied)} statement(s): "
        f"created {result.created or '-'}, altered {result.altered or '-'}"
    )
