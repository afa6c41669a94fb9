"""
CLI utility helpers: settings, model loading and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from recordspine.core.logging import configure_logging
from recordspine.core.settings import DatabaseBackend, DatabaseSettings
from recordspine.discovery import discover_models
from recordspine.mapping.descriptors import ColumnDescriptor, EntityDescriptor

console = Console()
err_console = Console(stderr=True)


# ── Settings / models ────────────────────────────────────────────────────


def load_settings(database: str | None = None) -> DatabaseSettings:
    """Settings from the environment; ``--database`` forces a SQLite file."""
    if database:
        settings = DatabaseSettings(backend=DatabaseBackend.SQLITE, sqlite_path=database)
    else:
        settings = DatabaseSettings()
    setup_logging(settings)
    return settings


def setup_logging(settings: DatabaseSettings | None = None) -> None:
    """Route library logs to stderr at the configured level."""
    settings = settings or DatabaseSettings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")


def load_models(module: str) -> list[type]:
    models = discover_models(module)
    if not models:
        err_console.print(f"[yellow]No table-mapped models found in[/yellow] {module}")
        raise typer.Exit(code=1)
    return models


# ── Output helpers ───────────────────────────────────────────────────────


def descriptor_dict(descriptor: EntityDescriptor) -> dict[str, Any]:
    columns = []
    for item in descriptor.fields:
        entry: dict[str, Any] = {
            "name": item.name,
            "field": item.field_name,
            "type": item.type.value,
            "nullable": item.nullable,
        }
        if isinstance(item, ColumnDescriptor):
            entry.update(identity=item.identity, unique=item.unique, length=item.length)
        else:
            entry["references"] = f"{item.target_table}({item.target_column})"
        columns.append(entry)
    return {
        "entity": descriptor.name,
        "table": descriptor.table,
        "identity": descriptor.identity_column,
        "columns": columns,
    }


def print_json(payload: Any) -> None:
    if hasattr(payload, "__dataclass_fields__"):
        payload = asdict(payload)
    console.print_json(json.dumps(payload, default=str))


def print_descriptor(descriptor: EntityDescriptor) -> None:
    table = Table(title=f"{descriptor.name} → {descriptor.table}")
    table.add_column("Column", style="cyan")
    table.add_column("Field")
    table.add_column("Type")
    table.add_column("Flags")
    for entry in descriptor_dict(descriptor)["columns"]:
        flags = []
        if entry.get("identity"):
            flags.append("identity")
        if entry.get("unique"):
            flags.append("unique")
        if entry["nullable"]:
            flags.append("nullable")
        if "references" in entry:
            flags.append(f"→ {entry['references']}")
        table.add_row(entry["name"], entry["field"], entry["type"], ", ".join(flags))
    console.print(table)


def fail(message: str) -> None:
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)
