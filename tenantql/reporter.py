from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from tenantql.casting import CastKind, TypedValue, format_value
from tenantql.schema.table import TableSchema


def format_cell(value: Any) -> str:
    """Render one result value for display."""
    if value is None:
        return "[dim]NULL[/dim]"
    if isinstance(value, datetime):
        return format_value(TypedValue(CastKind.DATETIME, value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def print_rows(
    rows: List[Mapping[str, Any]],
    title: str = "Results",
    paging: Optional[Dict[str, Any]] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render result rows as a rich table.

    Column order follows the first row. Paging metadata, when given, is shown
    as the table caption.
    """
    console = console or Console()

    if not rows:
        console.print("[yellow]No rows.[/yellow]")
        if paging:
            console.print(_paging_caption(paging))
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=_paging_caption(paging) if paging else f"{len(rows)} row(s)",
    )
    columns = list(rows[0].keys())
    for i, column in enumerate(columns):
        table.add_column(column, style="cyan" if i == 0 else None, no_wrap=i == 0)

    for row in rows:
        table.add_row(*(format_cell(row.get(c)) for c in columns))

    console.print(table)


def _paging_caption(paging: Dict[str, Any]) -> str:
    parts = [f"page {paging.get('page')}", f"per_page {paging.get('per_page')}"]
    if paging.get("total_rows") is not None:
        parts.append(f"{paging['total_rows']} row(s) in {paging.get('total_pages')} page(s)")
    if paging.get("has_more"):
        parts.append("more available")
    return " │ ".join(parts)


def print_schema(schema: TableSchema, console: Optional[Console] = None) -> None:
    """Render a resolved table schema: one line per column with its attributes."""
    console = console or Console()
    fillable = schema.fillable_set()
    reverse_aliases: Dict[str, List[str]] = {}
    for external, real in schema.aliases.items():
        reverse_aliases.setdefault(real, []).append(external)

    table = Table(
        title=f"{schema.table}\n[dim]primary key: {schema.primary_key} │ timestamps: {schema.timestamps}[/dim]",
        box=box.ROUNDED,
    )
    table.add_column("Column", style="cyan", no_wrap=True)
    table.add_column("Cast", style="magenta")
    table.add_column("Fillable", justify="center", style="green")
    table.add_column("Aliases", style="yellow")

    for column in schema.columns:
        kind = schema.cast_for(column)
        table.add_row(
            column,
            kind.value if kind else "-",
            "yes" if column in fillable else "",
            ", ".join(sorted(reverse_aliases.get(column, []))),
        )

    console.print(table)


def print_error(envelope: Dict[str, Any], console: Optional[Console] = None) -> None:
    """Print an error envelope (``ValidationError.to_dict()`` and friends) as JSON."""
    console = console or Console(stderr=True)
    console.print_json(json.dumps(envelope, default=str))


__all__ = ["format_cell", "print_error", "print_rows", "print_schema"]
