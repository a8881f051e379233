from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from sheetorm.query.state import PaginationMeta


def format_cell(value: Any) -> str:
    """Human-friendly rendering of a typed value."""
    if value is None:
        return "[dim]null[/dim]"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return f"{int(value)}"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def print_rows(
    table_name: str,
    records: Sequence[Mapping[str, Any]],
    columns: Optional[Sequence[str]] = None,
    meta: Optional[PaginationMeta] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render records as a rich table.

    Columns default to the keys of the first record. When pagination metadata
    is given it is shown as the table caption.
    """
    console = console or Console()

    if not records:
        console.print(f"[yellow]No rows in {table_name}.[/yellow]")
        return

    if meta is not None:
        caption = (
            f"Rows {meta['from']}-{meta['to']} of {meta['total']} "
            f"(page {meta['current_page']}/{meta['last_page']})"
        )
    else:
        caption = f"{len(records)} row(s)"

    table = Table(title=table_name, box=box.ROUNDED, caption=caption)
    headers = list(columns) if columns else list(records[0])
    for index, header in enumerate(headers):
        table.add_column(header, style="cyan" if index == 0 else None, no_wrap=index == 0)

    for record in records:
        table.add_row(*(format_cell(record.get(header)) for header in headers))

    console.print(table)


def print_validation_report(
    table_name: str,
    failures: Mapping[int, Dict[str, List[str]]],
    checked: int,
    console: Optional[Console] = None,
) -> None:
    """
    Render per-row validation failures keyed by storage row index.
    """
    console = console or Console()

    if not failures:
        console.print(f"[green]All {checked} row(s) in {table_name} are valid.[/green]")
        return

    table = Table(
        title=f"Validation failures in {table_name}",
        box=box.ROUNDED,
        caption=f"{len(failures)} of {checked} row(s) failed",
    )
    table.add_column("Row", justify="right", style="magenta")
    table.add_column("Column", style="cyan", no_wrap=True)
    table.add_column("Message", style="red")

    for row_index in sorted(failures):
        for column, messages in failures[row_index].items():
            for message in messages:
                table.add_row(str(row_index), column, message)

    console.print(table)


__all__ = ["format_cell", "print_rows", "print_validation_report"]
