from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

import typer

from sheetorm.adapters.base import FIRST_DATA_ROW, StaticPermissionGate
from sheetorm.adapters.coercion import from_cell
from sheetorm.adapters.csv_store import CsvWorkbookAdapter
from sheetorm.config import get_settings
from sheetorm.core.database import Database
from sheetorm.errors import ORMError
from sheetorm.query.builder import QueryBuilder
from sheetorm.query.state import ASC, DESC
from sheetorm.reporter import print_rows, print_validation_report
from sheetorm.schema.loader import load_schemas
from sheetorm.utils.logging import configure_logging

app = typer.Typer(help="sheetorm CLI: query and validate a CSV workbook.")

STORE_OPTION = typer.Option(None, "--store", help="Workbook directory (default from settings).")
SCHEMA_OPTION = typer.Option(None, "--schema", help="JSON schema document (default from settings).")


def _open_database(store: Optional[str], schema: Optional[str]) -> Database:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs, force=False)
    schema_file = schema or settings.schema_file
    schemas = load_schemas(schema_file) if schema_file else {}
    adapter = CsvWorkbookAdapter(store or settings.store_path, schemas)
    gate = StaticPermissionGate(can_write=settings.write_access)
    return Database(adapter, schemas, gate=gate, settings=settings)


def _parse_where(db: Database, table: str, condition: str) -> tuple[str, Any]:
    column, separator, raw = condition.partition("=")
    if not separator or not column.strip():
        raise typer.BadParameter(f"expected column=value, got {condition!r}", param_hint="--where")
    column = column.strip()
    schema = db.schemas.get(table)
    definition = schema.columns.get(column) if schema is not None else None
    return column, from_cell(raw, definition) if definition is not None else raw


def _parse_order(condition: str) -> tuple[str, str]:
    column, _, direction = condition.partition(":")
    direction = (direction or ASC).lower()
    if direction not in (ASC, DESC):
        raise typer.BadParameter(f"direction must be asc or desc, got {direction!r}", param_hint="--order-by")
    return column, direction


def _fail(exc: Exception) -> typer.Exit:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"store={settings.store_path} schema={settings.schema_file or '-'} | "
        f"cache={'on' if settings.cache_enabled else 'off'} ttl={settings.cache_ttl_seconds:g}s | "
        f"per_page={settings.default_per_page} max_per_page={settings.max_per_page} | "
        f"write_access={settings.write_access} env={settings.app_env}"
    )


@app.command()
def tables(
    store: Optional[str] = STORE_OPTION,
    schema: Optional[str] = SCHEMA_OPTION,
) -> None:
    """
    List the tables present in the workbook.
    """
    try:
        db = _open_database(store, schema)
        names = asyncio.run(db.adapter.table_names())
    except ORMError as exc:
        raise _fail(exc) from exc

    if not names:
        typer.echo("No tables found.")
        return
    for name in names:
        marker = "" if name in db.schemas else " (no schema)"
        typer.echo(f"{name}{marker}")


@app.command()
def init(
    store: Optional[str] = STORE_OPTION,
    schema: Optional[str] = SCHEMA_OPTION,
) -> None:
    """
    Create every table declared in the schema that the workbook lacks.
    """
    try:
        db = _open_database(store, schema)
        created = asyncio.run(db.create_missing_tables())
    except ORMError as exc:
        raise _fail(exc) from exc
    typer.echo(f"Created {len(created)} table(s): {', '.join(created) or '-'}")


@app.command()
def show(
    table: str = typer.Argument(..., help="Table to query."),
    where: List[str] = typer.Option([], "--where", "-w", help="Equality filter column=value (repeatable)."),
    order_by: List[str] = typer.Option([], "--order-by", "-o", help="Sort key column[:asc|desc] (repeatable)."),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=0, help="Maximum rows to return."),
    offset: Optional[int] = typer.Option(None, "--offset", min=0, help="Rows to skip."),
    page: Optional[int] = typer.Option(None, "--page", "-p", min=1, help="Page number (enables pagination)."),
    per_page: Optional[int] = typer.Option(None, "--per-page", min=1, help="Rows per page."),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    store: Optional[str] = STORE_OPTION,
    schema: Optional[str] = SCHEMA_OPTION,
) -> None:
    """
    Query a table with optional filters, sorting and pagination.
    """
    try:
        db = _open_database(store, schema)
        query: QueryBuilder = db.table(table)
        for condition in where:
            column, value = _parse_where(db, table, condition)
            query.where(column, value)
        for key in order_by:
            query.order_by(*_parse_order(key))
        if limit is not None:
            query.limit(limit)
        if offset is not None:
            query.offset(offset)

        meta = None
        if page is not None or per_page is not None:
            result = asyncio.run(query.paginate(page or 1, per_page))
            records, meta = result["data"], result["meta"]
        else:
            records = asyncio.run(query.get())
    except ORMError as exc:
        raise _fail(exc) from exc

    if json_output:
        payload: Dict[str, Any] = {"data": records}
        if meta is not None:
            payload["meta"] = meta
        typer.echo(json.dumps(payload, indent=2, default=str))
        return

    schema_def = db.schemas.get(table)
    columns = list(schema_def.column_names) if schema_def is not None else None
    print_rows(table, records, columns=columns, meta=meta)


@app.command()
def validate(
    table: str = typer.Argument(..., help="Table to validate."),
    store: Optional[str] = STORE_OPTION,
    schema: Optional[str] = SCHEMA_OPTION,
) -> None:
    """
    Validate every stored row against the table schema. Exits with code 1 when
    any row fails.
    """
    try:
        db = _open_database(store, schema)
        validator = db.validator(table)
        rows = asyncio.run(db.executor.fetch_rows(table))
    except ORMError as exc:
        raise _fail(exc) from exc

    failures: Dict[int, Dict[str, List[str]]] = {}
    for position, row in enumerate(rows):
        others = rows[:position] + rows[position + 1 :]
        errors = validator.errors(row, others)
        if errors:
            failures[position + FIRST_DATA_ROW] = errors

    print_validation_report(table, failures, checked=len(rows))
    if failures:
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
