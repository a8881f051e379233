"""
Cell <-> typed value coercion.

Stores hold every cell as text. Adapters convert a raw cell into a typed value
with `from_cell` when reading and back into text with `to_cell` when writing,
using the column's declared type. Columns without a declaration pass through
as strings.
"""

from __future__ import annotations

import copy
import json
import math
from datetime import date, datetime
from typing import Any, List, Optional

from sheetorm.schema.types import ColumnDefinition, ColumnType

TRUE_CELLS = frozenset({"true", "1", "yes"})
TRUE_CELL = "TRUE"
FALSE_CELL = "FALSE"


def default_value(column: ColumnDefinition) -> Any:
    """Value an empty cell reads as on a non-nullable column."""
    return copy.deepcopy(column.default)


def _parse_number(raw: str) -> Any:
    try:
        number = float(raw)
    except ValueError:
        return math.nan
    if number.is_integer() and "." not in raw and "e" not in raw.lower():
        return int(number)
    return number


def _parse_datetime(raw: str) -> Any:
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return raw


def _parse_date(raw: str) -> Any:
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return raw


def _parse_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _parse_array(raw: str) -> List[Any]:
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return parsed
    return [item.strip() for item in raw.split(",") if item.strip()]


def from_cell(raw: Optional[str], column: Optional[ColumnDefinition]) -> Any:
    """
    Convert a raw cell into the column's typed value.

    Numbers parse as floating point (integral text such as ``"12"`` reads as
    ``int``; unparsable text reads as NaN). Booleans accept ``true``, ``1``
    and ``yes`` in any case. Datetimes and dates read from ISO-8601 text and
    fall back to the raw text when it does not parse. Arrays read as JSON and
    fall back to splitting on commas.
    """
    if column is None:
        return raw if raw is not None else None

    if raw is None or raw == "":
        return None if column.nullable else default_value(column)

    text = raw.strip()
    kind = column.type
    if kind is ColumnType.NUMBER:
        return _parse_number(text)
    if kind is ColumnType.BOOLEAN:
        return text.lower() in TRUE_CELLS
    if kind is ColumnType.DATETIME:
        return _parse_datetime(text)
    if kind is ColumnType.DATE:
        return _parse_date(text)
    if kind is ColumnType.JSON:
        return _parse_json(text)
    if kind is ColumnType.ARRAY:
        return _parse_array(text)
    return raw


def to_cell(value: Any, column: Optional[ColumnDefinition] = None) -> str:
    """
    Convert a typed value into cell text.

    None becomes an empty cell, booleans are written as ``TRUE``/``FALSE`` and
    integral floats lose their trailing ``.0``.
    """
    if value is None:
        return ""

    if column is not None and column.type in (ColumnType.JSON, ColumnType.ARRAY):
        if isinstance(value, tuple):
            value = list(value)
        return json.dumps(value, default=str)

    if isinstance(value, bool):
        return TRUE_CELL if value else FALSE_CELL
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return "" if math.isnan(value) else repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(list(value) if isinstance(value, tuple) else value, default=str)
    return str(value)


def parse_numeric_cell(raw: Optional[str]) -> Optional[float]:
    """Numeric value of a raw cell, or None when it is empty or not a number."""
    if raw is None or not raw.strip():
        return None
    try:
        number = float(raw)
    except ValueError:
        return None
    return None if math.isnan(number) else number


__all__ = [
    "TRUE_CELL",
    "FALSE_CELL",
    "default_value",
    "from_cell",
    "to_cell",
    "parse_numeric_cell",
]
