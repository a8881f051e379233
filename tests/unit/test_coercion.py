from __future__ import annotations

import math
from datetime import date, datetime, timezone

import pytest

from sheetorm.adapters.coercion import from_cell, parse_numeric_cell, to_cell
from sheetorm.adapters.memory import InMemoryAdapter
from sheetorm.errors import StorageError
from sheetorm.schema.types import ColumnDefinition, ColumnType, Schema

NUMBER = ColumnDefinition(type=ColumnType.NUMBER)
FLAG = ColumnDefinition(type=ColumnType.BOOLEAN, default=False)
ARRAY = ColumnDefinition(type=ColumnType.ARRAY, nullable=True)
DOCUMENT = ColumnDefinition(type=ColumnType.JSON, nullable=True)

ITEMS_SCHEMA = Schema(
    columns={
        "id": ColumnDefinition(type=ColumnType.NUMBER, is_primary=True, auto_increment=True),
        "label": ColumnDefinition(),
        "in_stock": FLAG,
        "tags": ARRAY,
    }
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("12", 12), ("12.5", 12.5), ("-3", -3), (" 7 ", 7), ("1e3", 1000.0)],
)
def test_number_cells(raw: str, expected: float) -> None:
    value = from_cell(raw, NUMBER)

    assert value == expected
    assert type(value) is type(expected)


def test_unparsable_number_reads_as_nan() -> None:
    assert math.isnan(from_cell("n/a", NUMBER))


@pytest.mark.parametrize("raw", ["TRUE", "true", "1", "Yes"])
def test_truthy_boolean_cells(raw: str) -> None:
    assert from_cell(raw, FLAG) is True


@pytest.mark.parametrize("raw", ["FALSE", "0", "no", "maybe"])
def test_falsy_boolean_cells(raw: str) -> None:
    assert from_cell(raw, FLAG) is False


def test_empty_cells_use_nullability_then_default() -> None:
    assert from_cell("", FLAG) is False
    assert from_cell("", ARRAY) is None
    assert from_cell("", NUMBER) is None


def test_undeclared_columns_pass_through() -> None:
    assert from_cell("42", None) == "42"
    assert from_cell(None, None) is None


def test_arrays_read_json_or_comma_separated_text() -> None:
    assert from_cell('["a", "b"]', ARRAY) == ["a", "b"]
    assert from_cell("a, b,,c", ARRAY) == ["a", "b", "c"]


def test_json_and_temporal_cells() -> None:
    stamp = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    assert from_cell('{"a": 1}', DOCUMENT) == {"a": 1}
    assert from_cell("{broken", DOCUMENT) == "{broken"
    assert from_cell(stamp.isoformat(), ColumnDefinition(type=ColumnType.DATETIME)) == stamp
    assert from_cell("2024-05-01", ColumnDefinition(type=ColumnType.DATE)) == date(2024, 5, 1)
    assert from_cell("soon", ColumnDefinition(type=ColumnType.DATETIME)) == "soon"


def test_to_cell() -> None:
    assert to_cell(None) == ""
    assert to_cell(True) == "TRUE"
    assert to_cell(False) == "FALSE"
    assert to_cell(3.0) == "3"
    assert to_cell(2.5) == "2.5"
    assert to_cell(date(2024, 5, 1)) == "2024-05-01"
    assert to_cell(("a", "b"), ARRAY) == '["a", "b"]'
    assert to_cell({"a": 1}) == '{"a": 1}'


def test_parse_numeric_cell() -> None:
    assert parse_numeric_cell("4") == 4.0
    assert parse_numeric_cell("") is None
    assert parse_numeric_cell("abc") is None
    assert parse_numeric_cell("nan") is None


@pytest.fixture
def store() -> InMemoryAdapter:
    adapter = InMemoryAdapter({"items": ITEMS_SCHEMA})
    adapter.seed(
        "items",
        [
            {"id": 1, "label": "Pen", "in_stock": True, "tags": ["office"]},
            {"id": "n/a", "label": "Ghost"},
            {"id": 4, "label": "Ink", "in_stock": False},
        ],
    )
    return adapter


def test_seeded_cells_are_text(store: InMemoryAdapter) -> None:
    assert store.raw_rows("items") == [
        ["id", "label", "in_stock", "tags"],
        ["1", "Pen", "TRUE", '["office"]'],
        ["n/a", "Ghost", "", ""],
        ["4", "Ink", "FALSE", ""],
    ]


@pytest.mark.asyncio
async def test_fetch_table_coerces_by_schema(store: InMemoryAdapter) -> None:
    rows = await store.fetch_table("items")

    assert rows[0] == {"id": 1, "label": "Pen", "in_stock": True, "tags": ["office"]}
    assert rows[2]["in_stock"] is False
    assert rows[1]["in_stock"] is False


@pytest.mark.asyncio
async def test_max_numeric_value_ignores_non_numeric_cells(store: InMemoryAdapter) -> None:
    assert await store.max_numeric_value("items", "id") == 4
    assert await store.max_numeric_value("items", "label") == 0
    assert await store.max_numeric_value("items", "missing") == 0


@pytest.mark.asyncio
async def test_delete_rows_removes_bottom_up(store: InMemoryAdapter) -> None:
    await store.delete_rows("items", [2, 4])

    assert [row[1] for row in store.raw_rows("items")] == ["label", "Ghost"]


@pytest.mark.asyncio
async def test_row_indices_are_checked(store: InMemoryAdapter) -> None:
    with pytest.raises(StorageError):
        await store.delete_rows("items", [1])
    with pytest.raises(StorageError):
        await store.update_rows("items", [(5, {"label": "Nope"})])

    assert len(store.raw_rows("items")) == 4


@pytest.mark.asyncio
async def test_missing_and_existing_tables(store: InMemoryAdapter) -> None:
    with pytest.raises(StorageError):
        await store.fetch_table("orders")
    with pytest.raises(StorageError):
        await store.create_table("items", ["id"])

    await store.create_table("orders", ["id", "total"])
    assert await store.fetch_table("orders") == []
    assert "orders" in await store.table_names()
