from __future__ import annotations

import json
import logging

import pytest

from sheetorm.adapters.memory import InMemoryAdapter
from sheetorm.query.builder import QueryBuilder
from sheetorm.query.executor import QueryExecutor
from sheetorm.utils.logging import JsonFormatter, _json_formatter

EXPECTED_ROWS = 3


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="rows %s",
        args=("appended",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_extra_fields() -> None:
    payload = json.loads(_json_formatter(_record(table="users", rows=EXPECTED_ROWS)))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "rows appended"
    assert payload["table"] == "users"
    assert payload["rows"] == EXPECTED_ROWS


def test_json_formatter_supports_nested_extra_mapping() -> None:
    payload = json.loads(JsonFormatter().format(_record(extra={"operation": "insert"})))

    assert payload["operation"] == "insert"
    assert "extra" not in payload


def test_json_formatter_renders_unserializable_values_as_text() -> None:
    payload = json.loads(_json_formatter(_record(rows=frozenset({1}))))

    assert payload["rows"] == "frozenset({1})"


@pytest.mark.asyncio
async def test_mutations_are_logged_with_table_context(schemas, caplog) -> None:
    store = InMemoryAdapter(schemas)
    store.seed("tags")
    executor = QueryExecutor(store, schemas)

    with caplog.at_level(logging.INFO, logger="sheetorm"):
        await QueryBuilder(executor, "tags").insert_many([{"label": "a"}, {"label": "b"}])

    records = [record for record in caplog.records if getattr(record, "table", None) == "tags"]
    assert records
    assert records[0].levelno == logging.INFO
