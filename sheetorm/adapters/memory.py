"""
In-memory string-cell store.

Keeps every table as a grid of text cells exactly like a remote sheet would,
so coercion and row addressing behave the same as against a real store. Used
by the test-suite and for local experiments.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from sheetorm.adapters.grid import AbstractGridAdapter, Grid
from sheetorm.errors import StorageError
from sheetorm.schema.types import Schema


class InMemoryAdapter(AbstractGridAdapter):
    """
    Storage adapter holding tables in process memory.

    Examples
    --------
    >>> adapter = InMemoryAdapter(schemas)
    >>> adapter.seed("users", [{"id": 1, "name": "Ada"}])
    """

    def __init__(self, schemas: Optional[Mapping[str, Schema]] = None) -> None:
        super().__init__(schemas)
        self._tables: Dict[str, Grid] = {}

    async def _load(self, name: str) -> Grid:
        try:
            grid = self._tables[name]
        except KeyError:
            raise StorageError(f"Table '{name}' does not exist") from None
        return [list(row) for row in grid]

    async def _store(self, name: str, grid: Grid) -> None:
        self._tables[name] = [list(row) for row in grid]

    async def table_names(self) -> List[str]:
        return list(self._tables)

    def seed(
        self,
        table: str,
        records: Sequence[Mapping[str, Any]] = (),
        headers: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Synchronously (re)create `table` holding `records`.

        Headers default to the table's schema column order, then to the keys of
        the first record.
        """
        if headers is None:
            schema = self.schemas.get(table)
            if schema is not None:
                headers = list(schema.column_names)
            elif records:
                headers = list(records[0])
            else:
                headers = []
        header_row = list(headers)
        self._tables[table] = [header_row] + [
            self._to_cells(table, header_row, record) for record in records
        ]

    def raw_rows(self, table: str) -> Grid:
        """Copy of the stored cell grid, header row included."""
        return [list(row) for row in self._tables[table]]


__all__ = ["InMemoryAdapter"]
