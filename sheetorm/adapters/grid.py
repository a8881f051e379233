"""
Shared implementation for adapters backed by a grid of text cells.

Concrete adapters only load and store whole grids (a list of rows, each a list
of strings, with the header in row 1); this base turns those two primitives
into the `StorageAdapter` contract with schema-driven cell coercion.
"""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sheetorm.adapters.base import FIRST_DATA_ROW, Record, RowUpdate
from sheetorm.adapters.coercion import from_cell, parse_numeric_cell, to_cell
from sheetorm.errors import StorageError
from sheetorm.schema.types import ColumnDefinition, Schema

Grid = List[List[str]]


class AbstractGridAdapter(abc.ABC):
    """
    Base class for grid-backed stores.

    Parameters
    ----------
    schemas : Mapping[str, Schema] | None
        Column declarations used to coerce cells; undeclared tables and
        columns read as plain strings.
    """

    def __init__(self, schemas: Optional[Mapping[str, Schema]] = None) -> None:
        self.schemas: Dict[str, Schema] = dict(schemas or {})

    @abc.abstractmethod
    async def _load(self, name: str) -> Grid:  # pragma: no cover - interface only
        """Return the full grid of `name`; raise `StorageError` when it does not exist."""
        raise NotImplementedError

    @abc.abstractmethod
    async def _store(self, name: str, grid: Grid) -> None:  # pragma: no cover - interface only
        """Replace the full grid of `name`."""
        raise NotImplementedError

    @abc.abstractmethod
    async def table_names(self) -> List[str]:  # pragma: no cover - interface only
        raise NotImplementedError

    # --------------------------------------------------------------- helpers

    def _column(self, name: str, header: str) -> Optional[ColumnDefinition]:
        schema = self.schemas.get(name)
        return schema.columns.get(header) if schema is not None else None

    def _to_record(self, name: str, headers: Sequence[str], cells: Sequence[str]) -> Record:
        padded = list(cells) + [""] * (len(headers) - len(cells))
        return {header: from_cell(padded[i], self._column(name, header)) for i, header in enumerate(headers)}

    def _to_cells(self, name: str, headers: Sequence[str], record: Mapping[str, Any]) -> List[str]:
        return [to_cell(record.get(header), self._column(name, header)) for header in headers]

    @staticmethod
    def _check_row_indices(name: str, grid: Grid, row_indices: Sequence[int]) -> None:
        for row_index in row_indices:
            if row_index < FIRST_DATA_ROW or row_index > len(grid):
                raise StorageError(f"Row {row_index} is out of range for table '{name}'")

    # ------------------------------------------------------------- contract

    async def fetch_table(self, name: str) -> List[Record]:
        grid = await self._load(name)
        if not grid:
            return []
        headers = grid[0]
        return [self._to_record(name, headers, row) for row in grid[1:]]

    async def append_rows(self, name: str, records: Sequence[Mapping[str, Any]]) -> None:
        grid = await self._load(name)
        if not grid:
            raise StorageError(f"Table '{name}' has no header row")
        headers = grid[0]
        grid.extend(self._to_cells(name, headers, record) for record in records)
        await self._store(name, grid)

    async def update_rows(self, name: str, updates: Sequence[RowUpdate]) -> None:
        grid = await self._load(name)
        self._check_row_indices(name, grid, [row_index for row_index, _ in updates])
        headers = grid[0] if grid else []
        for row_index, record in updates:
            grid[row_index - 1] = self._to_cells(name, headers, record)
        await self._store(name, grid)

    async def delete_rows(self, name: str, row_indices: Sequence[int]) -> None:
        grid = await self._load(name)
        self._check_row_indices(name, grid, row_indices)
        # Bottom-up so earlier removals do not shift the remaining indices.
        for row_index in sorted(set(row_indices), reverse=True):
            del grid[row_index - 1]
        await self._store(name, grid)

    async def max_numeric_value(self, name: str, column: str) -> float:
        grid = await self._load(name)
        if not grid or column not in grid[0]:
            return 0
        position = grid[0].index(column)
        values = [
            parse_numeric_cell(row[position] if position < len(row) else None) for row in grid[1:]
        ]
        numbers = [value for value in values if value is not None]
        return max(numbers) if numbers else 0

    async def create_table(self, name: str, headers: Sequence[str]) -> None:
        if name in await self.table_names():
            raise StorageError(f"Table '{name}' already exists")
        await self._store(name, [list(headers)])


__all__ = ["AbstractGridAdapter", "Grid"]
