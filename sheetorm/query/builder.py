"""
Fluent query builder.

A `QueryBuilder` accumulates a `QueryState` for one table and hands it to the
shared `QueryExecutor` on a terminal call. Chaining methods mutate the builder
and return it; use `clone()` to branch a query.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from sheetorm.adapters.base import Record
from sheetorm.query.executor import QueryExecutor
from sheetorm.query.predicate import _MISSING
from sheetorm.query.state import ASC, DESC, OrderBy, Page, QueryState


class QueryBuilder:
    """
    Accumulates select/where/order/limit/offset/cache options for a table.

    Examples
    --------
    >>> users = await db.table("users").where("active", True).order_by("name").limit(10).get()
    """

    def __init__(self, executor: QueryExecutor, table: str, state: Optional[QueryState] = None) -> None:
        self._executor = executor
        self._state = state if state is not None else QueryState(table=table)

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    @property
    def table(self) -> str:
        return self._state.table

    @property
    def state(self) -> QueryState:
        """Independent copy of the accumulated state."""
        return self._state.copy()

    def clone(self) -> "QueryBuilder":
        return QueryBuilder(self._executor, self._state.table, self._state.copy())

    # -------------------------------------------------------------- chaining

    def select(self, *columns: str) -> "QueryBuilder":
        """Project the given columns; no columns or `"*"` selects everything."""
        if not columns or "*" in columns:
            self._state.select = None
        else:
            self._state.select = list(columns)
        return self

    def where(self, column: str, operator: Any, value: Any = _MISSING) -> "QueryBuilder":
        self._state.where.where(column, operator, value)
        return self

    def or_where(self, column: str, operator: Any, value: Any = _MISSING) -> "QueryBuilder":
        self._state.where.or_where(column, operator, value)
        return self

    def where_in(self, column: str, values: Sequence[Any]) -> "QueryBuilder":
        self._state.where.where_in(column, values)
        return self

    def where_not_in(self, column: str, values: Sequence[Any]) -> "QueryBuilder":
        self._state.where.where_not_in(column, values)
        return self

    def where_null(self, column: str) -> "QueryBuilder":
        self._state.where.where_null(column)
        return self

    def where_not_null(self, column: str) -> "QueryBuilder":
        self._state.where.where_not_null(column)
        return self

    def where_between(self, column: str, bounds: Sequence[Any]) -> "QueryBuilder":
        self._state.where.where_between(column, bounds)
        return self

    def where_not_between(self, column: str, bounds: Sequence[Any]) -> "QueryBuilder":
        self._state.where.where_not_between(column, bounds)
        return self

    def order_by(self, column: str, direction: str = ASC) -> "QueryBuilder":
        normalized = direction.lower()
        if normalized not in (ASC, DESC):
            raise ValueError(f"Invalid sort direction {direction!r}; expected 'asc' or 'desc'")
        self._state.order_by.append(OrderBy(column, normalized))
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._state.limit = count
        return self

    def offset(self, count: int) -> "QueryBuilder":
        self._state.offset = count
        return self

    def cache(self, ttl: Optional[float] = None) -> "QueryBuilder":
        """Opt this query into the result cache, optionally with its own TTL in seconds."""
        self._state.cache = True
        if ttl is not None:
            self._state.cache_ttl = ttl
        return self

    # -------------------------------------------------------------- terminal

    async def get(self) -> List[Record]:
        return await self._executor.select(self._state)

    async def first(self) -> Optional[Record]:
        """First matching record, or None. The builder itself is left unchanged."""
        state = self._state.copy()
        state.limit = 1
        rows = await self._executor.select(state)
        return rows[0] if rows else None

    async def count(self) -> int:
        return await self._executor.count(self._state)

    async def paginate(self, page: int = 1, per_page: Optional[int] = None) -> Page[Record]:
        return await self._executor.paginate(self._state, page, per_page)

    async def insert(self, record: Mapping[str, Any]) -> Record:
        return await self._executor.insert(self._state.table, record)

    async def insert_many(self, records: Sequence[Mapping[str, Any]]) -> List[Record]:
        return await self._executor.insert_many(self._state.table, records)

    async def update(self, patch: Mapping[str, Any]) -> int:
        return await self._executor.update(self._state, patch)

    async def delete(self) -> int:
        return await self._executor.delete(self._state)

    def __repr__(self) -> str:
        return f"QueryBuilder(table={self._state.table!r}, where={self._state.where!r})"


__all__ = ["QueryBuilder"]
