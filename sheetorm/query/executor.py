"""
Query executor.

Turns a `QueryState` into results against a storage adapter and owns the
result cache for that adapter.

Reads
    The full table is fetched (or served from a fresh cache entry) and the
    query is applied in memory in a fixed order: predicate filter, multi-key
    stable sort, offset, limit, column projection. Cache entries hold the
    unfiltered table snapshot, so the transformations run on every read,
    including cache hits.

Writes
    Inserts allocate auto-increment primary keys from the store's current
    maximum. Updates and deletes re-fetch the table (never from cache) to map
    matching records to storage row indices, then issue one batched call.
    Every mutation invalidates all cached entries of its table.

Concurrency
    Every adapter call is an await point and there is no locking. Two
    mutations racing on one table each compute row positions from their own
    fetch, so the later write can overwrite or miss rows changed by the
    other. The store offers no transactions to prevent this.
"""

from __future__ import annotations

import copy
import functools
import json
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from sheetorm.adapters.base import FIRST_DATA_ROW, AllowAllGate, PermissionGate, Record, StorageAdapter
from sheetorm.errors import AuthenticationRequiredError, QueryError
from sheetorm.query.state import DESC, OrderBy, Page, QueryState, as_page, build_meta
from sheetorm.schema.types import Schema
from sheetorm.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300.0


@dataclass
class CacheEntry:
    rows: List[Record]
    stored_at: float


def _as_int_if_integral(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _compare_rows(left: Mapping[str, Any], right: Mapping[str, Any], keys: Sequence[OrderBy]) -> int:
    for key in keys:
        a, b = left.get(key.column), right.get(key.column)
        try:
            if a < b:
                return 1 if key.direction == DESC else -1
            if a > b:
                return -1 if key.direction == DESC else 1
        except TypeError:
            # Unorderable pair: treat as a tie and fall through to the next key.
            continue
    return 0


def apply_transformations(rows: Sequence[Record], state: QueryState) -> List[Record]:
    """
    Filter, sort, slice and project `rows` according to `state`.

    Returned records are deep copies, so callers can mutate them (nested
    list and dict cells included) without touching a cached snapshot.
    """
    result = [row for row in rows if state.where.matches(row)] if len(state.where) else list(rows)

    if state.order_by:
        keys = list(state.order_by)
        result.sort(key=functools.cmp_to_key(lambda a, b: _compare_rows(a, b, keys)))

    if state.offset is not None:
        result = result[state.offset :]

    if state.limit is not None:
        result = result[: state.limit]

    if state.select is not None:
        return [{column: copy.deepcopy(row.get(column)) for column in state.select} for row in result]
    return [copy.deepcopy(row) for row in result]


class QueryExecutor:
    """
    Executes queries and mutations against a storage adapter.

    Parameters
    ----------
    adapter : StorageAdapter
        The store to read from and write to.
    schemas : Mapping[str, Schema] | None
        Table schemas; used for primary-key auto-increment on insert.
    gate : PermissionGate | None
        Consulted before every adapter read/write. Defaults to `AllowAllGate`.
    cache_enabled : bool
        Cache every select, not only those that opt in with `cache()`.
    cache_ttl : float
        Default cache time-to-live in seconds.
    default_per_page, max_per_page : int
        Pagination defaults; larger page sizes are clamped to `max_per_page`.
    clock : Callable[[], float]
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        schemas: Optional[Mapping[str, Schema]] = None,
        *,
        gate: Optional[PermissionGate] = None,
        cache_enabled: bool = False,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        default_per_page: int = 20,
        max_per_page: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.adapter = adapter
        self.schemas: Dict[str, Schema] = dict(schemas or {})
        self.gate: PermissionGate = gate or AllowAllGate()
        self.cache_enabled = cache_enabled
        self.cache_ttl = cache_ttl
        self.default_per_page = default_per_page
        self.max_per_page = max_per_page
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        # Bumped by every invalidation; a read caches its fetch only when its
        # table was not invalidated while the fetch was in flight.
        self._generations: Dict[str, int] = {}
        self._epoch = 0

    # ------------------------------------------------------------------ cache

    @property
    def cache(self) -> Mapping[str, CacheEntry]:
        """Read-only view of the cache entries, keyed by fingerprint."""
        return MappingProxyType(self._cache)

    @staticmethod
    def cache_key(state: QueryState) -> str:
        """Fingerprint of (table, where-clauses, sort keys)."""
        shape = {
            "where": [
                [clause.column, clause.operator, clause.value, clause.boolean]
                for clause in state.where.clauses
            ],
            "order_by": [[key.column, key.direction] for key in state.order_by],
        }
        return f"{state.table}:{json.dumps(shape, sort_keys=True, default=str)}"

    def invalidate(self, table: str) -> None:
        """Drop every cached query shape of `table`."""
        self._generations[table] = self._generations.get(table, 0) + 1
        prefix = f"{table}:"
        stale = [key for key in self._cache if key.startswith(prefix)]
        for key in stale:
            del self._cache[key]
        if stale:
            log.debug(f"Cache invalidated for {table}", extra={"table": table, "entries": len(stale)})

    def clear_table_cache(self, table: str) -> None:
        self.invalidate(table)

    def clear_cache(self) -> None:
        self._epoch += 1
        self._cache.clear()

    def _generation(self, table: str) -> Tuple[int, int]:
        return self._epoch, self._generations.get(table, 0)

    def _cached_rows(self, key: str, ttl: float) -> Optional[List[Record]]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at < ttl:
            return entry.rows
        del self._cache[key]
        log.debug("Cache entry expired", extra={"cache_key": key})
        return None

    # ------------------------------------------------------------ adapter i/o

    @asynccontextmanager
    async def _adapter_call(self, table: str, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except (AuthenticationRequiredError, QueryError):
            raise
        except Exception as exc:  # noqa: BLE001 - every adapter failure is reported as a query failure
            log.warning(
                f"[{operation.upper()} FAILED] {table}",
                extra={"table": table, "operation": operation, "error": str(exc)},
            )
            raise QueryError(
                f"{operation} on '{table}' failed: {exc}", table=table, operation=operation
            ) from exc

    async def fetch_rows(self, table: str) -> List[Record]:
        """Fetch the full table from the store, bypassing the cache."""
        async with self._adapter_call(table, "select"):
            await self.gate.ensure_readable()
            return list(await self.adapter.fetch_table(table))

    # ------------------------------------------------------------------ reads

    async def select(self, state: QueryState) -> List[Record]:
        """Run a select and return the resulting plain records in order."""
        use_cache = state.cache or self.cache_enabled
        key = self.cache_key(state)

        if use_cache:
            ttl = state.cache_ttl if state.cache_ttl is not None else self.cache_ttl
            cached = self._cached_rows(key, ttl)
            if cached is not None:
                log.debug(f"Cache hit for {state.table}", extra={"table": state.table})
                return apply_transformations(cached, state)

        generation = self._generation(state.table)
        rows = await self.fetch_rows(state.table)
        if use_cache and self._generation(state.table) != generation:
            log.debug(f"Cache store skipped for {state.table}", extra={"table": state.table})
        elif use_cache:
            self._cache[key] = CacheEntry(rows=list(rows), stored_at=self._clock())
            log.debug(f"Cache stored for {state.table}", extra={"table": state.table, "rows": len(rows)})
        return apply_transformations(rows, state)

    async def count(self, state: QueryState) -> int:
        """
        Number of records the select returns. The store has no server-side
        count, so this fetches and filters the whole table.
        """
        return len(await self.select(state))

    async def paginate(
        self,
        state: QueryState,
        page: int = 1,
        per_page: Optional[int] = None,
    ) -> Page[Record]:
        """
        Return one page of the filtered, sorted result plus metadata. Any
        limit/offset already on `state` is ignored.
        """
        per_page = per_page if per_page is not None else self.default_per_page
        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be positive integers")
        if self.max_per_page is not None and per_page > self.max_per_page:
            per_page = self.max_per_page

        unbounded = state.copy()
        unbounded.limit = None
        unbounded.offset = None
        records = await self.select(unbounded)

        meta = build_meta(len(records), page, per_page)
        start = (page - 1) * per_page
        return as_page(records[start : start + per_page], meta)

    # ----------------------------------------------------------------- writes

    def _auto_increment_column(self, table: str) -> Optional[str]:
        schema = self.schemas.get(table)
        if schema is None:
            return None
        primary = schema.primary_key()
        if primary is None or not primary[1].auto_increment:
            return None
        return primary[0]

    async def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        """Append one record; returns it as written (with any allocated id)."""
        written = await self.insert_many(table, [record])
        return written[0]

    async def insert_many(self, table: str, records: Sequence[Mapping[str, Any]]) -> List[Record]:
        """
        Append records in one call. With an auto-increment primary key,
        records receive `max + 1 .. max + n` in input order.
        """
        rows = [dict(record) for record in records]
        if not rows:
            return rows
        try:
            async with self._adapter_call(table, "insert"):
                await self.gate.ensure_writable()
                pk = self._auto_increment_column(table)
                if pk is not None:
                    current = _as_int_if_integral(await self.adapter.max_numeric_value(table, pk))
                    for offset, row in enumerate(rows, start=1):
                        row[pk] = current + offset
                await self.adapter.append_rows(table, rows)
        finally:
            self.invalidate(table)
        log.info(f"Inserted into {table}", extra={"table": table, "rows": len(rows)})
        return rows

    async def _matching_rows(self, state: QueryState) -> List[Tuple[int, Record]]:
        rows = await self.fetch_rows(state.table)
        return [
            (position + FIRST_DATA_ROW, row)
            for position, row in enumerate(rows)
            if state.where.matches(row)
        ]

    async def update(self, state: QueryState, patch: Mapping[str, Any]) -> int:
        """Merge `patch` into every matching row; returns the affected count."""
        try:
            matches = await self._matching_rows(state)
            if matches:
                updates = [(row_index, {**row, **patch}) for row_index, row in matches]
                async with self._adapter_call(state.table, "update"):
                    await self.gate.ensure_writable()
                    await self.adapter.update_rows(state.table, updates)
        finally:
            self.invalidate(state.table)
        log.info(f"Updated {state.table}", extra={"table": state.table, "rows": len(matches)})
        return len(matches)

    async def delete(self, state: QueryState) -> int:
        """Physically delete every matching row; returns the affected count."""
        try:
            matches = await self._matching_rows(state)
            if matches:
                async with self._adapter_call(state.table, "delete"):
                    await self.gate.ensure_writable()
                    await self.adapter.delete_rows(state.table, [row_index for row_index, _ in matches])
        finally:
            self.invalidate(state.table)
        log.info(f"Deleted from {state.table}", extra={"table": state.table, "rows": len(matches)})
        return len(matches)


__all__ = [
    "CacheEntry",
    "QueryExecutor",
    "apply_transformations",
    "DEFAULT_CACHE_TTL_SECONDS",
]
