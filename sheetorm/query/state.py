"""
Query state and result contracts.

`QueryState` is the mutable description a `QueryBuilder` accumulates and the
executor consumes. `Page` and `PaginationMeta` are the paginate() result
contract; keys mirror the usual `total/per_page/current_page/last_page/from/to`
pagination metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypedDict, TypeVar

from sheetorm.query.predicate import Predicate

ASC = "asc"
DESC = "desc"

T = TypeVar("T")


@dataclass(frozen=True)
class OrderBy:
    column: str
    direction: str = ASC


@dataclass
class QueryState:
    """
    Everything a terminal operation needs to know about a query.

    Attributes
    ----------
    table : str
        Target table name.
    select : list[str] | None
        Projected columns; None selects every column.
    where : Predicate
        Ordered where-clauses.
    order_by : list[OrderBy]
        Sort keys, most significant first.
    limit, offset : int | None
        Slice applied after filtering and sorting.
    cache : bool
        Per-query cache opt-in.
    cache_ttl : float | None
        Per-query time-to-live override in seconds.
    """

    table: str
    select: Optional[List[str]] = None
    where: Predicate = field(default_factory=Predicate)
    order_by: List[OrderBy] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    cache: bool = False
    cache_ttl: Optional[float] = None

    def copy(self) -> "QueryState":
        """Independent copy: no list or predicate is shared with this state."""
        return QueryState(
            table=self.table,
            select=list(self.select) if self.select is not None else None,
            where=self.where.copy(),
            order_by=list(self.order_by),
            limit=self.limit,
            offset=self.offset,
            cache=self.cache,
            cache_ttl=self.cache_ttl,
        )


PaginationMeta = TypedDict(
    "PaginationMeta",
    {
        "total": int,
        "per_page": int,
        "current_page": int,
        "last_page": int,
        "from": int,
        "to": int,
    },
)


class Page(TypedDict, Generic[T]):
    data: List[T]
    meta: PaginationMeta


def build_meta(total: int, page: int, per_page: int) -> PaginationMeta:
    """
    Compute pagination metadata. `from` is 1-based and `to` inclusive; both
    are computed even for a page past the end, where `from` exceeds `total`.
    """
    start = (page - 1) * per_page
    return {
        "total": total,
        "per_page": per_page,
        "current_page": page,
        "last_page": -(-total // per_page),
        "from": start + 1,
        "to": min(start + per_page, total),
    }


def as_page(data: List[Any], meta: PaginationMeta) -> "Page[Any]":
    return {"data": data, "meta": meta}


__all__ = [
    "ASC",
    "DESC",
    "OrderBy",
    "QueryState",
    "PaginationMeta",
    "Page",
    "build_meta",
    "as_page",
]
