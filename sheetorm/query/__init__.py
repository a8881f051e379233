"""
Query package for sheetorm.

Exports the predicate builder, query state, fluent builder and executor.
"""

from sheetorm.query.builder import QueryBuilder
from sheetorm.query.executor import QueryExecutor
from sheetorm.query.predicate import Predicate, WhereClause
from sheetorm.query.state import ASC, DESC, OrderBy, Page, PaginationMeta, QueryState

__all__ = [
    "ASC",
    "DESC",
    "OrderBy",
    "Page",
    "PaginationMeta",
    "Predicate",
    "QueryBuilder",
    "QueryExecutor",
    "QueryState",
    "WhereClause",
]
