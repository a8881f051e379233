"""
Entity persistence.

`ModelPersistence` performs the physical create/update/delete for entities on
behalf of `Model.save()` and `Model.delete()`. Each write stamps automatic
timestamp columns, validates the record against the table schema (uniqueness
against a fresh read of the table), and then calls the executor.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Type

from sheetorm.adapters.base import Record
from sheetorm.errors import ModelNotFoundError, ModelStateError
from sheetorm.query.builder import QueryBuilder
from sheetorm.query.executor import QueryExecutor
from sheetorm.query.predicate import loose_equals
from sheetorm.schema.types import ColumnDefinition, Schema
from sheetorm.schema.validator import Validator, is_empty
from sheetorm.utils.logging import get_logger

if TYPE_CHECKING:
    from sheetorm.model.base import Model

log = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ModelPersistence:
    """
    Physical writes for entity types bound to one executor.

    Parameters
    ----------
    executor : QueryExecutor
        The executor (and cache) shared with every query of the database.
    schemas : Mapping[str, Schema]
        Table schemas used for validation and timestamp columns.
    clock : Callable[[], datetime]
        Source of timestamps for auto-timestamp and soft-delete columns.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        schemas: Optional[Mapping[str, Schema]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.executor = executor
        self.schemas: Dict[str, Schema] = dict(schemas or {})
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def _column_definitions(self, model: Type["Model"]) -> Dict[str, ColumnDefinition]:
        schema = self.schemas.get(model.table)
        columns = dict(schema.columns) if schema is not None else {}
        columns.update(model.columns())
        return columns

    def _stamp_timestamps(self, model: Type["Model"], record: Record, creating: bool) -> None:
        now = self.now()
        for name, column in self._column_definitions(model).items():
            if column.auto_update or (creating and column.auto_create and is_empty(record.get(name))):
                record[name] = now

    async def _validate(self, model: Type["Model"], record: Record) -> None:
        schema = self.schemas.get(model.table)
        if schema is None:
            return

        existing: Optional[List[Record]] = None
        if schema.has_unique_columns():
            rows = await self.executor.fetch_rows(model.table)
            primary_key = model.primary_key()
            identifier = record.get(primary_key)
            # The entity's own stored row never conflicts with itself.
            existing = [
                row
                for row in rows
                if is_empty(identifier) or not loose_equals(row.get(primary_key), identifier)
            ]
        Validator(schema).validate(record, existing)

    def _identifier(self, model: Type["Model"], record: Mapping[str, Any], operation: str) -> Any:
        identifier = record.get(model.primary_key())
        if is_empty(identifier):
            raise ModelStateError(f"Cannot {operation} a {model.__name__} without a primary key value")
        return identifier

    async def perform_create(self, model: Type["Model"], attributes: Mapping[str, Any]) -> Record:
        """Insert a new row and return the stored attributes (allocated id included)."""
        record = dict(attributes)
        self._stamp_timestamps(model, record, creating=True)
        await self._validate(model, record)

        written = await self.executor.insert(model.table, record)
        primary_key = model.primary_key()
        if is_empty(written.get(primary_key)):
            return written

        fresh = await QueryBuilder(self.executor, model.table).where(primary_key, written[primary_key]).first()
        log.debug(f"Created {model.__name__}", extra={"table": model.table, "id": written[primary_key]})
        return fresh if fresh is not None else written

    async def perform_update(self, model: Type["Model"], attributes: Mapping[str, Any]) -> Record:
        """Rewrite the entity's row; raises `ModelNotFoundError` when it no longer exists."""
        record = dict(attributes)
        self._stamp_timestamps(model, record, creating=False)
        identifier = self._identifier(model, record, "update")
        await self._validate(model, record)

        affected = await QueryBuilder(self.executor, model.table).where(model.primary_key(), identifier).update(record)
        if affected == 0:
            raise ModelNotFoundError(model.__name__, identifier)
        return record

    async def perform_delete(self, model: Type["Model"], attributes: Mapping[str, Any]) -> None:
        """Physically remove the entity's row."""
        identifier = self._identifier(model, attributes, "delete")
        affected = await QueryBuilder(self.executor, model.table).where(model.primary_key(), identifier).delete()
        if affected == 0:
            raise ModelNotFoundError(model.__name__, identifier)


__all__ = ["ModelPersistence", "utc_now"]
