"""
Database composition root.

A `Database` owns exactly one `QueryExecutor` (and therefore one result cache)
for its storage adapter. Raw table queries and every registered entity type
go through that executor, so a cache invalidation made by any write is seen by
every later read.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Type

from sheetorm.adapters.base import ManagedStorageAdapter, PermissionGate, StorageAdapter
from sheetorm.config import Settings, get_settings
from sheetorm.core.persistence import ModelPersistence
from sheetorm.errors import SchemaError
from sheetorm.model.base import Model
from sheetorm.query.builder import QueryBuilder
from sheetorm.query.executor import QueryExecutor
from sheetorm.schema.types import Schema
from sheetorm.schema.validator import Validator
from sheetorm.utils.logging import get_logger

log = get_logger(__name__)


class Database:
    """
    Entry point wiring an adapter, schemas, a permission gate and entity types.

    Parameters
    ----------
    adapter : StorageAdapter
        The store.
    schemas : Mapping[str, Schema] | None
        Table schemas keyed by table name.
    gate : PermissionGate | None
        Read/write permission checks; everything is allowed when omitted.
    settings : Settings | None
        Cache and pagination defaults; `get_settings()` when omitted.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        schemas: Optional[Mapping[str, Schema]] = None,
        *,
        gate: Optional[PermissionGate] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.adapter = adapter
        self.schemas: Dict[str, Schema] = dict(schemas or {})
        self.executor = QueryExecutor(
            adapter,
            self.schemas,
            gate=gate,
            cache_enabled=self.settings.cache_enabled,
            cache_ttl=self.settings.cache_ttl_seconds,
            default_per_page=self.settings.default_per_page,
            max_per_page=self.settings.max_per_page,
        )
        self.persistence = ModelPersistence(self.executor, self.schemas)

    def table(self, name: str) -> QueryBuilder:
        return QueryBuilder(self.executor, name)

    def register(self, *models: Type[Model]) -> None:
        """
        Bind entity types to this database. Columns declared by the table
        schema are adopted unless the type registered its own definition.
        """
        for model in models:
            if not model.table:
                raise SchemaError(f"{model.__name__} does not declare a table")
            schema = self.schemas.get(model.table)
            if model.soft_deletes and schema is not None and model.deleted_at_column not in schema.columns:
                raise SchemaError(
                    f"{model.__name__} uses soft deletes but table '{model.table}' "
                    f"has no '{model.deleted_at_column}' column"
                )
            if schema is not None:
                declared = model.columns()
                for name, column in schema.columns.items():
                    if name not in declared:
                        model.register_column(name, column)
            model.bind(self.persistence)
            log.debug(f"Registered {model.__name__}", extra={"table": model.table})

    def validator(self, table: str) -> Validator:
        try:
            return Validator(self.schemas[table])
        except KeyError:
            raise SchemaError(f"No schema declared for table '{table}'") from None

    async def create_missing_tables(self) -> List[str]:
        """Create every schema table absent from the store; returns the created names."""
        if not isinstance(self.adapter, ManagedStorageAdapter):
            raise SchemaError(f"{type(self.adapter).__name__} cannot create tables")
        await self.executor.gate.ensure_writable()

        existing = set(await self.adapter.table_names())
        created = []
        for name, schema in self.schemas.items():
            if name in existing:
                continue
            await self.adapter.create_table(name, list(schema.column_names))
            created.append(name)
            log.info(f"Created table {name}", extra={"table": name, "columns": len(schema.columns)})
        return created

    def clear_cache(self) -> None:
        self.executor.clear_cache()


__all__ = ["Database"]
