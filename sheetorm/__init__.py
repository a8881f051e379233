"""
sheetorm - an active-record data-access layer for spreadsheet-like stores.

Treats a remote, string-typed table store (rows and columns addressed by
position, header in row 1) as a typed relational table:

- Typed columns with declarative validation
- A fluent predicate/query language evaluated in memory
- Result caching with per-table invalidation
- Active-record entities with lifecycle hooks, dirty tracking and soft deletes
- Batched eager loading of has-many, belongs-to, has-one and many-to-many relations
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from sheetorm.adapters import (
    AllowAllGate,
    CsvWorkbookAdapter,
    InMemoryAdapter,
    PermissionGate,
    StaticPermissionGate,
    StorageAdapter,
)
from sheetorm.config import Settings, get_settings
from sheetorm.core import Database, ModelPersistence
from sheetorm.errors import (
    AuthenticationError,
    AuthenticationRequiredError,
    ConnectionFailure,
    ModelNotFoundError,
    ModelStateError,
    ORMError,
    QueryError,
    RelationNotFoundError,
    SchemaError,
    ScopeNotFoundError,
    StorageError,
    ValidationError,
)
from sheetorm.model import (
    Hook,
    Model,
    ModelQuery,
    belongs_to,
    has_many,
    has_one,
    many_to_many,
)
from sheetorm.query import Predicate, QueryBuilder, QueryExecutor
from sheetorm.schema import (
    ColumnDefinition,
    ColumnType,
    RuleKind,
    Schema,
    ValidationRule,
    Validator,
    load_schemas,
)
from sheetorm.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Composition
    "Database",
    "ModelPersistence",
    # Storage
    "StorageAdapter",
    "PermissionGate",
    "AllowAllGate",
    "StaticPermissionGate",
    "InMemoryAdapter",
    "CsvWorkbookAdapter",
    # Query
    "Predicate",
    "QueryBuilder",
    "QueryExecutor",
    # Schema
    "ColumnDefinition",
    "ColumnType",
    "RuleKind",
    "Schema",
    "ValidationRule",
    "Validator",
    "load_schemas",
    # Models
    "Hook",
    "Model",
    "ModelQuery",
    "has_many",
    "has_one",
    "belongs_to",
    "many_to_many",
    # Errors
    "ORMError",
    "ValidationError",
    "ModelNotFoundError",
    "ModelStateError",
    "QueryError",
    "SchemaError",
    "ScopeNotFoundError",
    "RelationNotFoundError",
    "StorageError",
    "ConnectionFailure",
    "AuthenticationError",
    "AuthenticationRequiredError",
    # Logging
    "configure_logging",
    "get_logger",
]
