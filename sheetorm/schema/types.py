"""
Declarative schema models.

A `Schema` maps column names (in declaration order, which is also the column
order of the stored table) to `ColumnDefinition`s. Schemas are frozen pydantic
models consumed by the validator, the executor (primary key and
auto-increment handling) and the storage adapters (cell coercion).
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, model_validator


class ColumnType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    JSON = "json"
    ARRAY = "array"
    ENUM = "enum"
    TEXT = "text"


class RuleKind(str, Enum):
    REQUIRED = "required"
    UNIQUE = "unique"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    MIN = "min"
    MAX = "max"
    INTEGER = "integer"
    PATTERN = "pattern"
    EMAIL = "email"
    MIN_ITEMS = "min_items"
    MAX_ITEMS = "max_items"


class ValidationRule(BaseModel):
    """
    A single declarative check applied after the type check passes.

    `value` is the comparison operand (a length, bound, item count or regex
    pattern); `message` overrides the default failure text.
    """

    kind: RuleKind
    value: Any = None
    message: Optional[str] = None

    model_config = {"frozen": True}


class ColumnDefinition(BaseModel):
    """
    Declaration of one column.
    """

    type: ColumnType = Field(ColumnType.STRING, description="Semantic type of the column.")
    is_primary: bool = False
    auto_increment: bool = False
    required: bool = False
    nullable: bool = False
    unique: bool = False
    default: Any = None
    rules: Tuple[ValidationRule, ...] = ()
    enum_values: Optional[Tuple[Any, ...]] = None
    array_type: Optional[ColumnType] = None
    auto_create: bool = Field(False, description="Stamp the current time on create.")
    auto_update: bool = Field(False, description="Stamp the current time on every write.")

    model_config = {"frozen": True}

    def effective_rules(self) -> Tuple[ValidationRule, ...]:
        """Declared rules, plus an implicit uniqueness rule when `unique` is set."""
        if self.unique and not any(rule.kind is RuleKind.UNIQUE for rule in self.rules):
            return self.rules + (ValidationRule(kind=RuleKind.UNIQUE),)
        return self.rules

    @property
    def is_unique(self) -> bool:
        return any(rule.kind is RuleKind.UNIQUE for rule in self.effective_rules())


class Schema(BaseModel):
    """
    Column declarations for one table. At most one column may be primary.
    """

    columns: Dict[str, ColumnDefinition] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_single_primary_key(self) -> "Schema":
        primaries = [name for name, column in self.columns.items() if column.is_primary]
        if len(primaries) > 1:
            raise ValueError(f"at most one primary column is allowed, got {primaries}")
        return self

    def primary_key(self) -> Optional[Tuple[str, ColumnDefinition]]:
        for name, column in self.columns.items():
            if column.is_primary:
                return name, column
        return None

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(self.columns)

    def has_unique_columns(self) -> bool:
        return any(column.is_unique for column in self.columns.values())


__all__ = [
    "ColumnType",
    "RuleKind",
    "ValidationRule",
    "ColumnDefinition",
    "Schema",
]
