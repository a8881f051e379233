"""
Schema package for sheetorm.

Exports the declarative column/table models, the validator, and the JSON
schema loader.
"""

from sheetorm.schema.loader import load_schemas, parse_schemas
from sheetorm.schema.types import ColumnDefinition, ColumnType, RuleKind, Schema, ValidationRule
from sheetorm.schema.validator import Validator

__all__ = [
    "ColumnDefinition",
    "ColumnType",
    "RuleKind",
    "Schema",
    "ValidationRule",
    "Validator",
    "load_schemas",
    "parse_schemas",
]
