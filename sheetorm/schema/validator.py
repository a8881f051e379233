"""
Schema validator.

Checks a candidate record against a `Schema` before a write is accepted. Every
column is validated independently and failures are aggregated into a
field -> messages map; a `ValidationError` is raised only when that map is
non-empty.

Per-column order:
1. auto-increment primary keys are exempt;
2. a required-but-empty value fails and stops checks for that column;
3. an empty value on a nullable column stops checks without an error;
4. the type check runs next and stops checks for that column on failure;
5. every declared rule is evaluated and each failure appends its message.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sheetorm.errors import ValidationError
from sheetorm.schema.types import ColumnDefinition, ColumnType, RuleKind, Schema, ValidationRule

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def is_empty(value: Any) -> bool:
    """Empty means None or the empty string (an empty cell)."""
    return value is None or value == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_date_like(value: Any) -> bool:
    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


class Validator:
    """
    Validates records against one table schema.
    """

    def __init__(self, schema: Schema) -> None:
        self.schema = schema

    def validate(
        self,
        record: Mapping[str, Any],
        existing_records: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> None:
        """
        Validate `record`, raising `ValidationError` with every failing field.

        Parameters
        ----------
        record : Mapping[str, Any]
            Candidate record.
        existing_records : Sequence[Mapping] | None
            Rows to check uniqueness rules against. Uniqueness is not checked
            when omitted.
        """
        errors = self.errors(record, existing_records)
        if errors:
            raise ValidationError(errors)

    def errors(
        self,
        record: Mapping[str, Any],
        existing_records: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> Dict[str, List[str]]:
        """Return the field -> messages map without raising."""
        errors: Dict[str, List[str]] = {}
        for name, column in self.schema.columns.items():
            messages = self._validate_column(name, record.get(name), column, record, existing_records)
            if messages:
                errors[name] = messages
        return errors

    def _validate_column(
        self,
        name: str,
        value: Any,
        column: ColumnDefinition,
        record: Mapping[str, Any],
        existing_records: Optional[Sequence[Mapping[str, Any]]],
    ) -> List[str]:
        if column.is_primary and column.auto_increment:
            return []

        if column.required and is_empty(value):
            return [f"{name} is required"]

        if is_empty(value) and column.nullable:
            return []

        type_error = self._check_type(value, column)
        if type_error:
            return [type_error]

        messages: List[str] = []
        for rule in column.effective_rules():
            message = self._check_rule(name, value, rule, column, record, existing_records)
            if message:
                messages.append(message)
        return messages

    @staticmethod
    def _check_type(value: Any, column: ColumnDefinition) -> Optional[str]:
        if is_empty(value):
            return None

        kind = column.type
        if kind is ColumnType.NUMBER:
            if not _is_number(value) or math.isnan(value):
                return "Must be a number"
        elif kind is ColumnType.BOOLEAN:
            if not isinstance(value, bool):
                return "Must be a boolean"
        elif kind in (ColumnType.DATETIME, ColumnType.DATE):
            if not _is_date_like(value):
                return "Must be a valid date"
        elif kind is ColumnType.ARRAY:
            if not isinstance(value, (list, tuple)):
                return "Must be an array"
        elif kind is ColumnType.ENUM:
            if column.enum_values is not None and value not in column.enum_values:
                return f"Must be one of: {', '.join(str(v) for v in column.enum_values)}"
        elif kind in (ColumnType.STRING, ColumnType.TEXT, ColumnType.TIME):
            if not isinstance(value, str):
                return "Must be a string"
        # JSON columns accept any value.
        return None

    @staticmethod
    def _check_rule(
        name: str,
        value: Any,
        rule: ValidationRule,
        column: ColumnDefinition,
        record: Mapping[str, Any],
        existing_records: Optional[Iterable[Mapping[str, Any]]],
    ) -> Optional[str]:
        kind = rule.kind

        if kind is RuleKind.UNIQUE:
            if existing_records is None:
                return None
            for existing in existing_records:
                # A primary key never conflicts with the row it identifies.
                if column.is_primary and record.get(name) == existing.get(name):
                    continue
                if existing.get(name) == value:
                    return rule.message or f"{name} must be unique"
            return None

        if kind is RuleKind.MIN_LENGTH:
            if isinstance(value, str) and len(value) < rule.value:
                return rule.message or f"Must be at least {rule.value} characters"
        elif kind is RuleKind.MAX_LENGTH:
            if isinstance(value, str) and len(value) > rule.value:
                return rule.message or f"Must be at most {rule.value} characters"
        elif kind in (RuleKind.PATTERN, RuleKind.EMAIL):
            pattern = rule.value or (EMAIL_PATTERN if kind is RuleKind.EMAIL else None)
            if isinstance(value, str) and pattern and not re.search(pattern, value):
                return rule.message or "Invalid format"
        elif kind is RuleKind.MIN:
            if _is_number(value) and value < rule.value:
                return rule.message or f"Must be at least {rule.value}"
        elif kind is RuleKind.MAX:
            if _is_number(value) and value > rule.value:
                return rule.message or f"Must be at most {rule.value}"
        elif kind is RuleKind.INTEGER:
            if _is_number(value) and not float(value).is_integer():
                return rule.message or "Must be an integer"
        elif kind is RuleKind.MIN_ITEMS:
            if isinstance(value, (list, tuple)) and len(value) < rule.value:
                return rule.message or f"Must have at least {rule.value} items"
        elif kind is RuleKind.MAX_ITEMS:
            if isinstance(value, (list, tuple)) and len(value) > rule.value:
                return rule.message or f"Must have at most {rule.value} items"
        # REQUIRED is handled before the type check.
        return None


__all__ = ["Validator", "EMAIL_PATTERN", "is_empty"]
