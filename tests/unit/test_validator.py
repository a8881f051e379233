from __future__ import annotations

from typing import Dict

import pytest

from sheetorm.errors import ValidationError
from sheetorm.schema.types import ColumnDefinition, ColumnType, RuleKind, Schema, ValidationRule
from sheetorm.schema.validator import Validator

PROFILE_SCHEMA = Schema(
    columns={
        "id": ColumnDefinition(type=ColumnType.NUMBER, is_primary=True, auto_increment=True, required=True),
        "handle": ColumnDefinition(
            required=True,
            rules=(
                ValidationRule(kind=RuleKind.MIN_LENGTH, value=3),
                ValidationRule(kind=RuleKind.PATTERN, value=r"^[a-z]+$", message="Lowercase letters only"),
            ),
        ),
        "email": ColumnDefinition(nullable=True, rules=(ValidationRule(kind=RuleKind.EMAIL),)),
        "age": ColumnDefinition(
            type=ColumnType.NUMBER,
            nullable=True,
            rules=(
                ValidationRule(kind=RuleKind.MIN, value=0),
                ValidationRule(kind=RuleKind.MAX, value=150),
                ValidationRule(kind=RuleKind.INTEGER),
            ),
        ),
        "role": ColumnDefinition(type=ColumnType.ENUM, enum_values=("admin", "reader"), default="reader"),
        "tags": ColumnDefinition(
            type=ColumnType.ARRAY,
            nullable=True,
            rules=(ValidationRule(kind=RuleKind.MAX_ITEMS, value=2),),
        ),
        "born": ColumnDefinition(type=ColumnType.DATE, nullable=True),
    }
)


def _errors(schema: Schema, record: Dict) -> Dict:
    return Validator(schema).errors(record)


def test_missing_required_and_min_length_are_aggregated(schemas) -> None:
    with pytest.raises(ValidationError) as excinfo:
        Validator(schemas["users"]).validate({"name": "A"})

    messages = excinfo.value.messages
    assert set(messages) == {"name", "email"}
    assert messages["name"] == ["Must be at least 2 characters"]
    assert messages["email"] == ["email is required"]


def test_duplicate_unique_value_fails(schemas) -> None:
    existing = [{"id": 1, "name": "Al", "email": "a@x.com"}]

    with pytest.raises(ValidationError) as excinfo:
        Validator(schemas["users"]).validate({"name": "Bo", "email": "a@x.com"}, existing)

    assert excinfo.value.messages == {"email": ["email must be unique"]}
    assert "unique" in str(excinfo.value)


def test_uniqueness_is_skipped_without_existing_records(schemas) -> None:
    Validator(schemas["users"]).validate({"name": "Bo", "email": "a@x.com"})


def test_auto_increment_primary_key_is_exempt() -> None:
    assert "id" not in _errors(PROFILE_SCHEMA, {"handle": "ada", "role": "admin"})


def test_required_failure_short_circuits_the_column() -> None:
    assert _errors(PROFILE_SCHEMA, {"handle": "", "role": "admin"}) == {"handle": ["handle is required"]}


def test_nullable_empty_values_pass() -> None:
    assert _errors(PROFILE_SCHEMA, {"handle": "ada", "email": "", "age": None, "role": "admin"}) == {}


def test_type_failure_short_circuits_rules() -> None:
    errors = _errors(PROFILE_SCHEMA, {"handle": "ada", "age": "old", "role": "owner", "born": "yesterday"})

    assert errors == {
        "age": ["Must be a number"],
        "role": ["Must be one of: admin, reader"],
        "born": ["Must be a valid date"],
    }


def test_rules_do_not_short_circuit_each_other() -> None:
    errors = _errors(PROFILE_SCHEMA, {"handle": "A1", "age": 200.5, "role": "admin"})

    assert errors["handle"] == ["Must be at least 3 characters", "Lowercase letters only"]
    assert errors["age"] == ["Must be at most 150", "Must be an integer"]


def test_email_and_item_count_rules() -> None:
    errors = _errors(
        PROFILE_SCHEMA,
        {"handle": "ada", "email": "not-an-email", "tags": ["a", "b", "c"], "role": "admin"},
    )

    assert errors == {"email": ["Invalid format"], "tags": ["Must have at most 2 items"]}


def test_boolean_is_not_a_number() -> None:
    assert _errors(PROFILE_SCHEMA, {"handle": "ada", "age": True, "role": "admin"}) == {"age": ["Must be a number"]}


def test_primary_key_uniqueness_ignores_the_records_own_row() -> None:
    schema = Schema(
        columns={
            "code": ColumnDefinition(is_primary=True, required=True, unique=True),
            "label": ColumnDefinition(),
        }
    )
    existing = [{"code": "A", "label": "old"}, {"code": "B", "label": "other"}]

    Validator(schema).validate({"code": "A", "label": "new"}, existing)


def test_unique_flag_implies_rule() -> None:
    column = ColumnDefinition(unique=True)

    assert column.is_unique
    assert [rule.kind for rule in column.effective_rules()] == [RuleKind.UNIQUE]
