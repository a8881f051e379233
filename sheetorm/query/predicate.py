"""
Predicate builder.

A predicate is an ordered list of (column, operator, value, boolean) clauses.
`Predicate.matches` folds them strictly left to right: the first clause seeds
the result and each following clause is combined with AND, or with OR when it
was added through `or_where`. There is no grouping beyond that fold.

`=` and `!=` use coercing equality: a number compared with a numeric string
compares numerically, booleans compare as 0/1 and None only equals None. This
lets an id read back from the store match a literal of another type.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

EQ = "="
NE = "!="
GT = ">"
LT = "<"
GE = ">="
LE = "<="
IN = "IN"
NOT_IN = "NOT IN"
BETWEEN = "BETWEEN"
NOT_BETWEEN = "NOT BETWEEN"
NULL = "NULL"
NOT_NULL = "NOT NULL"

OPERATORS = frozenset({EQ, NE, GT, LT, GE, LE, IN, NOT_IN, BETWEEN, NOT_BETWEEN, NULL, NOT_NULL})
UNARY_OPERATORS = frozenset({NULL, NOT_NULL})

AND = "AND"
OR = "OR"

_MISSING: Any = object()


@dataclass(frozen=True)
class WhereClause:
    column: str
    operator: str
    value: Any = None
    boolean: str = AND


def _to_number(text: str) -> float:
    stripped = text.strip()
    if not stripped:
        return 0.0
    try:
        return float(stripped)
    except ValueError:
        return math.nan


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def loose_equals(left: Any, right: Any) -> bool:
    """Coercing equality used by the `=` and `!=` operators."""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool):
        left = int(left)
    if isinstance(right, bool):
        right = int(right)
    if _is_number(left) and isinstance(right, str):
        right = _to_number(right)
    elif isinstance(left, str) and _is_number(right):
        left = _to_number(left)
    return left == right


def _compare(op: Callable[[Any, Any], bool], left: Any, right: Any) -> bool:
    # Values Python cannot order (e.g. None against a number) never satisfy the comparison.
    try:
        return bool(op(left, right))
    except TypeError:
        return False


def _is_bounds(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) == 2


def _is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _is_null(value: Any) -> bool:
    return value is None or value == ""


def _between(value: Any, bounds: Sequence[Any]) -> bool:
    return _compare(lambda a, b: a >= b, value, bounds[0]) and _compare(
        lambda a, b: a <= b, value, bounds[1]
    )


def _not_between(value: Any, bounds: Sequence[Any]) -> bool:
    return _compare(lambda a, b: a < b, value, bounds[0]) or _compare(
        lambda a, b: a > b, value, bounds[1]
    )


_EVALUATORS: Dict[str, Callable[[Any, Any], bool]] = {
    EQ: loose_equals,
    NE: lambda value, operand: not loose_equals(value, operand),
    GT: lambda value, operand: _compare(lambda a, b: a > b, value, operand),
    LT: lambda value, operand: _compare(lambda a, b: a < b, value, operand),
    GE: lambda value, operand: _compare(lambda a, b: a >= b, value, operand),
    LE: lambda value, operand: _compare(lambda a, b: a <= b, value, operand),
    IN: lambda value, operand: _is_collection(operand) and value in operand,
    NOT_IN: lambda value, operand: _is_collection(operand) and value not in operand,
    NULL: lambda value, operand: _is_null(value),
    NOT_NULL: lambda value, operand: not _is_null(value),
    BETWEEN: lambda value, operand: _is_bounds(operand) and _between(value, operand),
    NOT_BETWEEN: lambda value, operand: not _is_bounds(operand) or _not_between(value, operand),
}


def evaluate_clause(record: Mapping[str, Any], clause: WhereClause) -> bool:
    """Evaluate one clause against a record. Unknown operators are false."""
    evaluator = _EVALUATORS.get(clause.operator)
    if evaluator is None:
        return False
    return evaluator(record.get(clause.column), clause.value)


def _normalize_operator(operator: Any) -> Any:
    if isinstance(operator, str):
        candidate = " ".join(operator.upper().split())
        if candidate in OPERATORS:
            return candidate
    return operator


class Predicate:
    """
    Accumulates where-clauses and evaluates them against in-memory records.
    """

    def __init__(self, clauses: Sequence[WhereClause] = ()) -> None:
        self._clauses: List[WhereClause] = list(clauses)

    def where(
        self,
        column: str,
        operator: Any,
        value: Any = _MISSING,
        boolean: str = AND,
    ) -> "Predicate":
        """
        Append a clause.

        `where("id", 1)` is shorthand for `where("id", "=", 1)`; the only
        two-argument forms that are not equality are `where(col, "NULL")` and
        `where(col, "NOT NULL")`.
        """
        if value is _MISSING:
            if isinstance(operator, str) and operator in UNARY_OPERATORS:
                value = None
            else:
                operator, value = EQ, operator
        else:
            operator = _normalize_operator(operator)
        if isinstance(value, list):
            value = tuple(value)
        self._clauses.append(WhereClause(column, operator, value, boolean))
        return self

    def or_where(self, column: str, operator: Any, value: Any = _MISSING) -> "Predicate":
        return self.where(column, operator, value, OR)

    def where_in(self, column: str, values: Sequence[Any]) -> "Predicate":
        return self.where(column, IN, tuple(values))

    def where_not_in(self, column: str, values: Sequence[Any]) -> "Predicate":
        return self.where(column, NOT_IN, tuple(values))

    def where_null(self, column: str) -> "Predicate":
        return self.where(column, NULL)

    def where_not_null(self, column: str) -> "Predicate":
        return self.where(column, NOT_NULL)

    def where_between(self, column: str, bounds: Sequence[Any]) -> "Predicate":
        return self.where(column, BETWEEN, tuple(bounds))

    def where_not_between(self, column: str, bounds: Sequence[Any]) -> "Predicate":
        return self.where(column, NOT_BETWEEN, tuple(bounds))

    @property
    def clauses(self) -> Tuple[WhereClause, ...]:
        return tuple(self._clauses)

    def matches(self, record: Mapping[str, Any]) -> bool:
        if not self._clauses:
            return True

        result = evaluate_clause(record, self._clauses[0])
        for clause in self._clauses[1:]:
            outcome = evaluate_clause(record, clause)
            if clause.boolean == OR:
                result = result or outcome
            else:
                result = result and outcome
        return result

    def copy(self) -> "Predicate":
        return Predicate(self._clauses)

    def __len__(self) -> int:
        return len(self._clauses)

    def __repr__(self) -> str:
        return f"Predicate({self._clauses!r})"


__all__ = [
    "OPERATORS",
    "AND",
    "OR",
    "WhereClause",
    "Predicate",
    "evaluate_clause",
    "loose_equals",
]
