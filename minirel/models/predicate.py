"""
WHERE clause evaluation shared by the table store and the executor.
"""

import re
from collections.abc import Mapping
from functools import lru_cache

from minirel.models.query import Connector, Operator, WhereClause
from minirel.models.value import Value, ValueType, compare


@lru_cache(maxsize=256)
def _like_pattern(pattern: str) -> re.Pattern:
    """Translate a SQL LIKE pattern into an anchored regex."""
    parts = []
    for ch in pattern.lower():
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def like(text: str, pattern: str) -> bool:
    """Case-insensitive full-string LIKE match."""
    return _like_pattern(pattern).fullmatch(text.lower()) is not None


def evaluate_condition(row_value: Value, operator: Operator, compare_value: Value) -> bool:
    """
    Evaluate `row_value operator compare_value`.

    NULL = NULL is true; any other comparison involving NULL is false,
    including NULL != x.
    """
    if row_value.is_null() or compare_value.is_null():
        return operator == Operator.EQ and row_value.is_null() and compare_value.is_null()

    if operator == Operator.LIKE:
        if row_value.type != ValueType.STRING or compare_value.type != ValueType.STRING:
            return False
        return like(row_value.data, compare_value.data)

    cmp = compare(row_value, compare_value)
    if operator == Operator.EQ:
        return cmp == 0
    if operator == Operator.NE:
        return cmp != 0
    if operator == Operator.GT:
        return cmp > 0
    if operator == Operator.LT:
        return cmp < 0
    if operator == Operator.GE:
        return cmp >= 0
    if operator == Operator.LE:
        return cmp <= 0
    raise ValueError(f"Unknown operator: {operator}")


def resolve_column(row: Mapping[str, Value], column: str) -> Value | None:
    """
    Look a column up in a row, falling back from `table.column` to the bare
    column name. Returns None when the row has neither key.
    """
    if column in row:
        return row[column]
    if "." in column:
        bare = column.rsplit(".", 1)[1]
        if bare in row:
            return row[bare]
    return None


def matches(row: Mapping[str, Value], clauses: list[WhereClause]) -> bool:
    """
    Fold a clause list strictly left to right.

    Each clause's connector joins it to the next one; there is no AND/OR
    precedence. An empty list matches every row.
    """
    if not clauses:
        return True

    result = _evaluate_clause(row, clauses[0])
    for previous, clause in zip(clauses, clauses[1:]):
        current = _evaluate_clause(row, clause)
        if previous.connector == Connector.OR:
            result = result or current
        else:
            result = result and current
    return result


def _evaluate_clause(row: Mapping[str, Value], clause: WhereClause) -> bool:
    value = resolve_column(row, clause.column)
    if value is None:
        value = Value.null()
    return evaluate_condition(value, clause.operator, clause.value)
