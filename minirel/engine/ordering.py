"""
ORDER BY, LIMIT and column projection over result rows.
"""

from functools import cmp_to_key

from minirel.models.predicate import resolve_column
from minirel.models.query import OrderBy, SortDirection
from minirel.models.value import Value, compare

Row = dict[str, Value]


def order_rows(rows: list[Row], order_by: list[OrderBy]) -> list[Row]:
    """
    Stable multi-key sort.

    NULL (and a missing column) sorts first within a key; ties fall through
    to the next key; DESC negates the per-key comparison.
    """
    if not order_by:
        return list(rows)

    def compare_rows(a: Row, b: Row) -> int:
        for order in order_by:
            a_value = resolve_column(a, order.column) or Value.null()
            b_value = resolve_column(b, order.column) or Value.null()
            cmp = compare(a_value, b_value)
            if cmp != 0:
                return -cmp if order.direction == SortDirection.DESC else cmp
        return 0

    return sorted(rows, key=cmp_to_key(compare_rows))


def limit_rows(rows: list[Row], limit: int | None) -> list[Row]:
    """Keep the first `limit` rows; no OFFSET."""
    if limit is None:
        return rows
    return rows[:limit]


def project(rows: list[Row], columns: list[str]) -> list[Row]:
    """
    Keep only the requested columns, in request order.

    `table.column` falls back to the bare column when the row has no
    qualified key. Columns a row lacks entirely are left out of that row.
    """
    projected = []
    for row in rows:
        out: Row = {}
        for column in columns:
            value = resolve_column(row, column)
            if value is not None:
                out[column] = value
        projected.append(out)
    return projected
