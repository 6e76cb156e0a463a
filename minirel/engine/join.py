"""
Nested-loop join over materialized row lists.
"""

from minirel.models.predicate import evaluate_condition
from minirel.models.query import JoinClause, JoinType, Operator
from minirel.models.value import Value

Row = dict[str, Value]


def perform_join(
    left_rows: list[Row],
    right_rows: list[Row],
    join: JoinClause,
    left_name: str,
    right_name: str,
) -> list[Row]:
    """
    Join two row lists by comparing every left row with every right row.

    Output rows carry every column twice: bare (the later side wins on a
    name clash) and qualified as `table.column`. An unmatched LEFT JOIN row
    has no right-side keys at all. RIGHT JOIN runs as a LEFT JOIN with the
    operands swapped.

    Args:
        left_rows: Rows accumulated so far (base table or earlier joins).
        right_rows: Rows of the joined table.
        join: The JOIN clause.
        left_name: Table name used to qualify left-side columns.
        right_name: Table name used to qualify right-side columns.

    Returns:
        Joined rows. O(len(left_rows) * len(right_rows)).
    """
    if join.type == JoinType.RIGHT:
        swapped = JoinClause(
            type=JoinType.LEFT,
            table=left_name,
            left_column=join.right_column,
            right_column=join.left_column,
            left_table=join.right_table,
            right_table=join.left_table,
        )
        return perform_join(right_rows, left_rows, swapped, right_name, left_name)

    result = []
    for left in left_rows:
        left_key = _join_key(left, join.left_table, join.left_column)
        matched = False

        for right in right_rows:
            right_key = _join_key(right, join.right_table, join.right_column)
            if left_key is None or right_key is None:
                continue
            if evaluate_condition(left_key, Operator.EQ, right_key):
                matched = True
                result.append(_combine(left, left_name, right, right_name))

        if not matched and join.type == JoinType.LEFT:
            result.append(_combine(left, left_name, None, right_name))

    return result


def _join_key(row: Row, table: str | None, column: str) -> Value | None:
    if table is not None and f"{table}.{column}" in row:
        return row[f"{table}.{column}"]
    return row.get(column)


def _combine(left: Row, left_name: str, right: Row | None, right_name: str) -> Row:
    combined: Row = {}
    _merge(combined, left, left_name)
    if right is not None:
        _merge(combined, right, right_name)
    return combined


def _merge(target: Row, row: Row, table_name: str) -> None:
    # Bare keys of an already joined row belong to whichever table last set them.
    qualified = {column.rsplit(".", 1)[1] for column in row if "." in column}
    for column, value in row.items():
        target[column] = value
        if "." not in column and column not in qualified:
            target[f"{table_name}.{column}"] = value
