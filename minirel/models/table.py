"""
Table - Row store with tombstone deletes, constraints and B-Tree indexes.
"""

import logging
import math
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from typing import Any

from minirel.models.btree import BTree
from minirel.models.exceptions import (
    ColumnNotFoundError,
    IndexAlreadyExistsError,
    NullConstraintViolation,
    TypeCoercionError,
    UniqueConstraintViolation,
)
from minirel.models.predicate import matches
from minirel.models.query import Operator, WhereClause
from minirel.models.schema import ColumnDef, DataType, TableSchema
from minirel.models.value import Value, ValueType

logger = logging.getLogger(__name__)

Row = dict[str, Value]


@dataclass
class Index:
    """A named B-Tree over one column of a table."""

    name: str
    column: str
    unique: bool
    tree: BTree


def coerce(value: Value, data_type: DataType) -> Value:
    """
    Convert a value to a column's scalar type.

    Args:
        value: Incoming value.
        data_type: Target column type.

    Returns:
        The converted value; NULL passes through unchanged.

    Raises:
        TypeCoercionError: If the value cannot represent the type.
    """
    if value.is_null():
        return value

    if data_type == DataType.INT:
        if value.type == ValueType.INT:
            return value
        if value.type == ValueType.FLOAT and math.isfinite(value.data):
            return Value.integer(int(value.data))
        if value.type == ValueType.STRING:
            text = value.data.strip()
            try:
                return Value.integer(int(text))
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                number = math.nan
            if math.isfinite(number):
                return Value.integer(int(number))
        raise TypeCoercionError(value.render(), "integer")

    if data_type == DataType.FLOAT:
        number = math.nan
        if value.is_numeric() or value.type == ValueType.STRING:
            raw = value.data.strip() if value.type == ValueType.STRING else value.data
            try:
                number = float(raw)
            except (ValueError, OverflowError):
                pass
        if math.isfinite(number):
            return value if value.type == ValueType.FLOAT else Value.real(number)
        raise TypeCoercionError(value.render(), "float")

    if data_type == DataType.BOOLEAN:
        if value.type == ValueType.BOOL:
            return value
        if value.is_numeric() and value.data in (0, 1):
            return Value.boolean(value.data == 1)
        if value.type == ValueType.STRING:
            text = value.data.strip().lower()
            if text in ("true", "1"):
                return Value.boolean(True)
            if text in ("false", "0"):
                return Value.boolean(False)
        raise TypeCoercionError(value.render(), "boolean")

    if data_type == DataType.STRING:
        if value.type == ValueType.STRING:
            return value
        return Value.string(value.render())

    raise ValueError(f"Unknown column type: {data_type}")


def _same_ordering(value: Value, data_type: DataType) -> bool:
    """
    Whether a literal orders the same way as the column's keys, so that a
    B-Tree descent finds exactly what a scan would.
    """
    if value.is_null():
        return True
    if data_type in (DataType.INT, DataType.FLOAT):
        return value.is_numeric()
    if data_type == DataType.BOOLEAN:
        return value.type == ValueType.BOOL
    return value.type == ValueType.STRING


class Table:
    """
    Single table: the source of truth for its rows, constraints and indexes.

    Rows are appended to an arena and never move; DELETE only tombstones a
    position, so index entries stay valid without a rewrite pass. Every
    PRIMARY KEY or UNIQUE column gets a unique index at creation time.
    """

    def __init__(
        self,
        name: str,
        columns: list[ColumnDef],
        btree_order: int = BTree.DEFAULT_ORDER,
    ) -> None:
        """
        Initialize an empty table.

        Args:
            name: Table name.
            columns: Ordered column definitions.
            btree_order: Order of every B-Tree index on this table.
        """
        self.schema = TableSchema(name=name, columns=list(columns))
        self._btree_order = btree_order

        self._rows: list[Row] = []
        self._tombstones: set[int] = set()
        self._indexes: dict[str, Index] = {}
        self._counters: dict[str, int] = {}

        # Guards rows, tombstones and indexes as one unit
        self.lock = threading.RLock()

        for column in self.schema.columns:
            if column.unique:
                self.create_index(f"idx_{name}_{column.name}", column.name, unique=True)
            if column.auto_increment:
                self._counters[column.name] = 0

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def columns(self) -> list[ColumnDef]:
        return self.schema.columns

    @property
    def auto_increment_counters(self) -> dict[str, int]:
        return dict(self._counters)

    def create_index(self, name: str, column: str, unique: bool = False) -> Index:
        """
        Build an index over the live rows and register it.

        Raises:
            IndexAlreadyExistsError: If the name is taken on this table.
            ColumnNotFoundError: If the column is not in the schema.
            UniqueConstraintViolation: If unique and live rows share a value.
        """
        with self.lock:
            if name in self._indexes:
                raise IndexAlreadyExistsError(name)
            column = self._column_name(column)

            tree = BTree(order=self._btree_order)
            for position, row in self._live():
                key = row[column]
                if unique and not key.is_null() and tree.has(key):
                    raise UniqueConstraintViolation(column, key)
                tree.insert(key, position)

            index = Index(name=name, column=column, unique=unique, tree=tree)
            self._indexes[name] = index
            logger.debug(f"Created index {name} on {self.name}({column}), {tree.size()} keys")
            return index

    def insert(self, data: Mapping[str, Any]) -> Row:
        """
        Validate and append one row.

        Args:
            data: Column name to value (Value or plain Python). Missing
                columns become NULL unless auto-incremented.

        Returns:
            A copy of the stored row.

        Raises:
            ColumnNotFoundError, NullConstraintViolation, TypeCoercionError,
            UniqueConstraintViolation. Nothing is stored when any is raised.
        """
        with self.lock:
            data = {self._column_name(column_name): raw for column_name, raw in data.items()}

            row: Row = {}
            assigned: dict[str, int] = {}

            for column in self.schema.columns:
                value = self._wrap(data[column.name], column) if column.name in data else None

                if column.auto_increment and (value is None or value.is_null()):
                    assigned[column.name] = self._counters[column.name] + 1
                    value = Value.integer(assigned[column.name])

                if column.not_null and (value is None or value.is_null()):
                    raise NullConstraintViolation(column.name)

                row[column.name] = coerce(value, column.type) if value is not None else Value.null()

            for index in self._indexes.values():
                key = row[index.column]
                if index.unique and not key.is_null() and index.tree.has(key):
                    raise UniqueConstraintViolation(index.column, key)

            position = len(self._rows)
            self._rows.append(row)
            self._counters.update(assigned)
            for index in self._indexes.values():
                index.tree.insert(row[index.column], position)

            return dict(row)

    def select(self, where: list[WhereClause] | None = None) -> list[Row]:
        """Return copies of the live rows matching every folded clause."""
        with self.lock:
            return [dict(self._rows[position]) for position in self._resolve_positions(where)]

    def select_where(self, column: str, operator: Operator | str, value: Any) -> list[Row]:
        """
        Return live rows where `column operator value` holds.

        Uses the column's index for `=`, a full scan otherwise.
        """
        if isinstance(operator, str) and not isinstance(operator, Operator):
            operator = "!=" if operator == "<>" else operator.upper()
        clause = WhereClause(column=column, operator=Operator(operator), value=Value.of(value))
        return self.select([clause])

    def update(
        self, set_values: Mapping[str, Any], where: list[WhereClause] | None = None
    ) -> list[Row]:
        """
        Assign new values to every matching row.

        Args:
            set_values: Column name to new value.
            where: Clause list; None or empty targets every live row.

        Returns:
            Copies of the updated rows.

        Raises:
            ColumnNotFoundError, NullConstraintViolation, TypeCoercionError,
            UniqueConstraintViolation. No row changes when any is raised.
        """
        with self.lock:
            assignments: Row = {}
            for column_name, raw in set_values.items():
                column = self.schema.get_column(self._column_name(column_name))
                value = self._wrap(raw, column)
                if column.not_null and value.is_null():
                    raise NullConstraintViolation(column.name)
                assignments[column.name] = coerce(value, column.type)

            targets = self._resolve_positions(where)
            target_set = set(targets)

            for index in self._indexes.values():
                if not index.unique or index.column not in assignments:
                    continue
                new_value = assignments[index.column]
                if new_value.is_null() or not targets:
                    continue
                if len(targets) > 1:
                    raise UniqueConstraintViolation(index.column, new_value)
                holders = [
                    position
                    for position in index.tree.search(new_value)
                    if position not in target_set and position not in self._tombstones
                ]
                if holders:
                    raise UniqueConstraintViolation(index.column, new_value)

            updated = []
            for position in targets:
                row = self._rows[position]
                previous = {column: row[column] for column in assignments}
                row.update(assignments)

                for index in self._indexes.values():
                    if index.column in assignments:
                        index.tree.delete(previous[index.column], position)
                        index.tree.insert(row[index.column], position)

                updated.append(dict(row))

            return updated

    def delete(self, where: list[WhereClause] | None = None) -> list[Row]:
        """
        Tombstone every matching row after unlinking it from all indexes.

        Returns:
            Copies of the deleted rows, captured before tombstoning.
        """
        with self.lock:
            deleted = []
            for position in self._resolve_positions(where):
                row = self._rows[position]
                deleted.append(dict(row))

                for index in self._indexes.values():
                    index.tree.delete(row[index.column], position)

                self._tombstones.add(position)

            return deleted

    def get_rows(self) -> list[Row]:
        with self.lock:
            return [dict(row) for _, row in self._live()]

    def get_rows_with_positions(self) -> list[tuple[int, Row]]:
        with self.lock:
            return [(position, dict(row)) for position, row in self._live()]

    def get_row_count(self) -> int:
        return len(self._rows) - len(self._tombstones)

    def get_indexes(self) -> list[Index]:
        return list(self._indexes.values())

    def find_index(self, column: str) -> Index | None:
        """Return the first index registered on a column."""
        for index in self._indexes.values():
            if index.column == column:
                return index
        return None

    def restore_counters(self) -> None:
        """Advance auto-increment counters past the largest stored value."""
        with self.lock:
            for column in self._counters:
                for _, row in self._live():
                    value = row[column]
                    if value.type == ValueType.INT and value.data > self._counters[column]:
                        self._counters[column] = value.data

    def compact(self) -> int:
        """
        Physically drop tombstoned rows and rebuild every index.

        Row positions change, so this is an offline maintenance step and is
        never triggered by normal statements.

        Returns:
            The number of rows reclaimed.
        """
        with self.lock:
            reclaimed = len(self._tombstones)
            if reclaimed == 0:
                return 0

            self._rows = [row for _, row in self._live()]
            self._tombstones = set()
            for index in self._indexes.values():
                index.tree.clear()
                for position, row in enumerate(self._rows):
                    index.tree.insert(row[index.column], position)

            logger.info(f"Compacted table {self.name}: reclaimed {reclaimed} row(s)")
            return reclaimed

    def _live(self) -> Iterator[tuple[int, Row]]:
        for position, row in enumerate(self._rows):
            if position not in self._tombstones:
                yield position, row

    def _column_name(self, column: str) -> str:
        """Strip this table's qualifier and check the column exists."""
        name = column
        if "." in column:
            table, name = column.rsplit(".", 1)
            if table != self.name:
                raise ColumnNotFoundError(column, self.name)
        if not self.schema.has_column(name):
            raise ColumnNotFoundError(column, self.name)
        return name

    def _wrap(self, raw: Any, column: ColumnDef) -> Value:
        try:
            return Value.of(raw)
        except TypeError:
            raise TypeCoercionError(raw, column.type.value) from None

    def _resolve_positions(self, where: list[WhereClause] | None) -> list[int]:
        """
        Pick target positions: the index for a lone `=` on an indexed
        column, a scan of live rows for everything else.
        """
        if not where:
            return [position for position, _ in self._live()]

        clauses = [replace(clause, column=self._column_name(clause.column)) for clause in where]

        if len(clauses) == 1 and clauses[0].operator == Operator.EQ:
            index = self.find_index(clauses[0].column)
            column = self.schema.get_column(clauses[0].column)
            if index is not None and _same_ordering(clauses[0].value, column.type):
                found = index.tree.search(clauses[0].value)
                return sorted(position for position in found if position not in self._tombstones)

        return [position for position, row in self._live() if matches(row, clauses)]
