"""
Database - Query executor and table registry.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from typing import Any

from minirel.engine import serializer
from minirel.engine.join import perform_join
from minirel.engine.ordering import limit_rows, order_rows, project
from minirel.models.btree import BTree
from minirel.models.exceptions import (
    ColumnNotFoundError,
    QueryError,
    TableAlreadyExistsError,
    TableNotFoundError,
    UnknownCommandError,
    ValueCountMismatchError,
)
from minirel.models.predicate import matches
from minirel.models.query import (
    CreateIndexQuery,
    CreateTableQuery,
    DeleteQuery,
    DropTableQuery,
    InsertQuery,
    ParsedQuery,
    SelectQuery,
    UpdateQuery,
)
from minirel.models.result import QueryResult
from minirel.models.schema import ColumnDef
from minirel.models.table import Table
from minirel.sql import parse

logger = logging.getLogger(__name__)


class Database:
    """
    In-memory relational database.

    Provides:
    - execute(sql): Parse and run one statement, never raising
    - create_table / drop_table / get_table: Programmatic access
    - serialize / deserialize: JSON snapshots

    Architecture:
    - SQL is parsed into a ParsedQuery and dispatched by its class
    - Each Table owns its rows, tombstones and B-Tree indexes
    - A registry lock guards the table map; each table has its own lock.
      Statements take the registry lock first, then the locks of every
      table they touch in name order.
    """

    def __init__(self, name: str = "main", btree_order: int = BTree.DEFAULT_ORDER) -> None:
        """
        Initialize an empty database.

        Args:
            name: Database name.
            btree_order: Order of every index B-Tree created by this database.
        """
        if not name or not name.strip():
            raise ValueError("Database name cannot be empty")
        if btree_order < BTree.MIN_ORDER or btree_order > BTree.MAX_ORDER:
            raise ValueError(
                f"btree_order must be between {BTree.MIN_ORDER} and {BTree.MAX_ORDER}, "
                f"got {btree_order}"
            )

        self._name = name
        self._btree_order = btree_order
        self._tables: dict[str, Table] = {}
        self._registry_lock = threading.RLock()

        self._handlers = {
            CreateTableQuery: self._execute_create_table,
            DropTableQuery: self._execute_drop_table,
            CreateIndexQuery: self._execute_create_index,
            InsertQuery: self._execute_insert,
            SelectQuery: self._execute_select,
            UpdateQuery: self._execute_update,
            DeleteQuery: self._execute_delete,
        }

    @property
    def name(self) -> str:
        return self._name

    def execute(self, sql: str) -> QueryResult:
        """
        Run one SQL statement.

        Every error is reported through the returned QueryResult; nothing
        is raised to the caller.

        Args:
            sql: Statement text.

        Returns:
            QueryResult with timing filled in.
        """
        start_time = time.perf_counter()

        try:
            result = self.execute_query(parse(sql))
        except QueryError as e:
            logger.info(f"Statement failed [{e.kind.value}]: {e.message}")
            result = QueryResult.failure(e.message, e.kind)
        except Exception as e:
            logger.exception(f"Unexpected error while executing: {sql!r}")
            result = QueryResult.failure(f"Internal error: {e}")

        result.execution_time_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Executed in {result.execution_time_ms:.2f}ms: {sql!r}")
        return result

    def execute_query(self, query: ParsedQuery) -> QueryResult:
        """
        Run an already parsed statement.

        Raises:
            QueryError: On any statement failure.
        """
        handler = self._handlers.get(type(query))
        if handler is None:
            raise UnknownCommandError(type(query).__name__)
        return handler(query)

    def create_table(self, name: str, columns: list[ColumnDef]) -> Table:
        """
        Register a new empty table.

        Raises:
            TableAlreadyExistsError: If the name is taken.
        """
        with self._registry_lock:
            if name in self._tables:
                raise TableAlreadyExistsError(name)
            table = Table(name, columns, btree_order=self._btree_order)
            self._tables[name] = table
            logger.debug(f"Created table {name} with {len(columns)} column(s)")
            return table

    def drop_table(self, name: str) -> None:
        """
        Discard a table together with all of its indexes.

        Raises:
            TableNotFoundError: If no such table exists.
        """
        with self._registry_lock:
            table = self._get_table(name)
            # Wait for statements still running against the table
            with table.lock:
                del self._tables[name]
            logger.debug(f"Dropped table {name}")

    def get_tables(self) -> list[str]:
        with self._registry_lock:
            return list(self._tables.keys())

    def get_table(self, name: str) -> Table | None:
        with self._registry_lock:
            return self._tables.get(name)

    def get_table_info(self, name: str) -> dict[str, Any] | None:
        """Describe a table's columns, indexes and live row count."""
        table = self.get_table(name)
        if table is None:
            return None

        with table.lock:
            return {
                "name": table.name,
                "columns": [
                    {
                        "name": column.name,
                        "type": column.type.value,
                        "constraints": column.constraints(),
                    }
                    for column in table.columns
                ],
                "indexes": [
                    {"name": index.name, "column": index.column, "unique": index.unique}
                    for index in table.get_indexes()
                ],
                "rowCount": table.get_row_count(),
            }

    def to_snapshot(self) -> dict[str, Any]:
        with self._registry_lock:
            return serializer.dump(self)

    def serialize(self) -> str:
        with self._registry_lock:
            return serializer.dumps(self)

    @classmethod
    def from_snapshot(
        cls,
        data: dict[str, Any],
        name: str = "main",
        btree_order: int = BTree.DEFAULT_ORDER,
    ) -> "Database":
        return serializer.load(cls(name, btree_order), data)

    @classmethod
    def deserialize(
        cls,
        text: str,
        name: str = "main",
        btree_order: int = BTree.DEFAULT_ORDER,
    ) -> "Database":
        """
        Rebuild a database from serialize() output.

        Raises:
            ValueError: If the text is not a valid snapshot.
            QueryError: If stored rows violate their table's constraints.
        """
        return serializer.loads(cls(name, btree_order), text)

    def _get_table(self, name: str) -> Table:
        table = self._tables.get(name)
        if table is None:
            raise TableNotFoundError(name)
        return table

    @contextmanager
    def _locked(self, *names: str) -> Iterator[dict[str, Table]]:
        """Resolve tables under the registry lock and hold their locks."""
        with ExitStack() as stack:
            with self._registry_lock:
                tables = {name: self._get_table(name) for name in names}
                for name in sorted(tables):
                    stack.enter_context(tables[name].lock)
            yield tables

    # Statement handlers

    def _execute_create_table(self, query: CreateTableQuery) -> QueryResult:
        self.create_table(query.table, query.columns)
        return QueryResult.ok(f'Table "{query.table}" created successfully')

    def _execute_drop_table(self, query: DropTableQuery) -> QueryResult:
        self.drop_table(query.table)
        return QueryResult.ok(f'Table "{query.table}" dropped successfully')

    def _execute_create_index(self, query: CreateIndexQuery) -> QueryResult:
        with self._locked(query.table) as tables:
            tables[query.table].create_index(query.name, query.column, query.unique)
        return QueryResult.ok(f'Index "{query.name}" created on {query.table}({query.column})')

    def _execute_insert(self, query: InsertQuery) -> QueryResult:
        with self._locked(query.table) as tables:
            table = tables[query.table]
            columns = table.schema.column_names
            inserted = []

            # Tuples are committed one by one; a failure keeps earlier rows
            try:
                for values in query.values:
                    if query.columns:
                        if len(values) != len(query.columns):
                            raise ValueCountMismatchError(len(query.columns), len(values))
                        data = dict(zip(query.columns, values))
                    else:
                        if len(values) > len(columns):
                            raise ValueCountMismatchError(len(columns), len(values))
                        data = dict(zip(columns, values))
                    inserted.append(table.insert(data))
            except QueryError as e:
                if not inserted:
                    raise
                logger.info(
                    f"Insert into {query.table} stopped after {len(inserted)} row(s): {e.message}"
                )
                return QueryResult(
                    success=False,
                    message=f"{e.message} ({len(inserted)} row(s) inserted before the failure)",
                    rows=inserted,
                    row_count=len(inserted),
                    columns=columns,
                    error_kind=e.kind,
                )

        return QueryResult.ok(f"Inserted {len(inserted)} row(s)", rows=inserted, columns=columns)

    def _execute_select(self, query: SelectQuery) -> QueryResult:
        names = [query.table] + [join.table for join in query.joins]
        with self._locked(*set(names)) as tables:
            base = tables[query.table]

            for join in query.joins:
                self._check_column(tables, _qualify(join.left_table, join.left_column))
                self._check_column(tables, _qualify(join.right_table, join.right_column))
            for clause in query.where:
                self._check_column(tables, clause.column)
            for order in query.order_by:
                self._check_column(tables, order.column)
            for column in query.columns or []:
                self._check_column(tables, column)

            # WHERE runs on the base table unless it names a joined table's column
            filter_base = all(_belongs_to(base, clause.column) for clause in query.where)
            rows = base.select(query.where if filter_base else None)

            for join in query.joins:
                rows = perform_join(
                    rows, tables[join.table].get_rows(), join, query.table, join.table
                )

            if not filter_base:
                rows = [row for row in rows if matches(row, query.where)]

        rows = order_rows(rows, query.order_by)
        rows = limit_rows(rows, query.limit)

        if query.columns is not None:
            rows = project(rows, query.columns)
            columns = list(query.columns)
        elif not query.joins:
            columns = base.schema.column_names
        else:
            columns = list(dict.fromkeys(column for row in rows for column in row))

        return QueryResult.ok(rows=rows, columns=columns)

    def _execute_update(self, query: UpdateQuery) -> QueryResult:
        with self._locked(query.table) as tables:
            table = tables[query.table]
            updated = table.update(query.assignments, query.where)
        return QueryResult.ok(
            f"Updated {len(updated)} row(s)", rows=updated, columns=table.schema.column_names
        )

    def _execute_delete(self, query: DeleteQuery) -> QueryResult:
        with self._locked(query.table) as tables:
            table = tables[query.table]
            deleted = table.delete(query.where)
        return QueryResult.ok(
            f"Deleted {len(deleted)} row(s)", rows=deleted, columns=table.schema.column_names
        )

    def _check_column(self, tables: dict[str, Table], column: str) -> None:
        """Raise unless some participating table has the column."""
        if "." in column:
            table_name, bare = column.rsplit(".", 1)
            table = tables.get(table_name)
            if table is not None and table.schema.has_column(bare):
                return
        elif any(table.schema.has_column(column) for table in tables.values()):
            return
        raise ColumnNotFoundError(column)


def _qualify(table: str | None, column: str) -> str:
    return column if table is None else f"{table}.{column}"


def _belongs_to(table: Table, column: str) -> bool:
    if "." in column:
        table_name, bare = column.rsplit(".", 1)
        return table_name == table.name and table.schema.has_column(bare)
    return table.schema.has_column(column)
