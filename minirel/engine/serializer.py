"""
Snapshot serialization of a whole database.

Format: {table: {"schema": {"name", "columns": [...]}, "rows": [...]}}.
Loading recreates each table and replays its rows in stored order.
"""

import json
import logging
from typing import TYPE_CHECKING, Any

from minirel.models.schema import ColumnDef, DataType
from minirel.models.value import row_to_python

if TYPE_CHECKING:
    from minirel.engine.database import Database
    from minirel.models.table import Table

logger = logging.getLogger(__name__)


def column_to_dict(column: ColumnDef) -> dict[str, Any]:
    return {
        "name": column.name,
        "type": column.type.value,
        "primaryKey": column.primary_key,
        "unique": column.unique,
        "notNull": column.not_null,
        "autoIncrement": column.auto_increment,
    }


def column_from_dict(data: dict[str, Any]) -> ColumnDef:
    """
    Rebuild a column definition.

    Raises:
        ValueError: If the entry has no name or an unknown type.
    """
    if not data.get("name"):
        raise ValueError(f"Column entry without a name: {data}")
    try:
        data_type = DataType(data.get("type", DataType.STRING.value))
    except ValueError:
        raise ValueError(f"Unknown column type in snapshot: {data.get('type')}") from None

    return ColumnDef(
        name=data["name"],
        type=data_type,
        primary_key=bool(data.get("primaryKey", False)),
        unique=bool(data.get("unique", False)),
        not_null=bool(data.get("notNull", False)),
        auto_increment=bool(data.get("autoIncrement", False)),
    )


def table_to_dict(table: "Table") -> dict[str, Any]:
    return {
        "schema": {
            "name": table.name,
            "columns": [column_to_dict(column) for column in table.columns],
        },
        "rows": [row_to_python(row) for row in table.get_rows()],
    }


def dump(database: "Database") -> dict[str, Any]:
    """Snapshot every table, live rows only."""
    return {name: table_to_dict(database.get_table(name)) for name in database.get_tables()}


def dumps(database: "Database") -> str:
    return json.dumps(dump(database))


def load(database: "Database", data: dict[str, Any]) -> "Database":
    """
    Replay a snapshot into an empty database.

    Auto-increment counters are advanced past the largest stored value of
    each counted column, so fresh inserts do not collide with restored rows.

    Raises:
        ValueError: If the snapshot is structurally invalid.
        QueryError: If a stored row violates its table's constraints.
    """
    if not isinstance(data, dict):
        raise ValueError("Snapshot must be a mapping of table name to table data")

    for table_name, entry in data.items():
        try:
            schema = entry["schema"]
            rows = entry["rows"]
        except (KeyError, TypeError):
            raise ValueError(f"Malformed snapshot entry for table {table_name}") from None

        columns = [column_from_dict(column) for column in schema["columns"]]
        table = database.create_table(table_name, columns)
        for row in rows:
            table.insert(row)
        table.restore_counters()

        logger.info(f"Restored table {table_name} with {table.get_row_count()} row(s)")

    return database


def loads(database: "Database", text: str) -> "Database":
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Snapshot is not valid JSON: {e}") from e
    return load(database, data)
