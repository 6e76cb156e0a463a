"""
Parsed query variants produced by the SQL parser.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from minirel.models.schema import ColumnDef
from minirel.models.value import Value


class Operator(str, Enum):
    """Comparison operators usable in a WHERE clause."""

    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    LIKE = "LIKE"


class Connector(str, Enum):
    AND = "AND"
    OR = "OR"


class JoinType(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass
class WhereClause:
    """
    One `column op value` term.

    Attributes:
        column: Column name, possibly `table.column`.
        operator: Comparison operator.
        value: Literal to compare against.
        connector: AND/OR joining this clause to the next one, if any.
    """

    column: str
    operator: Operator
    value: Value
    connector: Connector | None = None


@dataclass
class JoinClause:
    """
    `[INNER|LEFT|RIGHT] JOIN table ON left = right`.

    The right side always refers to the joined table; the table qualifiers
    are kept when the ON operands were written as `table.column`.
    """

    type: JoinType
    table: str
    left_column: str
    right_column: str
    left_table: str | None = None
    right_table: str | None = None


@dataclass
class OrderBy:
    column: str
    direction: SortDirection = SortDirection.ASC


@dataclass
class SelectQuery:
    """SELECT statement. `columns` is None for `SELECT *`."""

    table: str
    columns: list[str] | None = None
    joins: list[JoinClause] = field(default_factory=list)
    where: list[WhereClause] = field(default_factory=list)
    order_by: list[OrderBy] = field(default_factory=list)
    limit: int | None = None


@dataclass
class InsertQuery:
    """INSERT statement. An empty `columns` list maps values positionally."""

    table: str
    columns: list[str]
    values: list[list[Value]]


@dataclass
class UpdateQuery:
    table: str
    assignments: dict[str, Value]
    where: list[WhereClause] = field(default_factory=list)


@dataclass
class DeleteQuery:
    table: str
    where: list[WhereClause] = field(default_factory=list)


@dataclass
class CreateTableQuery:
    table: str
    columns: list[ColumnDef]


@dataclass
class DropTableQuery:
    table: str


@dataclass
class CreateIndexQuery:
    name: str
    table: str
    column: str
    unique: bool = False


ParsedQuery = Union[
    SelectQuery,
    InsertQuery,
    UpdateQuery,
    DeleteQuery,
    CreateTableQuery,
    DropTableQuery,
    CreateIndexQuery,
]
