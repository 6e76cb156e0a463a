"""
Column and table schema definitions.
"""

from dataclasses import dataclass, field
from enum import Enum

from minirel.models.exceptions import DuplicateColumnError


class DataType(str, Enum):
    """Scalar column types."""

    INT = "int"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"


@dataclass(frozen=True)
class ColumnDef:
    """
    A column definition from CREATE TABLE.

    A primary key column is always NOT NULL and UNIQUE.
    """

    name: str
    type: DataType
    primary_key: bool = False
    unique: bool = False
    not_null: bool = False
    auto_increment: bool = False

    def __post_init__(self) -> None:
        if self.primary_key:
            object.__setattr__(self, "unique", True)
            object.__setattr__(self, "not_null", True)

    def constraints(self) -> list[str]:
        """Constraint labels in the order they are displayed."""
        labels = []
        if self.primary_key:
            labels.append("PRIMARY KEY")
        if self.unique:
            labels.append("UNIQUE")
        if self.not_null:
            labels.append("NOT NULL")
        if self.auto_increment:
            labels.append("AUTO_INCREMENT")
        return labels


@dataclass(frozen=True)
class TableSchema:
    """Table name plus its ordered columns."""

    name: str
    columns: list[ColumnDef] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise DuplicateColumnError(column.name, self.name)
            seen.add(column.name)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def get_column(self, name: str) -> ColumnDef | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.get_column(name) is not None
