"""
Value and ValueType for representing typed cell data.
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class ValueType(IntEnum):
    """Type tag of a stored cell value."""

    NULL = 0
    INT = 1
    FLOAT = 2
    BOOL = 3
    STRING = 4


@dataclass(frozen=True)
class Value:
    """
    A single cell value tagged with its scalar type.

    Attributes:
        type: The variant this value belongs to.
        data: The Python payload (None for NULL).
    """

    type: ValueType
    data: int | float | bool | str | None = None

    @classmethod
    def null(cls) -> "Value":
        return _NULL

    @classmethod
    def integer(cls, data: int) -> "Value":
        return cls(type=ValueType.INT, data=int(data))

    @classmethod
    def real(cls, data: float) -> "Value":
        return cls(type=ValueType.FLOAT, data=float(data))

    @classmethod
    def boolean(cls, data: bool) -> "Value":
        return cls(type=ValueType.BOOL, data=bool(data))

    @classmethod
    def string(cls, data: str) -> "Value":
        return cls(type=ValueType.STRING, data=str(data))

    @classmethod
    def of(cls, data: Any) -> "Value":
        """
        Wrap a plain Python object.

        Args:
            data: None, bool, int, float, str or an existing Value.

        Returns:
            The matching Value variant.

        Raises:
            TypeError: If the object has no matching variant.
        """
        if isinstance(data, Value):
            return data
        if data is None:
            return _NULL
        # bool is a subclass of int, check it first
        if isinstance(data, bool):
            return cls.boolean(data)
        if isinstance(data, int):
            return cls.integer(data)
        if isinstance(data, float):
            return cls.real(data)
        if isinstance(data, str):
            return cls.string(data)
        raise TypeError(f"Unsupported value type: {type(data).__name__}")

    def is_null(self) -> bool:
        return self.type == ValueType.NULL

    def is_numeric(self) -> bool:
        return self.type in (ValueType.INT, ValueType.FLOAT)

    def to_python(self) -> int | float | bool | str | None:
        return self.data

    def render(self) -> str:
        """Render the value as text, the way a STRING column would store it."""
        if self.type == ValueType.NULL:
            return "null"
        if self.type == ValueType.BOOL:
            return "true" if self.data else "false"
        if self.type == ValueType.FLOAT:
            if math.isfinite(self.data) and float(self.data).is_integer():
                return str(int(self.data))
            return repr(self.data)
        if self.type in (ValueType.INT, ValueType.STRING):
            return str(self.data)
        raise ValueError(f"Unknown value type: {self.type}")

    def __str__(self) -> str:
        return self.render()


_NULL = Value(type=ValueType.NULL)


def compare(a: Value, b: Value) -> int:
    """
    Total order over values used by indexes, predicates and ORDER BY.

    NULL sorts before everything, numbers compare numerically, strings
    lexicographically, false < true. Any other pairing compares the
    rendered text of both sides.

    Returns:
        Negative, zero or positive like a classic comparator.
    """
    if a.type == ValueType.NULL and b.type == ValueType.NULL:
        return 0
    if a.type == ValueType.NULL:
        return -1
    if b.type == ValueType.NULL:
        return 1

    if a.is_numeric() and b.is_numeric():
        return (a.data > b.data) - (a.data < b.data)
    if a.type == ValueType.STRING and b.type == ValueType.STRING:
        return (a.data > b.data) - (a.data < b.data)
    if a.type == ValueType.BOOL and b.type == ValueType.BOOL:
        return int(a.data) - int(b.data)

    left, right = a.render(), b.render()
    return (left > right) - (left < right)


def row_to_python(row: dict[str, Value]) -> dict[str, Any]:
    """Convert a row of Values to a dict of plain Python values."""
    return {column: value.to_python() for column, value in row.items()}
