"""
QueryResult returned by Database.execute().
"""

from dataclasses import dataclass
from typing import Any

from minirel.models.exceptions import ErrorKind
from minirel.models.value import Value, row_to_python


@dataclass
class QueryResult:
    """
    Outcome of one statement.

    Attributes:
        success: Whether the statement completed.
        message: Human-readable status or error text.
        rows: Result rows (SELECT, and rows touched by writes).
        row_count: Number of rows returned or affected.
        columns: Column names of `rows`, in display order.
        execution_time_ms: Wall time spent inside execute().
        error_kind: Category of the failure, if the statement failed.
    """

    success: bool
    message: str | None = None
    rows: list[dict[str, Value]] | None = None
    row_count: int | None = None
    columns: list[str] | None = None
    execution_time_ms: float = 0.0
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(
        cls,
        message: str | None = None,
        rows: list[dict[str, Value]] | None = None,
        columns: list[str] | None = None,
        row_count: int | None = None,
    ) -> "QueryResult":
        if row_count is None and rows is not None:
            row_count = len(rows)
        return cls(
            success=True, message=message, rows=rows, row_count=row_count, columns=columns
        )

    @classmethod
    def failure(cls, message: str, error_kind: ErrorKind | None = None) -> "QueryResult":
        return cls(success=False, message=message, error_kind=error_kind)

    def python_rows(self) -> list[dict[str, Any]]:
        """Rows with every Value unwrapped to a plain Python value."""
        return [row_to_python(row) for row in self.rows or []]

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form of the result."""
        payload: dict[str, Any] = {
            "success": self.success,
            "executionTimeMs": round(self.execution_time_ms, 3),
        }
        if self.message is not None:
            payload["message"] = self.message
        if self.error_kind is not None:
            payload["error"] = self.error_kind.value
        if self.rows is not None:
            payload["rows"] = self.python_rows()
        if self.row_count is not None:
            payload["rowCount"] = self.row_count
        if self.columns is not None:
            payload["columns"] = self.columns
        return payload
