"""
Custom exceptions for the query engine.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a failed statement."""

    SYNTAX_ERROR = "SyntaxError"
    UNKNOWN_COMMAND = "UnknownCommand"
    TABLE_NOT_FOUND = "TableNotFound"
    TABLE_ALREADY_EXISTS = "TableAlreadyExists"
    COLUMN_NOT_FOUND = "ColumnNotFound"
    DUPLICATE_COLUMN = "DuplicateColumn"
    INDEX_ALREADY_EXISTS = "IndexAlreadyExists"
    NULL_CONSTRAINT_VIOLATION = "NullConstraintViolation"
    UNIQUE_CONSTRAINT_VIOLATION = "UniqueConstraintViolation"
    TYPE_COERCION_ERROR = "TypeCoercionError"
    VALUE_COUNT_MISMATCH = "ValueCountMismatch"


class QueryError(Exception):
    """
    Base class for every error a statement can fail with.

    Database.execute() catches these and reports them as a failed
    QueryResult, so callers never see them raised.
    """

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SQLSyntaxError(QueryError):
    """
    Raised when the tokenizer or parser cannot make sense of the input.
    """

    kind = ErrorKind.SYNTAX_ERROR

    def __init__(self, message: str, position: int | None = None) -> None:
        """
        Initialize syntax error.

        Args:
            message: What was expected and what was found.
            position: Character offset in the SQL text, if known.
        """
        self.position = position
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)


class UnknownCommandError(QueryError):
    kind = ErrorKind.UNKNOWN_COMMAND

    def __init__(self, command: str | None) -> None:
        self.command = command
        super().__init__(f"Unknown command: {command}")


class TableNotFoundError(QueryError):
    kind = ErrorKind.TABLE_NOT_FOUND

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f'Table "{table}" does not exist')


class TableAlreadyExistsError(QueryError):
    kind = ErrorKind.TABLE_ALREADY_EXISTS

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f'Table "{table}" already exists')


class ColumnNotFoundError(QueryError):
    kind = ErrorKind.COLUMN_NOT_FOUND

    def __init__(self, column: str, table: str | None = None) -> None:
        self.column = column
        self.table = table
        if table is None:
            super().__init__(f'Column "{column}" does not exist')
        else:
            super().__init__(f'Column "{column}" does not exist in table "{table}"')


class DuplicateColumnError(QueryError):
    kind = ErrorKind.DUPLICATE_COLUMN

    def __init__(self, column: str, table: str) -> None:
        self.column = column
        self.table = table
        super().__init__(f'Column "{column}" is defined more than once in table "{table}"')


class IndexAlreadyExistsError(QueryError):
    kind = ErrorKind.INDEX_ALREADY_EXISTS

    def __init__(self, index: str) -> None:
        self.index = index
        super().__init__(f'Index "{index}" already exists')


class NullConstraintViolation(QueryError):
    kind = ErrorKind.NULL_CONSTRAINT_VIOLATION

    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f'Column "{column}" cannot be null')


class UniqueConstraintViolation(QueryError):
    """
    Raised when a write would store a value already held by another row
    in a unique index.
    """

    kind = ErrorKind.UNIQUE_CONSTRAINT_VIOLATION

    def __init__(self, column: str, value: object) -> None:
        self.column = column
        self.value = value
        super().__init__(f'Duplicate value "{value}" for unique column "{column}"')


class TypeCoercionError(QueryError):
    kind = ErrorKind.TYPE_COERCION_ERROR

    def __init__(self, value: object, type_name: str) -> None:
        self.value = value
        self.type_name = type_name
        super().__init__(f"Invalid {type_name} value: {value}")


class ValueCountMismatchError(QueryError):
    kind = ErrorKind.VALUE_COUNT_MISMATCH

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected} value(s) but got {actual}")
