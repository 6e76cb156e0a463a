"""
Data models for the query engine.
"""

from minirel.models.query import ParsedQuery
from minirel.models.result import QueryResult
from minirel.models.schema import ColumnDef, DataType, TableSchema
from minirel.models.value import Value, ValueType

__all__ = [
    "Value",
    "ValueType",
    "DataType",
    "ColumnDef",
    "TableSchema",
    "ParsedQuery",
    "QueryResult",
]
