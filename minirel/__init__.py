"""
In-memory relational database with a small SQL dialect.

This package provides:
- CREATE TABLE / DROP TABLE with PRIMARY KEY, UNIQUE, NOT NULL, AUTO_INCREMENT
- CREATE [UNIQUE] INDEX - B-Tree indexes used for equality lookups
- INSERT / UPDATE / DELETE with typed coercion and constraint checks
- SELECT with INNER/LEFT/RIGHT JOIN, WHERE, ORDER BY and LIMIT
- JSON snapshots of the whole database
"""

from minirel.engine import Database
from minirel.models import QueryResult

__all__ = ["Database", "QueryResult"]
