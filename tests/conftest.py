"""
Shared pytest fixtures for query engine tests.
"""

import pytest

from minirel import Database
from minirel.models.btree import BTree
from minirel.models.schema import ColumnDef, DataType
from minirel.models.table import Table


def run(db: Database, *statements: str) -> None:
    """Execute setup statements, failing loudly if any is rejected."""
    for sql in statements:
        result = db.execute(sql)
        assert result.success, f"{sql}: {result.message}"


@pytest.fixture
def db():
    """Provide an empty Database."""
    return Database()


@pytest.fixture
def users_db(db):
    """Provide a Database with a populated users table."""
    run(
        db,
        "CREATE TABLE users (id INT PRIMARY KEY AUTO_INCREMENT, "
        "name VARCHAR(50) NOT NULL, email VARCHAR(100) UNIQUE, age INT, active BOOLEAN)",
        "INSERT INTO users (name, email, age, active) VALUES "
        "('Alice', 'alice@example.com', 30, true), "
        "('Bob', 'bob@example.com', 25, false), "
        "('Carol', 'carol@example.com', 35, true), "
        "('Dave', null, null, false)",
    )
    return db


@pytest.fixture
def join_db(db):
    """Provide a Database with two users and a single post by the first."""
    run(
        db,
        "CREATE TABLE users (id INT PRIMARY KEY, name STRING)",
        "CREATE TABLE posts (id INT PRIMARY KEY, user_id INT, title STRING)",
        "INSERT INTO users VALUES (1, 'a'), (2, 'b')",
        "INSERT INTO posts VALUES (10, 1, 'hello')",
    )
    return db


@pytest.fixture
def btree():
    """Provide a fresh minimum-order BTree so splits happen early."""
    return BTree(order=3)


@pytest.fixture
def table():
    """Provide a standalone users Table."""
    return Table(
        "users",
        [
            ColumnDef("id", DataType.INT, primary_key=True, auto_increment=True),
            ColumnDef("name", DataType.STRING, not_null=True),
            ColumnDef("email", DataType.STRING, unique=True),
            ColumnDef("score", DataType.FLOAT),
            ColumnDef("active", DataType.BOOLEAN),
        ],
        btree_order=3,
    )
