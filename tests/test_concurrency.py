"""
Concurrency tests: statements from many threads against one Database.
"""

import asyncio
import random

from minirel import Database


async def run_in_threads(db: Database, statements: list[str]):
    """Execute every statement on the default thread pool at once."""
    loop = asyncio.get_running_loop()
    return await asyncio.gather(
        *(loop.run_in_executor(None, db.execute, sql) for sql in statements)
    )


class TestConcurrentWrites:
    """Concurrent writers on shared tables."""

    async def test_auto_increment_ids_are_unique(self):
        """Test that concurrent inserts never hand out the same id."""
        db = Database()
        db.execute("CREATE TABLE t (id INT PRIMARY KEY AUTO_INCREMENT, v INT)")

        results = await run_in_threads(db, [f"INSERT INTO t (v) VALUES ({i})" for i in range(200)])

        assert all(result.success for result in results)
        ids = sorted(row["id"] for row in db.execute("SELECT id FROM t").python_rows())
        assert ids == list(range(1, 201))

    async def test_unique_value_inserted_once(self):
        """Test that only one of many racing inserts of a unique value wins."""
        db = Database()
        db.execute("CREATE TABLE t (email STRING UNIQUE)")

        results = await run_in_threads(
            db, ["INSERT INTO t VALUES ('same@example.com')"] * 50
        )

        assert sum(result.success for result in results) == 1
        assert db.get_table_info("t")["rowCount"] == 1

    async def test_updates_and_deletes_keep_index_consistent(self):
        """Test that the unique index matches the rows after a mixed workload."""
        db = Database()
        db.execute("CREATE TABLE t (id INT PRIMARY KEY, v INT)")
        db.execute(
            "INSERT INTO t VALUES " + ", ".join(f"({i}, 0)" for i in range(100))
        )

        rng = random.Random(3)
        statements = []
        for _ in range(300):
            key = rng.randint(0, 99)
            if rng.random() < 0.5:
                statements.append(f"UPDATE t SET v = {rng.randint(1, 9)} WHERE id = {key}")
            elif rng.random() < 0.5:
                statements.append(f"DELETE FROM t WHERE id = {key}")
            else:
                statements.append(f"INSERT INTO t VALUES ({key}, 1)")
        await run_in_threads(db, statements)

        rows = db.execute("SELECT * FROM t").python_rows()
        ids = [row["id"] for row in rows]
        assert len(ids) == len(set(ids))
        for row in rows:
            found = db.execute(f"SELECT v FROM t WHERE id = {row['id']}").python_rows()
            assert found == [{"v": row["v"]}]


class TestConcurrentReadsAndDDL:
    """Readers racing writers and schema changes."""

    async def test_reads_during_writes(self):
        """Test that readers always see whole rows."""
        db = Database()
        db.execute("CREATE TABLE t (id INT PRIMARY KEY AUTO_INCREMENT, a INT, b INT)")

        statements = []
        for i in range(200):
            statements.append(f"INSERT INTO t (a, b) VALUES ({i}, {i})")
            statements.append("SELECT a, b FROM t")
        results = await run_in_threads(db, statements)

        for result in results:
            assert result.success
            for row in result.python_rows():
                assert row.get("a") == row.get("b")

    async def test_join_while_tables_change(self):
        """Test joins taking both table locks while writers run."""
        db = Database()
        db.execute("CREATE TABLE users (id INT PRIMARY KEY, name STRING)")
        db.execute("CREATE TABLE posts (id INT PRIMARY KEY AUTO_INCREMENT, user_id INT)")

        statements = []
        for i in range(100):
            statements.append(f"INSERT INTO users VALUES ({i}, 'u{i}')")
            statements.append(f"INSERT INTO posts (user_id) VALUES ({i})")
            statements.append(
                "SELECT users.name FROM posts JOIN users ON posts.user_id = users.id"
            )
        results = await run_in_threads(db, statements)

        assert all(result.success for result in results)
        final = db.execute("SELECT users.name FROM posts JOIN users ON posts.user_id = users.id")
        assert final.row_count == 100

    async def test_create_and_drop_tables(self):
        """Test registry changes from many threads."""
        db = Database()

        creates = await run_in_threads(db, [f"CREATE TABLE t{i} (x INT)" for i in range(30)])
        assert all(result.success for result in creates)
        assert len(db.get_tables()) == 30

        drops = await run_in_threads(db, [f"DROP TABLE t{i}" for i in range(30)] * 2)
        assert sum(result.success for result in drops) == 30
        assert db.get_tables() == []
