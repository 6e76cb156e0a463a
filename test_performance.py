#!/usr/bin/env python3
"""
Performance Test Script for the Query Engine

Tests:
1. INSERT throughput (auto-increment primary key + unique column)
2. Indexed equality lookups vs full-scan lookups
3. Range filters (always a scan)
4. INNER JOIN over two tables
5. UPDATE / DELETE through the primary key index

Metrics:
- Statements per second
- Latency (p50, p95, p99)
"""

import random
import statistics
import string
import sys
import time
from typing import List

from minirel import Database


class PerformanceTest:
    def __init__(self, btree_order: int = 32):
        self.btree_order = btree_order
        self.db: Database | None = None

    def setup(self):
        """Create a fresh database with the benchmark schema."""
        self.db = Database(name="bench", btree_order=self.btree_order)
        self.run(
            "CREATE TABLE users (id INT PRIMARY KEY AUTO_INCREMENT, "
            "email VARCHAR(255) UNIQUE, name VARCHAR(100), age INT)"
        )
        self.run(
            "CREATE TABLE orders (id INT PRIMARY KEY AUTO_INCREMENT, "
            "user_id INT NOT NULL, total FLOAT)"
        )

    def run(self, sql: str):
        result = self.db.execute(sql)
        if not result.success:
            raise RuntimeError(f"Benchmark statement failed: {result.message} ({sql})")
        return result

    @staticmethod
    def generate_random_string(length: int) -> str:
        return ''.join(random.choices(string.ascii_lowercase, k=length))

    @staticmethod
    def calculate_stats(latencies: List[int]) -> dict:
        """Calculate latency statistics (latencies in nanoseconds)."""
        if not latencies:
            return {}

        sorted_latencies = sorted(latencies)
        return {
            "min_ms": min(latencies) / 1_000_000,
            "max_ms": max(latencies) / 1_000_000,
            "mean_ms": statistics.mean(latencies) / 1_000_000,
            "median_ms": statistics.median(latencies) / 1_000_000,
            "p95_ms": sorted_latencies[int(len(sorted_latencies) * 0.95)] / 1_000_000,
            "p99_ms": sorted_latencies[int(len(sorted_latencies) * 0.99)] / 1_000_000,
        }

    def time_statements(self, name: str, statements: List[str]) -> dict:
        """Execute statements one by one and collect per-statement latency."""
        print(f"\n{'='*60}")
        print(f"{name}: {len(statements)} statements")
        print(f"{'='*60}")

        latencies = []
        rows = 0
        start_time = time.perf_counter_ns()

        for sql in statements:
            op_start = time.perf_counter_ns()
            result = self.run(sql)
            latencies.append(time.perf_counter_ns() - op_start)
            rows += result.row_count or 0

        elapsed = (time.perf_counter_ns() - start_time) / 1_000_000_000

        results = {
            "test": name,
            "count": len(statements),
            "rows": rows,
            "elapsed_sec": elapsed,
            "ops_per_sec": len(statements) / elapsed if elapsed > 0 else 0.0,
            **self.calculate_stats(latencies),
        }
        self.print_results(results)
        return results

    def test_insert(self, count: int) -> dict:
        statements = [
            f"INSERT INTO users (email, name, age) VALUES "
            f"('user{i}@example.com', '{self.generate_random_string(8)}', {random.randint(18, 90)})"
            for i in range(count)
        ]
        return self.time_statements("Insert", statements)

    def test_orders(self, count: int, user_count: int) -> dict:
        statements = [
            f"INSERT INTO orders (user_id, total) VALUES "
            f"({random.randint(1, user_count)}, {random.uniform(1, 500):.2f})"
            for _ in range(count)
        ]
        return self.time_statements("Insert Orders", statements)

    def test_indexed_lookup(self, count: int, user_count: int) -> dict:
        statements = [
            f"SELECT * FROM users WHERE id = {random.randint(1, user_count)}"
            for _ in range(count)
        ]
        return self.time_statements("Indexed Lookup", statements)

    def test_scan_lookup(self, count: int) -> dict:
        statements = [
            f"SELECT * FROM users WHERE age = {random.randint(18, 90)}"
            for _ in range(count)
        ]
        return self.time_statements("Scan Lookup", statements)

    def test_range_filter(self, count: int) -> dict:
        statements = []
        for _ in range(count):
            low = random.randint(18, 80)
            statements.append(
                f"SELECT name, age FROM users WHERE age >= {low} AND age <= {low + 5} "
                f"ORDER BY age DESC LIMIT 20"
            )
        return self.time_statements("Range Filter", statements)

    def test_join(self, count: int) -> dict:
        statements = [
            "SELECT users.name, orders.total FROM users "
            f"INNER JOIN orders ON users.id = orders.user_id WHERE users.age > {random.randint(18, 90)}"
            for _ in range(count)
        ]
        return self.time_statements("Inner Join", statements)

    def test_update_delete(self, count: int, user_count: int) -> dict:
        ids = random.sample(range(1, user_count + 1), count)
        statements = []
        for i, user_id in enumerate(ids):
            if i % 2 == 0:
                statements.append(f"UPDATE users SET age = 99 WHERE id = {user_id}")
            else:
                statements.append(f"DELETE FROM users WHERE id = {user_id}")
        return self.time_statements("Update/Delete by Key", statements)

    @staticmethod
    def print_results(results: dict):
        """Print test results in a formatted way."""
        print(f"\nResults:")
        print(f"  Statements: {results['count']}")
        print(f"  Rows returned/affected: {results['rows']}")
        print(f"  Elapsed: {results['elapsed_sec']:.2f}s")
        print(f"  Throughput: {results['ops_per_sec']:.2f} statements/sec")
        if 'median_ms' in results:
            print(f"  Latency (p50/p95/p99): {results['median_ms']:.3f}/{results['p95_ms']:.3f}/{results['p99_ms']:.3f} ms")


def run_tests(user_count: int, order_count: int, query_count: int, join_count: int):
    test = PerformanceTest()
    test.setup()

    print(f"\n{'#'*60}")
    print(f"# Query Engine Performance Test")
    print(f"# Users: {user_count}, Orders: {order_count}, B-Tree order: {test.btree_order}")
    print(f"{'#'*60}")

    all_results = [
        test.test_insert(user_count),
        test.test_orders(order_count, user_count),
        test.test_indexed_lookup(query_count, user_count),
        test.test_scan_lookup(query_count),
        test.test_range_filter(query_count // 10),
        test.test_join(join_count),
        test.test_update_delete(min(query_count, user_count) // 2, user_count),
    ]

    print(f"\n{'#'*60}")
    print(f"# SUMMARY")
    print(f"{'#'*60}")
    for result in all_results:
        print(f"  {result['test']:<22} {result['ops_per_sec']:>12.2f} statements/sec")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "quick":
        run_tests(user_count=1000, order_count=2000, query_count=1000, join_count=10)
    else:
        run_tests(user_count=10000, order_count=20000, query_count=5000, join_count=20)
