"""SQLite executor — read-only connection over a database file."""

from __future__ import annotations

import sqlite3
import threading
import time
from pathlib import Path

from contracts.errors import DatabaseConnectionError
from contracts.executor import QueryExecutor, QueryResult, TableInfo
from runtime.guard.identifier import quote_identifier

# Progress handler granularity, in SQLite VM instructions.
_PROGRESS_STEPS = 1000


class SqliteExecutor(QueryExecutor):
    """Runs statements on a ``mode=ro`` connection.

    SQLite has a single implicit schema, so the *schema* argument of the
    catalog methods is accepted and ignored.
    """

    def __init__(self, path: str | Path, *, timeout_ms: int = 30_000) -> None:
        self.path = Path(path).resolve()
        if not self.path.exists():
            raise DatabaseConnectionError(f"SQLite database not found: {self.path}")
        self._timeout_ms = timeout_ms
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = sqlite3.connect(
            f"file:{self.path}?mode=ro", uri=True, check_same_thread=False
        )
        self._conn.row_factory = sqlite3.Row

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseConnectionError("Database not connected")
        return self._conn

    def _execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        conn = self._connection()
        with self._lock:
            if self._timeout_ms:
                deadline = time.monotonic() + self._timeout_ms / 1000
                conn.set_progress_handler(
                    lambda: 1 if time.monotonic() > deadline else 0, _PROGRESS_STEPS
                )
            try:
                return conn.execute(sql, params).fetchall()
            finally:
                conn.set_progress_handler(None, _PROGRESS_STEPS)

    def query(self, sql: str) -> QueryResult:
        start = time.perf_counter()
        rows = [dict(r) for r in self._execute(sql)]
        duration = int(round((time.perf_counter() - start) * 1000))
        return QueryResult(rows=rows, row_count=len(rows), duration_ms=duration)

    def explain(self, sql: str) -> str:
        rows = self._execute(f"EXPLAIN QUERY PLAN {sql}")
        return "\n".join(str(r["detail"]) for r in rows)

    def list_tables(self, schema: str = "public") -> list[TableInfo]:
        names = [
            r["name"]
            for r in self._execute(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
        ]
        tables: list[TableInfo] = []
        for name in names:
            count = self._execute(f"SELECT COUNT(*) AS n FROM {quote_identifier(name)}")
            tables.append(TableInfo(name=name, schema_name="main", row_count=count[0]["n"]))
        return tables

    def table_exists(self, table: str, schema: str = "public") -> bool:
        rows = self._execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
        )
        return bool(rows)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
