"""PostgreSQL executor backed by a psycopg connection pool."""

from __future__ import annotations

import time
from typing import Any

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from contracts.errors import DatabaseConnectionError
from contracts.executor import QueryExecutor, QueryResult, TableInfo

_TABLES_SQL = """
SELECT
  t.table_name AS name,
  t.table_schema AS schema,
  COALESCE(s.n_live_tup, 0)::bigint AS row_count,
  pg_total_relation_size(quote_ident(t.table_schema) || '.' || quote_ident(t.table_name))::bigint AS size_bytes
FROM information_schema.tables t
LEFT JOIN pg_stat_user_tables s
  ON s.schemaname = t.table_schema AND s.relname = t.table_name
WHERE t.table_schema = %s AND t.table_type = 'BASE TABLE'
ORDER BY t.table_name
"""

_TABLE_EXISTS_SQL = """
SELECT EXISTS (
  SELECT 1 FROM information_schema.tables
  WHERE table_schema = %s AND table_name = %s AND table_type = 'BASE TABLE'
) AS exists
"""


def session_options(*, timeout_ms: int, read_only: bool) -> str:
    opts = [f"-c statement_timeout={int(timeout_ms)}", "-c DateStyle=ISO,MDY"]
    if read_only:
        opts.append("-c default_transaction_read_only=on")
    return " ".join(opts)


class PostgresExecutor(QueryExecutor):
    """Each call checks a connection out of the pool and returns it after.

    The statement timeout and read-only transaction default are set per
    session, so they bind every query issued through this executor.
    """

    def __init__(
        self,
        *,
        conninfo: str = "",
        params: dict[str, Any] | None = None,
        min_size: int = 1,
        max_size: int = 10,
        timeout_ms: int = 30_000,
        read_only: bool = True,
        connect_timeout: float = 10.0,
    ) -> None:
        kwargs: dict[str, Any] = dict(params or {})
        kwargs["row_factory"] = dict_row
        kwargs["options"] = session_options(timeout_ms=timeout_ms, read_only=read_only)
        self._pool = ConnectionPool(
            conninfo=conninfo,
            min_size=min_size,
            max_size=max_size,
            kwargs=kwargs,
            open=True,
        )
        try:
            self._pool.wait(timeout=connect_timeout)
        except PoolTimeout as exc:
            self._pool.close()
            raise DatabaseConnectionError(str(exc)) from exc

    def _fetch(self, sql: str, params: tuple | None = None) -> list[dict[str, Any]]:
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                if cur.description is None:
                    return []
                return list(cur.fetchall())

    def query(self, sql: str) -> QueryResult:
        start = time.perf_counter()
        rows = self._fetch(sql)
        duration = int(round((time.perf_counter() - start) * 1000))
        return QueryResult(rows=rows, row_count=len(rows), duration_ms=duration)

    def explain(self, sql: str) -> str:
        rows = self._fetch(f"EXPLAIN {sql}")
        return "\n".join(str(next(iter(r.values()))) for r in rows)

    def list_tables(self, schema: str = "public") -> list[TableInfo]:
        return [
            TableInfo(
                name=r["name"],
                schema_name=r["schema"],
                row_count=r["row_count"],
                size_bytes=r["size_bytes"],
            )
            for r in self._fetch(_TABLES_SQL, (schema,))
        ]

    def table_exists(self, table: str, schema: str = "public") -> bool:
        rows = self._fetch(_TABLE_EXISTS_SQL, (schema, table))
        return bool(rows and rows[0]["exists"])

    def close(self) -> None:
        self._pool.close()
