"""Driver pool — keyed map of live executors.

Owned by the process composition root (``DbScopeComponents``) and passed
to tools through their context; there is no module-level instance.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

from contracts.executor import QueryExecutor
from contracts.manifest import DatabaseConfig, DriverType, SecurityConfig
from runtime.drivers.connection import ConnectionSpec, resolve_connection

ExecutorFactory = Callable[[ConnectionSpec, DatabaseConfig, SecurityConfig], QueryExecutor]


def create_executor(
    spec: ConnectionSpec, db: DatabaseConfig, security: SecurityConfig
) -> QueryExecutor:
    """Build an executor for a resolved connection."""
    if spec.driver == DriverType.SQLITE:
        from runtime.drivers.sqlite import SqliteExecutor

        return SqliteExecutor(spec.path or "", timeout_ms=security.query_timeout_ms)

    from runtime.drivers.postgres import PostgresExecutor

    return PostgresExecutor(
        conninfo=spec.url or "",
        params=spec.params,
        min_size=db.pool_min,
        max_size=db.pool_max,
        timeout_ms=security.query_timeout_ms,
        read_only=security.read_only,
    )


class DriverPool:
    """Get-or-create executors keyed by driver and connection identity."""

    def __init__(
        self,
        project_root: str | Path = ".",
        factory: ExecutorFactory = create_executor,
    ) -> None:
        self._root = Path(project_root)
        self._factory = factory
        self._executors: dict[str, QueryExecutor] = {}
        self._lock = threading.Lock()

    def get(self, db: DatabaseConfig, security: SecurityConfig) -> QueryExecutor:
        spec = resolve_connection(db, self._root)
        with self._lock:
            executor = self._executors.get(spec.key)
            if executor is None:
                executor = self._factory(spec, db, security)
                self._executors[spec.key] = executor
            return executor

    def __len__(self) -> int:
        return len(self._executors)

    def close_all(self) -> None:
        with self._lock:
            for executor in self._executors.values():
                executor.close()
            self._executors.clear()
