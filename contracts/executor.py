"""Query executor contracts.

An executor runs exactly the SQL text it is given.  Safety checks and
limit rewriting happen before a statement reaches it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class QueryResult(BaseModel):
    rows: list[dict[str, Any]] = []
    row_count: int = 0
    duration_ms: int = 0


class TableInfo(BaseModel):
    name: str
    schema_name: str
    row_count: int = 0
    size_bytes: int | None = None


class QueryExecutor(ABC):
    """Interface every database driver implements."""

    @abstractmethod
    def query(self, sql: str) -> QueryResult:
        """Execute *sql* verbatim and return all rows."""
        ...

    @abstractmethod
    def explain(self, sql: str) -> str:
        """Return the engine's plan for *sql* as text."""
        ...

    @abstractmethod
    def list_tables(self, schema: str = "public") -> list[TableInfo]:
        ...

    @abstractmethod
    def table_exists(self, table: str, schema: str = "public") -> bool:
        ...

    @abstractmethod
    def close(self) -> None:
        ...
