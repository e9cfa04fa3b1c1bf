"""Error taxonomy shared by the runtime.

Every error carries a stable ``code`` so tool handlers can map it to an
error payload without inspecting the message.
"""

from __future__ import annotations


class DbScopeError(Exception):
    code = "DBSCOPE_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class RejectedInputError(DbScopeError):
    """A statement or identifier was refused before reaching the database."""

    code = "REJECTED_INPUT"


class OrderingRequiredError(RejectedInputError):
    """An export base query has no ORDER BY clause."""

    code = "ORDERING_REQUIRED"

    def __init__(self) -> None:
        super().__init__(
            "Query must include ORDER BY clause for consistent pagination"
        )


class ResourceExceededError(DbScopeError):
    code = "RESOURCE_EXCEEDED"


class ExecutionFailureError(DbScopeError):
    """The executor failed mid-export.  Progress up to the failure is kept."""

    code = "EXECUTION_FAILURE"

    def __init__(
        self,
        message: str,
        sql: str = "",
        *,
        batches_written: int = 0,
        rows_written: int = 0,
    ) -> None:
        super().__init__(f"Query failed: {message}")
        self.sql = sql
        self.batches_written = batches_written
        self.rows_written = rows_written


class NotInitializedError(DbScopeError):
    code = "NOT_INITIALIZED"

    def __init__(self, what: str = "Runtime") -> None:
        super().__init__(f"{what} not initialised")


class DatabaseConnectionError(DbScopeError):
    code = "CONNECTION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(f"Database connection failed: {message}")


class ConfigurationError(DbScopeError):
    code = "CONFIG_ERROR"
