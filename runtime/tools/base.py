"""Tool base utilities — schema validation and shared failure handling."""

from __future__ import annotations

from typing import Any

import jsonschema

from contracts.audit import AuditEvent, LogLevel
from contracts.errors import DbScopeError, NotInitializedError
from contracts.executor import QueryExecutor
from contracts.tool_sdk import BaseTool, ToolContext, ToolOutput
from runtime.guard.identifier import qualified_name, quote_identifier, validate_identifier


def validate_args(tool: BaseTool, args: dict[str, Any]) -> None:
    """Validate *args* against the tool's input_schema.

    Raises ``jsonschema.ValidationError`` on invalid input.
    """
    schema = tool.definition().input_schema
    jsonschema.validate(instance=args, schema=schema)


def failure(ctx: ToolContext, tool_name: str, error: str, details: Any = None) -> ToolOutput:
    return ToolOutput(
        call_id=getattr(ctx, "request_id", ""),
        tool_name=tool_name,
        error=error,
        details=details,
        success=False,
    )


def error_output(ctx: ToolContext, tool_name: str, exc: Exception) -> ToolOutput:
    """Map an exception raised inside a tool to a failed ToolOutput."""
    if isinstance(exc, DbScopeError):
        return failure(ctx, tool_name, exc.message, {"code": exc.code})
    ctx.log(
        AuditEvent.ERROR,
        f"{tool_name} failed",
        level=LogLevel.ERROR,
        tool=tool_name,
        error=str(exc),
    )
    return failure(ctx, tool_name, str(exc))


def require_executor(ctx: ToolContext) -> QueryExecutor:
    if ctx.executor is None:
        raise NotInitializedError("Database connection")
    return ctx.executor


def table_reference(ctx: ToolContext, schema: str, table: str) -> str:
    """Quoted table reference for generated SQL.

    SQLite has no named schemas, so only the table is emitted there; the
    schema name is still validated.
    """
    if ctx.settings.get("driver") == "sqlite":
        qualified_name(schema, table)
        outcome = validate_identifier(table, "table")
        return quote_identifier(outcome.sanitized_name or "")
    return qualified_name(schema, table)
