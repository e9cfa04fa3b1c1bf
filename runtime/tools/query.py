"""Built-in db_query tool — validated, row-bounded read-only queries."""

from __future__ import annotations

from typing import Any

from pydantic_core import to_jsonable_python

from contracts.audit import AuditEvent, LogLevel
from contracts.tool_sdk import BaseTool, ToolContext, ToolDefinition, ToolOutput
from runtime.guard.limits import enforce_limit
from runtime.guard.statement import validate_statement
from runtime.tools.base import error_output, failure, require_executor

_DEFAULT_LIMIT = 100


class DbQueryTool(BaseTool):
    """Execute a read-only SQL query, bounded to the policy's row limit."""

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="db_query",
            description="Run a read-only SQL query (SELECT, WITH, EXPLAIN, SHOW) against the project database.",
            input_schema={
                "type": "object",
                "properties": {
                    "sql": {"type": "string", "description": "SQL query to execute (read-only)."},
                    "limit": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "Maximum rows to return (safety limit).",
                    },
                },
                "required": ["sql"],
                "additionalProperties": False,
            },
            permissions=["db:read"],
        )

    async def run(self, ctx: ToolContext, args: dict[str, Any]) -> ToolOutput:
        raw_sql = args["sql"]
        limit: int = args.get("limit", _DEFAULT_LIMIT)

        outcome = validate_statement(raw_sql, ctx.security.allowed_statement_prefixes)
        if not outcome.accepted or outcome.normalized_statement is None:
            ctx.log(
                AuditEvent.QUERY_REJECT,
                "Query validation failed",
                level=LogLevel.WARN,
                sql=str(raw_sql)[:200],
                reason=outcome.reason,
            )
            return failure(ctx, "db_query", f"Query validation failed: {outcome.reason}")

        effective_limit = min(limit, ctx.security.max_row_limit)
        safe_sql = enforce_limit(outcome.normalized_statement, effective_limit)

        try:
            result = require_executor(ctx).query(safe_sql)
        except Exception as exc:
            ctx.log(
                AuditEvent.QUERY_EXEC,
                "Query execution failed",
                level=LogLevel.ERROR,
                sql=safe_sql,
                success=False,
                error=str(exc),
            )
            out = error_output(ctx, "db_query", exc)
            out.error = f"Query execution failed: {out.error}"
            return out

        ctx.log(
            AuditEvent.QUERY_EXEC,
            "Query executed",
            sql=safe_sql,
            duration_ms=result.duration_ms,
            row_count=result.row_count,
            success=True,
        )
        return ToolOutput(
            call_id=ctx.request_id,
            tool_name="db_query",
            result={
                "sql": safe_sql,
                "row_count": result.row_count,
                "duration_ms": result.duration_ms,
                "rows": to_jsonable_python(result.rows),
            },
        )
