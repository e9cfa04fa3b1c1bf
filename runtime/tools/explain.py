"""Built-in db_explain tool — query plan for a validated SELECT."""

from __future__ import annotations

from typing import Any

from contracts.audit import AuditEvent, LogLevel
from contracts.tool_sdk import BaseTool, ToolContext, ToolDefinition, ToolOutput
from runtime.guard.statement import validate_statement
from runtime.tools.base import error_output, failure, require_executor

# The plan is requested for the base query, never for an EXPLAIN itself.
_EXPLAINABLE = ("SELECT", "WITH")


class DbExplainTool(BaseTool):
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="db_explain",
            description="Show the execution plan of a SELECT or WITH query.",
            input_schema={
                "type": "object",
                "properties": {
                    "sql": {"type": "string", "description": "SQL query to analyze."},
                },
                "required": ["sql"],
                "additionalProperties": False,
            },
            permissions=["db:read"],
        )

    async def run(self, ctx: ToolContext, args: dict[str, Any]) -> ToolOutput:
        allowed = {p.strip().upper() for p in ctx.security.allowed_statement_prefixes}
        prefixes = [p for p in _EXPLAINABLE if p in allowed]
        if not prefixes:
            return failure(
                ctx, "db_explain", "Explain requires SELECT or WITH in allowed_statements"
            )

        outcome = validate_statement(args["sql"], prefixes)
        if not outcome.accepted or outcome.normalized_statement is None:
            ctx.log(
                AuditEvent.QUERY_REJECT,
                "Explain validation failed",
                level=LogLevel.WARN,
                sql=str(args["sql"])[:200],
                reason=outcome.reason,
            )
            return failure(ctx, "db_explain", f"Query validation failed: {outcome.reason}")

        statement = outcome.normalized_statement.removesuffix(";")
        try:
            plan = require_executor(ctx).explain(statement)
        except Exception as exc:
            return error_output(ctx, "db_explain", exc)

        ctx.log(AuditEvent.QUERY_EXEC, "Explain executed", sql=statement)
        return ToolOutput(
            call_id=ctx.request_id,
            tool_name="db_explain",
            result={"sql": statement, "plan": plan},
        )
