"""Built-in db_tables tool — list tables in a schema."""

from __future__ import annotations

from typing import Any

from contracts.security import IdentifierKind
from contracts.tool_sdk import BaseTool, ToolContext, ToolDefinition, ToolOutput
from runtime.guard.identifier import validate_identifier
from runtime.tools.base import error_output, failure, require_executor


class DbTablesTool(BaseTool):
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="db_tables",
            description="List the tables in a database schema with approximate row counts.",
            input_schema={
                "type": "object",
                "properties": {
                    "schema": {"type": "string", "description": "Database schema (default: public)."},
                },
                "additionalProperties": False,
            },
            permissions=["db:read"],
        )

    async def run(self, ctx: ToolContext, args: dict[str, Any]) -> ToolOutput:
        schema = args.get("schema") or ctx.settings.get("default_schema", "public")
        outcome = validate_identifier(schema, IdentifierKind.SCHEMA)
        if not outcome.accepted or outcome.sanitized_name is None:
            return failure(ctx, "db_tables", outcome.reason or "Invalid schema name")

        try:
            tables = require_executor(ctx).list_tables(outcome.sanitized_name)
        except Exception as exc:
            return error_output(ctx, "db_tables", exc)

        return ToolOutput(
            call_id=ctx.request_id,
            tool_name="db_tables",
            result={
                "schema": outcome.sanitized_name,
                "table_count": len(tables),
                "tables": [t.model_dump() for t in tables],
            },
        )
