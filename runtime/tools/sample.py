"""Built-in db_sample tool — first rows of a table, by identifier."""

from __future__ import annotations

from typing import Any

from pydantic_core import to_jsonable_python

from contracts.audit import AuditEvent
from contracts.security import IdentifierKind
from contracts.tool_sdk import BaseTool, ToolContext, ToolDefinition, ToolOutput
from runtime.guard.identifier import quote_identifier, validate_identifiers
from runtime.guard.limits import enforce_limit
from runtime.tools.base import error_output, failure, require_executor, table_reference

_DEFAULT_SAMPLE = 10


class DbSampleTool(BaseTool):
    """Sample rows from a table.  Names are validated and quoted, never interpolated raw."""

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="db_sample",
            description="Return sample rows from a table.",
            input_schema={
                "type": "object",
                "properties": {
                    "table": {"type": "string", "description": "Table name."},
                    "schema": {"type": "string", "description": "Database schema (default: public)."},
                    "columns": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Columns to return (default: all).",
                    },
                    "limit": {"type": "integer", "description": "Number of sample rows."},
                },
                "required": ["table"],
                "additionalProperties": False,
            },
            permissions=["db:read"],
        )

    async def run(self, ctx: ToolContext, args: dict[str, Any]) -> ToolOutput:
        table = args["table"]
        schema = args.get("schema") or ctx.settings.get("default_schema", "public")
        limit = max(1, min(int(args.get("limit", _DEFAULT_SAMPLE)), ctx.security.max_row_limit))

        column_list = "*"
        if args.get("columns"):
            outcome = validate_identifiers(args["columns"], IdentifierKind.COLUMN)
            if not outcome.accepted or outcome.sanitized_names is None:
                return failure(ctx, "db_sample", outcome.reason or "Invalid column names")
            column_list = ", ".join(quote_identifier(c) for c in outcome.sanitized_names)

        try:
            target = table_reference(ctx, schema, table)
            executor = require_executor(ctx)
            if not executor.table_exists(table.strip(), schema.strip()):
                return failure(ctx, "db_sample", f"Table '{table}' not found in schema '{schema}'")
            sql = enforce_limit(f"SELECT {column_list} FROM {target}", limit)
            result = executor.query(sql)
        except Exception as exc:
            return error_output(ctx, "db_sample", exc)

        ctx.log(
            AuditEvent.QUERY_EXEC,
            "Sample fetched",
            sql=sql,
            row_count=result.row_count,
            duration_ms=result.duration_ms,
            success=True,
        )
        return ToolOutput(
            call_id=ctx.request_id,
            tool_name="db_sample",
            result={
                "table": table.strip(),
                "schema": schema.strip(),
                "row_count": result.row_count,
                "rows": to_jsonable_python(result.rows),
            },
        )
