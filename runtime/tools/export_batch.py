"""Built-in db_export_batch tool — stream a large ordered query to a file."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from contracts.errors import DbScopeError, ExecutionFailureError
from contracts.export import ExportFormat
from contracts.tool_sdk import BaseTool, ToolContext, ToolDefinition, ToolOutput
from runtime.export.engine import BatchExportEngine
from runtime.export.sinks import FileSink
from runtime.tools.base import failure, require_executor


def default_export_path(export_dir: str | Path, fmt: ExportFormat) -> Path:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return Path(export_dir) / f"batch_export_{stamp}.{fmt.value}"


class DbExportBatchTool(BaseTool):
    """Export all rows of an ORDER BY query in fixed-size pages.

    Each page is a separate bounded query and is appended to the output
    file before the next one runs, so memory stays flat regardless of
    result size.
    """

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="db_export_batch",
            description=(
                "Export a large query result to a file in batches. "
                "The query must include ORDER BY for consistent pagination."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "sql": {"type": "string", "description": "SELECT query with ORDER BY."},
                    "output_path": {"type": "string", "description": "Output file path."},
                    "format": {"type": "string", "enum": [f.value for f in ExportFormat]},
                    "batch_size": {"type": "integer", "minimum": 1},
                    "max_rows": {"type": "integer", "minimum": 1},
                },
                "required": ["sql"],
                "additionalProperties": False,
            },
            permissions=["db:read", "fs:write"],
        )

    async def run(self, ctx: ToolContext, args: dict[str, Any]) -> ToolOutput:
        fmt = ExportFormat(args.get("format") or ctx.settings.get("default_format", "jsonl"))
        page_size = args.get("batch_size", ctx.settings.get("batch_size", 10_000))
        row_cap = args.get("max_rows")

        engine = BatchExportEngine(
            ctx.security,
            ctx.logger,
            request_id=ctx.request_id,
            app_name=ctx.app_name,
        )
        try:
            # Reject bad queries before the output file is created.
            engine.prepare(args["sql"])
            executor = require_executor(ctx)
        except DbScopeError as exc:
            return failure(ctx, "db_export_batch", exc.message, {"code": exc.code})

        path = self._resolve_path(ctx, args.get("output_path"), fmt)
        if ctx.policy is not None:
            decision = ctx.policy.check_export_path(str(path))
            if decision.denied:
                return failure(ctx, "db_export_batch", f"Export path denied: {decision.reason}")

        try:
            with FileSink(path) as sink:
                summary = engine.run(
                    args["sql"],
                    executor,
                    sink,
                    page_size=page_size,
                    row_cap=row_cap,
                    fmt=fmt,
                )
        except ExecutionFailureError as exc:
            return failure(ctx, "db_export_batch", exc.message, {
                "code": exc.code,
                "filepath": str(path),
                "batches_written": exc.batches_written,
                "rows_written": exc.rows_written,
            })
        except DbScopeError as exc:
            return failure(ctx, "db_export_batch", exc.message, {
                "code": exc.code,
                "filepath": str(path),
            })

        result = summary.model_dump(mode="json")
        result["filepath"] = str(path)
        if fmt == ExportFormat.JSONL:
            result["hint"] = "JSONL holds one JSON object per line and can be processed line by line"
        return ToolOutput(call_id=ctx.request_id, tool_name="db_export_batch", result=result)

    @staticmethod
    def _resolve_path(ctx: ToolContext, output_path: str | None, fmt: ExportFormat) -> Path:
        root = Path(ctx.settings.get("project_root", "."))
        if output_path:
            path = Path(output_path)
            return path if path.is_absolute() else root / path
        export_dir = Path(ctx.settings.get("export_dir", ".dbscope/exports"))
        if not export_dir.is_absolute():
            export_dir = root / export_dir
        return default_export_path(export_dir, fmt)
