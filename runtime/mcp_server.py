"""dbscope MCP server — exposes policy-checked database tools over stdio transport."""

from __future__ import annotations

import json
from typing import Any

from mcp.server.fastmcp import FastMCP

from contracts.tool_sdk import ToolOutput
from runtime.mcp_helpers import DbScopeComponents, init_dbscope, run_tool

# ── Initialisation ────────────────────────────────────────────────────

_components: DbScopeComponents | None = None

mcp = FastMCP("dbscope")


def _get_components() -> DbScopeComponents:
    """Return initialised components, lazily loading on first access."""
    global _components  # noqa: PLW0603
    if _components is None:
        _components = init_dbscope()
    return _components


def render(output: ToolOutput) -> str:
    """Serialise a tool output as the JSON text returned to MCP clients."""
    if output.success:
        return json.dumps({"result": output.result, "success": True}, indent=2, default=str)
    payload: dict[str, Any] = {"error": output.error, "success": False}
    if output.details is not None:
        payload["details"] = output.details
    return json.dumps(payload, indent=2, default=str)


async def _run_tool(tool_name: str, args: dict[str, Any]) -> str:
    output = await run_tool(_get_components(), tool_name, args, transport="mcp")
    return render(output)


# ── MCP tool wrappers ─────────────────────────────────────────────────


@mcp.tool()
async def db_query(sql: str, limit: int = 100) -> str:
    """Run a read-only SQL query (SELECT, WITH, EXPLAIN, SHOW) with a row limit."""
    return await _run_tool("db_query", {"sql": sql, "limit": limit})


@mcp.tool()
async def db_explain(sql: str) -> str:
    """Show the execution plan for a SELECT query."""
    return await _run_tool("db_explain", {"sql": sql})


@mcp.tool()
async def db_tables(schema: str = "") -> str:
    """List tables in a schema (default: the configured schema)."""
    args: dict[str, Any] = {}
    if schema:
        args["schema"] = schema
    return await _run_tool("db_tables", args)


@mcp.tool()
async def db_sample(
    table: str,
    schema: str = "",
    limit: int = 10,
    columns: list[str] | None = None,
) -> str:
    """Return sample rows from a table."""
    args: dict[str, Any] = {"table": table, "limit": limit}
    if schema:
        args["schema"] = schema
    if columns is not None:
        args["columns"] = columns
    return await _run_tool("db_sample", args)


@mcp.tool()
async def db_export_batch(
    sql: str,
    output_path: str = "",
    format: str = "",
    batch_size: int | None = None,
    max_rows: int | None = None,
) -> str:
    """Export a large ORDER BY query to a json, jsonl or csv file in batches."""
    args: dict[str, Any] = {"sql": sql}
    if output_path:
        args["output_path"] = output_path
    if format:
        args["format"] = format
    if batch_size is not None:
        args["batch_size"] = batch_size
    if max_rows is not None:
        args["max_rows"] = max_rows
    return await _run_tool("db_export_batch", args)


# ── Entry point ───────────────────────────────────────────────────────

if __name__ == "__main__":
    mcp.run(transport="stdio")
