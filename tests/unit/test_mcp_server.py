"""Unit tests for the dbscope MCP server and shared tool pipeline."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Iterator

import pytest
import yaml

from contracts.audit import AuditEvent
from contracts.tool_sdk import ToolOutput
from runtime.mcp_helpers import DbScopeComponents, build_tool_context, init_dbscope, run_tool
from runtime.mcp_server import _run_tool, mcp, render


# ── helpers ────────────────────────────────────────────────────────────


def _write_manifest(
    tmp_path: Path,
    *,
    mode: str = "local_only",
    tools_allow: list[str] | None = None,
    allow_write: list[str] | None = None,
) -> Path:
    db = tmp_path / "test.db"
    conn = sqlite3.connect(str(db))
    conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
    conn.executemany("INSERT INTO t (val) VALUES (?)", [(f"row{i}",) for i in range(5)])
    conn.commit()
    conn.close()

    manifest: dict[str, Any] = {
        "app": {"name": "mcp-test-app"},
        "runtime": {"policy_mode": mode},
        "database": {"driver": "sqlite", "path": "test.db"},
        "security": {"max_row_limit": 50},
        "policy": {
            "tools": {"allow": tools_allow or []},
            "export": {"allow_write": allow_write or []},
        },
        "export": {"dir": "exports", "batch_size": 2},
        "audit": {"path": "logs/audit.jsonl", "level": "debug"},
    }
    path = tmp_path / "dbscope.yaml"
    path.write_text(yaml.dump(manifest))
    return path


@pytest.fixture()
def components(tmp_path: Path) -> Iterator[DbScopeComponents]:
    c = init_dbscope(_write_manifest(tmp_path, tools_allow=["db_query", "db_export_batch"]))
    yield c
    c.close()


def _events(c: DbScopeComponents) -> list[AuditEvent]:
    return [e.event for e in c.logger.tail(100)]


# ── MCP tool registration ─────────────────────────────────────────────


class TestMcpToolRegistration:
    def test_all_tools_registered(self) -> None:
        tool_names = {tool.name for tool in mcp._tool_manager._tools.values()}
        assert tool_names == {"db_query", "db_explain", "db_tables", "db_sample", "db_export_batch"}

    def test_tools_have_descriptions(self) -> None:
        for tool in mcp._tool_manager._tools.values():
            assert tool.description, f"Tool {tool.name} has no description"


# ── initialisation ────────────────────────────────────────────────────


class TestInit:
    def test_paths_resolve_against_manifest(self, tmp_path: Path, components: DbScopeComponents) -> None:
        assert components.root == tmp_path.resolve()
        assert components.audit_path == tmp_path.resolve() / "logs" / "audit.jsonl"

    def test_env_manifest(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write_manifest(tmp_path)
        monkeypatch.setenv("DBSCOPE_MANIFEST", str(path))
        c = init_dbscope()
        assert c.manifest.app.name == "mcp-test-app"
        c.close()

    def test_tool_context(self, tmp_path: Path, components: DbScopeComponents) -> None:
        ctx = build_tool_context(components, "req-1")
        assert ctx.security.max_row_limit == 50
        assert ctx.settings["driver"] == "sqlite"
        assert ctx.settings["export_dir"] == str(tmp_path.resolve() / "exports")
        assert ctx.logger is components.logger
        # executors are pooled per connection
        assert build_tool_context(components, "req-2").executor is ctx.executor
        assert len(components.pools) == 1


# ── shared pipeline ───────────────────────────────────────────────────


class TestRunTool:
    @pytest.mark.asyncio
    async def test_allowed_query(self, components: DbScopeComponents) -> None:
        out = await run_tool(components, "db_query", {"sql": "SELECT * FROM t"})
        assert out.success
        assert out.result["row_count"] == 5
        events = _events(components)
        assert events[0] == AuditEvent.REQUEST_START
        assert AuditEvent.TOOL_CALL in events
        assert AuditEvent.QUERY_EXEC in events
        assert events[-1] == AuditEvent.TOOL_RESULT
        assert len({e.request_id for e in components.logger.tail(100)}) == 1

    @pytest.mark.asyncio
    async def test_policy_denial(self, components: DbScopeComponents) -> None:
        out = await run_tool(components, "db_tables", {})
        assert not out.success
        assert out.error.startswith("Policy denied:")
        assert _events(components)[-1] == AuditEvent.POLICY_BLOCK

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, components: DbScopeComponents) -> None:
        out = await run_tool(components, "db_query", {"sql": "SELECT 1", "limit": 0})
        assert not out.success
        assert out.error.startswith("Invalid arguments:")
        assert AuditEvent.TOOL_CALL not in _events(components)

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tmp_path: Path) -> None:
        c = init_dbscope(_write_manifest(tmp_path, mode="developer"))
        out = await run_tool(c, "db_drop_everything", {})
        assert out.error == "Unknown tool: db_drop_everything"
        c.close()

    @pytest.mark.asyncio
    async def test_connection_error_is_reported(self, components: DbScopeComponents, tmp_path: Path) -> None:
        (tmp_path / "test.db").unlink()
        out = await run_tool(components, "db_query", {"sql": "SELECT 1"})
        assert not out.success
        assert out.error.startswith("Database connection failed:")
        assert AuditEvent.ERROR in _events(components)

    @pytest.mark.asyncio
    async def test_export_path_denied(self, components: DbScopeComponents) -> None:
        out = await run_tool(
            components,
            "db_export_batch",
            {"sql": "SELECT * FROM t ORDER BY id", "output_path": "/tmp/elsewhere.jsonl"},
        )
        assert not out.success
        assert out.error.startswith("Export path denied:")

    @pytest.mark.asyncio
    async def test_export_uses_manifest_defaults(self, components: DbScopeComponents) -> None:
        out = await run_tool(components, "db_export_batch", {"sql": "SELECT * FROM t ORDER BY id"})
        assert out.success
        assert out.result["batch_count"] == 3
        assert Path(out.result["filepath"]).parent == components.root / "exports"


# ── MCP wrappers ──────────────────────────────────────────────────────


class TestMcpWrappers:
    @pytest.mark.asyncio
    async def test_query_returns_json(self, components: DbScopeComponents) -> None:
        import runtime.mcp_server as mod

        mod._components = components
        try:
            data = json.loads(await _run_tool("db_query", {"sql": "SELECT * FROM t", "limit": 2}))
            assert data["success"] is True
            assert len(data["result"]["rows"]) == 2
        finally:
            mod._components = None

    @pytest.mark.asyncio
    async def test_rejection_returns_error_json(self, components: DbScopeComponents) -> None:
        import runtime.mcp_server as mod

        mod._components = components
        try:
            data = json.loads(await _run_tool("db_query", {"sql": "DELETE FROM t"}))
            assert data["success"] is False
            assert "Blocked keyword detected: DELETE" in data["error"]
        finally:
            mod._components = None

    def test_render_failure_details(self) -> None:
        out = ToolOutput(
            call_id="c", tool_name="x", error="boom", details={"code": "E"}, success=False
        )
        assert json.loads(render(out)) == {
            "error": "boom", "success": False, "details": {"code": "E"},
        }
