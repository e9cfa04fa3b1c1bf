"""dbscope FastAPI runtime server."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from contracts.audit import AuditEntry, AuditEvent, LogLevel
from contracts.tool_sdk import ToolOutput

from runtime.audit.query import query_filtered, read_entries
from runtime.mcp_helpers import DbScopeComponents, init_dbscope, run_tool

VERSION = "0.1.0"

# ── Module-level state (set during lifespan) ─────────────────────────

_components: DbScopeComponents | None = None
_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialise all components on startup; close database pools on shutdown."""
    global _components, _start_time  # noqa: PLW0603

    _start_time = time.time()
    _components = init_dbscope()
    try:
        yield
    finally:
        _components.close()
        _components = None


app = FastAPI(title="dbscope Runtime", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require() -> DbScopeComponents:
    if _components is None:
        raise HTTPException(status_code=503, detail="Runtime not initialised")
    return _components


# ── Endpoints ────────────────────────────────────────────────────────


@app.get("/v1/dbscope/health")
async def health() -> dict[str, Any]:
    """Extended health-check endpoint."""
    result: dict[str, Any] = {"status": "ok", "version": VERSION}
    result["uptime_seconds"] = round(time.time() - _start_time, 1) if _start_time else 0

    if _components is not None:
        m = _components.manifest
        result["manifest"] = {
            "app": m.app.name,
            "app_version": m.app.version,
            "policy_mode": m.runtime.policy_mode.value,
            "allowed_tools": m.policy.tools.allow,
            "driver": m.database.driver.value,
            "max_row_limit": m.security.max_row_limit,
        }
        result["open_connections"] = len(_components.pools)

        log_path = _components.audit_path
        if log_path.exists():
            result["audit_log_size_bytes"] = log_path.stat().st_size
            result["audit_log_entries"] = len(read_entries(log_path))

    return result


@app.get("/v1/dbscope/tools")
async def list_tools() -> dict[str, Any]:
    """Registered tools in function-calling format."""
    c = _require()
    return {"tools": c.registry.get_openai_definitions()}


@app.post("/v1/dbscope/tools/{name}")
async def call_tool(name: str, args: dict[str, Any] = Body(default={})) -> ToolOutput:
    """Run one tool through the same policy and audit pipeline as MCP."""
    c = _require()
    if name not in c.registry:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")
    return await run_tool(c, name, args, transport="http")


@app.get("/v1/dbscope/audit/logs")
async def audit_logs(
    event: AuditEvent | None = Query(None),
    level: LogLevel | None = Query(None),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    request_id: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    """Filtered, paginated audit log query."""
    c = _require()
    entries, total = query_filtered(
        c.audit_path,
        event=event,
        min_level=level,
        since=since,
        until=until,
        request_id=request_id,
        limit=limit,
        offset=offset,
    )
    return {"entries": [e.model_dump(mode="json") for e in entries], "total": total}


@app.get("/v1/dbscope/audit/{request_id}")
async def audit_query(request_id: str) -> list[AuditEntry]:
    """Return audit entries for a given request_id."""
    return _require().logger.query_by_request(request_id)
