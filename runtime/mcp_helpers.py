"""Shared initialisation and tool-call pipeline for the dbscope HTTP and MCP servers."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

import jsonschema

from contracts.audit import AuditEntry, AuditEvent, LogLevel
from contracts.errors import DbScopeError
from contracts.manifest import Manifest
from contracts.tool_sdk import ToolContext, ToolInput, ToolOutput
from runtime.audit.logger import JsonlAuditLogger
from runtime.drivers.pool import DriverPool
from runtime.manifest_loader import default_manifest_path, load_manifest, project_root
from runtime.policy import DbScopePolicyEngine
from runtime.tools.base import validate_args
from runtime.tools.registry import ToolRegistry, create_default_registry


class DbScopeComponents:
    """Container for initialised dbscope components.

    This is the only owner of the driver pool and the audit logger; both
    are handed to tools per call through ``ToolContext``.
    """

    def __init__(
        self,
        manifest: Manifest,
        policy: DbScopePolicyEngine,
        registry: ToolRegistry,
        logger: JsonlAuditLogger,
        pools: DriverPool,
        root: Path,
    ) -> None:
        self.manifest = manifest
        self.policy = policy
        self.registry = registry
        self.logger = logger
        self.pools = pools
        self.root = root

    @property
    def audit_path(self) -> Path:
        return self.logger.path

    def close(self) -> None:
        self.pools.close_all()


def resolve_path(root: Path, path: str | Path) -> Path:
    p = Path(path)
    return p if p.is_absolute() else root / p


def init_dbscope(manifest_path: str | Path | None = None) -> DbScopeComponents:
    """Load manifest and create policy engine, tool registry, audit logger and driver pool.

    Uses ``DBSCOPE_MANIFEST`` env var if *manifest_path* is not provided.
    Database connections are opened lazily on the first tool call.
    """
    if manifest_path is None:
        manifest_path = default_manifest_path()

    manifest = load_manifest(manifest_path)
    root = project_root(manifest_path)

    policy = DbScopePolicyEngine(project_root=root)
    policy.load_manifest(manifest)

    logger = JsonlAuditLogger(
        resolve_path(root, manifest.audit.path),
        min_level=manifest.audit.level,
        max_bytes=manifest.audit.max_bytes,
        max_files=manifest.audit.max_files,
    )

    return DbScopeComponents(
        manifest=manifest,
        policy=policy,
        registry=create_default_registry(),
        logger=logger,
        pools=DriverPool(project_root=root),
        root=root,
    )


def build_tool_context(c: DbScopeComponents, request_id: str) -> ToolContext:
    """Per-call context: security policy, pooled executor, logger and export settings."""
    m = c.manifest
    return ToolContext(
        request_id=request_id,
        app_name=m.app.name,
        policy_mode=m.runtime.policy_mode.value,
        security=m.security_policy(),
        executor=c.pools.get(m.database, m.security),
        logger=c.logger,
        policy=c.policy,
        settings={
            "driver": m.database.driver.value,
            "default_schema": m.database.schema_name,
            "project_root": str(c.root),
            "export_dir": str(resolve_path(c.root, m.export.dir)),
            "default_format": m.export.default_format.value,
            "batch_size": m.export.batch_size,
        },
    )


async def run_tool(
    c: DbScopeComponents,
    tool_name: str,
    args: dict[str, Any],
    transport: str = "mcp",
) -> ToolOutput:
    """Policy-check, validate, execute, and audit-log a single tool call."""
    request_id = str(uuid.uuid4())
    call_id = str(uuid.uuid4())
    app = c.manifest.app.name

    def _log(event: AuditEvent, level: LogLevel = LogLevel.INFO, **detail: Any) -> None:
        c.logger.log(AuditEntry(
            request_id=request_id,
            event=event,
            level=level,
            app=app,
            detail={"tool": tool_name, "transport": transport, **detail},
        ))

    def _fail(error: str, details: Any = None) -> ToolOutput:
        return ToolOutput(
            call_id=call_id, tool_name=tool_name, error=error, details=details, success=False
        )

    _log(AuditEvent.REQUEST_START, LogLevel.DEBUG)

    # Policy check
    decision = c.policy.check_tool(ToolInput(tool_name=tool_name, arguments=args, call_id=call_id))
    if decision.denied:
        _log(AuditEvent.POLICY_BLOCK, LogLevel.WARN, rule=decision.rule, reason=decision.reason)
        return _fail(f"Policy denied: {decision.reason}", {"rule": decision.rule})

    try:
        tool = c.registry.get(tool_name)
    except KeyError:
        return _fail(f"Unknown tool: {tool_name}")

    try:
        validate_args(tool, args)
    except jsonschema.ValidationError as exc:
        _log(AuditEvent.QUERY_REJECT, LogLevel.WARN, reason=exc.message)
        return _fail(f"Invalid arguments: {exc.message}")

    # Audit: tool.call
    _log(AuditEvent.TOOL_CALL, arguments=args)

    try:
        ctx = build_tool_context(c, request_id)
        output = await tool.run(ctx, args)
    except DbScopeError as exc:
        _log(AuditEvent.ERROR, LogLevel.ERROR, error=exc.message, code=exc.code)
        output = _fail(exc.message, {"code": exc.code})
    except Exception as exc:
        _log(AuditEvent.ERROR, LogLevel.ERROR, error=str(exc))
        output = _fail(str(exc))

    # Audit: tool.result
    _log(
        AuditEvent.TOOL_RESULT,
        LogLevel.INFO if output.success else LogLevel.WARN,
        call_id=call_id,
        success=output.success,
        error=output.error,
    )
    output.call_id = call_id
    return output
