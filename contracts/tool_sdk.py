"""Tool SDK contracts.

Every dbscope tool implements BaseTool.  The runtime validates inputs,
checks policy, executes the tool, and logs the result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from contracts.audit import AuditEntry, AuditEvent, AuditLogger, LogLevel
from contracts.executor import QueryExecutor
from contracts.security import SecurityPolicy

if TYPE_CHECKING:
    from contracts.policy import PolicyEngine


# ── Data models ──────────────────────────────────────────────────────


class ToolDefinition(BaseModel):
    """OpenAI function-calling compatible schema for a tool."""

    name: str
    description: str
    input_schema: dict[str, Any]   # JSON Schema
    permissions: list[str] = []    # e.g. ["db:read", "fs:write"]


class ToolInput(BaseModel):
    tool_name: str
    arguments: dict[str, Any]
    call_id: str


class ToolOutput(BaseModel):
    call_id: str
    tool_name: str
    result: Any = None
    error: str | None = None
    details: Any = None
    success: bool = True


# ── Context passed to every tool invocation ──────────────────────────


@dataclass
class ToolContext:
    """Runtime context supplied to a tool's run() method.

    Carries the per-call security policy, the executor checked out of the
    driver pool, and the audit logger; nothing here is process-global.
    """

    request_id: str
    app_name: str = ""
    policy_mode: str = "local_only"
    security: SecurityPolicy = field(default_factory=SecurityPolicy)
    executor: QueryExecutor | None = None
    logger: AuditLogger | None = None
    policy: PolicyEngine | None = None
    settings: dict[str, Any] = field(default_factory=dict)

    def log(
        self,
        event: AuditEvent,
        message: str = "",
        *,
        level: LogLevel = LogLevel.INFO,
        **detail: Any,
    ) -> None:
        if self.logger is None:
            return
        self.logger.log(AuditEntry(
            request_id=self.request_id,
            event=event,
            level=level,
            app=self.app_name,
            message=message,
            detail=detail,
        ))


# ── Abstract base class ─────────────────────────────────────────────


class BaseTool(ABC):
    """Abstract base class that every dbscope tool must implement."""

    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return the tool's function-calling schema."""
        ...

    @abstractmethod
    async def run(self, ctx: ToolContext, args: dict[str, Any]) -> ToolOutput:
        """Execute the tool. Called by the runtime after policy check."""
        ...
