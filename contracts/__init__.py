"""Shared contracts — source of truth for all dbscope interfaces."""

from contracts.audit import AuditEntry, AuditEvent, AuditLogger, LogLevel
from contracts.errors import (
    DbScopeError,
    ExecutionFailureError,
    OrderingRequiredError,
    RejectedInputError,
    ResourceExceededError,
)
from contracts.executor import QueryExecutor, QueryResult, TableInfo
from contracts.export import ExportFormat, ExportJobState, ExportSummary, Sink
from contracts.manifest import AuditConfig, DatabaseConfig, Manifest, Policy, SecurityConfig
from contracts.policy import PolicyDecision, PolicyEngine, PolicyVerdict
from contracts.security import IdentifierKind, IdentifierOutcome, SecurityPolicy, ValidationOutcome
from contracts.tool_sdk import BaseTool, ToolContext, ToolDefinition, ToolInput, ToolOutput

__all__ = [
    # audit
    "AuditEntry",
    "AuditEvent",
    "AuditLogger",
    "LogLevel",
    # errors
    "DbScopeError",
    "ExecutionFailureError",
    "OrderingRequiredError",
    "RejectedInputError",
    "ResourceExceededError",
    # executor
    "QueryExecutor",
    "QueryResult",
    "TableInfo",
    # export
    "ExportFormat",
    "ExportJobState",
    "ExportSummary",
    "Sink",
    # manifest
    "AuditConfig",
    "DatabaseConfig",
    "Manifest",
    "Policy",
    "SecurityConfig",
    # policy
    "PolicyDecision",
    "PolicyEngine",
    "PolicyVerdict",
    # security
    "IdentifierKind",
    "IdentifierOutcome",
    "SecurityPolicy",
    "ValidationOutcome",
    # tool sdk
    "BaseTool",
    "ToolContext",
    "ToolDefinition",
    "ToolInput",
    "ToolOutput",
]
