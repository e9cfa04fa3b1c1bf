"""Manifest (dbscope.yaml) schema — Pydantic models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from contracts.audit import LogLevel
from contracts.export import ExportFormat
from contracts.security import (
    DEFAULT_ALLOWED_STATEMENTS,
    DEFAULT_MAX_ROW_LIMIT,
    SecurityPolicy,
)


# ── Top-level sections ──────────────────────────────────────────────


class AppInfo(BaseModel):
    name: str
    version: str = "0.0.1"


class PolicyMode(str, Enum):
    LOCAL_ONLY = "local_only"
    DEVELOPER = "developer"


class RuntimeConfig(BaseModel):
    policy_mode: PolicyMode = PolicyMode.LOCAL_ONLY


# ── Database ─────────────────────────────────────────────────────────


class DriverType(str, Enum):
    SQLITE = "sqlite"
    POSTGRES = "postgres"


class DatabaseConfig(BaseModel):
    driver: DriverType = DriverType.SQLITE
    path: str | None = None        # sqlite database file

    # Option 1: full URL, directly or via an env var
    url: str | None = None
    url_env: str = "DATABASE_URL"

    # Option 2: individual fields (safe for special chars in passwords)
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    host_env: str | None = None
    port_env: str | None = None
    user_env: str | None = None
    password_env: str | None = None
    database_env: str | None = None
    ssl: str | None = None         # require | prefer | disable

    schema_name: str = Field(default="public", alias="schema")
    pool_min: int = 1
    pool_max: int = 10

    model_config = {"populate_by_name": True}


# ── Security ─────────────────────────────────────────────────────────


class SecurityConfig(BaseModel):
    read_only: bool = True
    max_row_limit: int = Field(default=DEFAULT_MAX_ROW_LIMIT, ge=1)
    query_timeout_ms: int = Field(default=30_000, ge=0)
    allowed_statements: list[str] = list(DEFAULT_ALLOWED_STATEMENTS)


# ── Policy sub-sections ─────────────────────────────────────────────


class ToolsPolicy(BaseModel):
    allow: list[str] = []


class ExportPolicy(BaseModel):
    allow_write: list[str] = []    # glob patterns for export output paths


class Policy(BaseModel):
    tools: ToolsPolicy = ToolsPolicy()
    export: ExportPolicy = ExportPolicy()


# ── Export + audit ───────────────────────────────────────────────────


class ExportConfig(BaseModel):
    dir: str = ".dbscope/exports"
    default_format: ExportFormat = ExportFormat.JSONL
    batch_size: int = Field(default=10_000, ge=1)


class AuditConfig(BaseModel):
    path: str = ".dbscope/logs/audit.jsonl"
    level: LogLevel = LogLevel.INFO
    max_bytes: int = 10 * 1024 * 1024
    max_files: int = 5


# ── Root manifest ────────────────────────────────────────────────────


class Manifest(BaseModel):
    app: AppInfo
    runtime: RuntimeConfig = RuntimeConfig()
    database: DatabaseConfig = DatabaseConfig()
    security: SecurityConfig = SecurityConfig()
    policy: Policy = Policy()
    export: ExportConfig = ExportConfig()
    audit: AuditConfig = AuditConfig()

    def security_policy(self) -> SecurityPolicy:
        """Return the immutable policy the query safety layer runs against."""
        return SecurityPolicy(
            allowed_statement_prefixes=frozenset(
                s.strip().upper() for s in self.security.allowed_statements if s.strip()
            ),
            max_row_limit=self.security.max_row_limit,
        )
