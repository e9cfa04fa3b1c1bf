"""Unit tests for the policy engine."""

from __future__ import annotations

from pathlib import Path

from contracts.manifest import (
    AppInfo,
    ExportConfig,
    ExportPolicy,
    Manifest,
    Policy,
    PolicyMode,
    RuntimeConfig,
    ToolsPolicy,
)
from contracts.policy import PolicyVerdict
from contracts.tool_sdk import ToolInput
from runtime.policy import DbScopePolicyEngine


# ── helpers ─────────────────────────────────────────────────────────


def _make_manifest(
    *,
    mode: PolicyMode = PolicyMode.LOCAL_ONLY,
    tools_allow: list[str] | None = None,
    export_write: list[str] | None = None,
    export_dir: str = "exports",
) -> Manifest:
    return Manifest(
        app=AppInfo(name="test-app"),
        runtime=RuntimeConfig(policy_mode=mode),
        policy=Policy(
            tools=ToolsPolicy(allow=tools_allow or []),
            export=ExportPolicy(allow_write=export_write or []),
        ),
        export=ExportConfig(dir=export_dir),
    )


def _engine(root: Path, manifest: Manifest | None = None) -> DbScopePolicyEngine:
    engine = DbScopePolicyEngine(project_root=root)
    if manifest is not None:
        engine.load_manifest(manifest)
    return engine


def _tool(name: str) -> ToolInput:
    return ToolInput(tool_name=name, arguments={}, call_id="c1")


# ── tool checks ─────────────────────────────────────────────────────


class TestToolPolicy:
    def test_no_manifest_denies(self, tmp_path: Path) -> None:
        decision = _engine(tmp_path).check_tool(_tool("db_query"))
        assert decision.verdict == PolicyVerdict.DENY
        assert decision.denied
        assert decision.rule == "no_manifest"

    def test_allowed_tool(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest(tools_allow=["db_query"]))
        assert engine.check_tool(_tool("db_query")).verdict == PolicyVerdict.ALLOW
        assert not engine.check_tool(_tool("db_query")).denied

    def test_unlisted_tool_denied(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest(tools_allow=["db_query"]))
        decision = engine.check_tool(_tool("db_export_batch"))
        assert decision.verdict == PolicyVerdict.DENY
        assert "not in the allow list" in decision.reason

    def test_developer_mode_allows_all(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest(mode=PolicyMode.DEVELOPER))
        decision = engine.check_tool(_tool("db_export_batch"))
        assert decision.verdict == PolicyVerdict.ALLOW
        assert decision.rule == "developer_mode"


# ── export path checks ──────────────────────────────────────────────


class TestExportPathPolicy:
    def test_export_dir_allowed(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest())
        decision = engine.check_export_path(str(tmp_path / "exports" / "a.jsonl"))
        assert decision.verdict == PolicyVerdict.ALLOW
        assert decision.rule == "export.dir"

    def test_relative_path_resolved_against_root(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest())
        assert engine.check_export_path("exports/nested/a.csv").verdict == PolicyVerdict.ALLOW

    def test_traversal_out_of_export_dir_denied(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest())
        decision = engine.check_export_path("exports/../../outside.csv")
        assert decision.verdict == PolicyVerdict.DENY

    def test_allow_write_pattern(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest(export_write=["reports/*.csv"]))
        assert engine.check_export_path("reports/q1.csv").verdict == PolicyVerdict.ALLOW
        assert engine.check_export_path("reports/q1.json").verdict == PolicyVerdict.DENY

    def test_outside_path_denied(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest())
        decision = engine.check_export_path("/etc/passwd")
        assert decision.verdict == PolicyVerdict.DENY
        assert decision.rule == "policy.export.allow_write"

    def test_developer_mode_allows_any_path(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path, _make_manifest(mode=PolicyMode.DEVELOPER))
        assert engine.check_export_path("/tmp/anywhere.json").verdict == PolicyVerdict.ALLOW

    def test_no_manifest_denies(self, tmp_path: Path) -> None:
        assert _engine(tmp_path).check_export_path("exports/a.csv").verdict == PolicyVerdict.DENY
