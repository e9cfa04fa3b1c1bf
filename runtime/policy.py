"""Policy engine implementation.

Enforces manifest rules for tool calls and export output paths.
"""

from __future__ import annotations

import fnmatch
from pathlib import Path

from contracts.manifest import Manifest, PolicyMode
from contracts.policy import PolicyDecision, PolicyEngine, PolicyVerdict
from contracts.tool_sdk import ToolInput


class DbScopePolicyEngine(PolicyEngine):
    """Concrete policy engine driven by a parsed Manifest."""

    def __init__(self, project_root: str | Path = ".") -> None:
        self._manifest: Manifest | None = None
        self._root = Path(project_root).resolve()

    def load_manifest(self, manifest: Manifest) -> None:
        self._manifest = manifest

    @property
    def _mode(self) -> PolicyMode:
        if self._manifest is None:
            return PolicyMode.LOCAL_ONLY
        return self._manifest.runtime.policy_mode

    # ── tool check ──────────────────────────────────────────────────

    def check_tool(self, tool_input: ToolInput) -> PolicyDecision:
        if self._manifest is None:
            return PolicyDecision(
                verdict=PolicyVerdict.DENY,
                rule="no_manifest",
                reason="No manifest loaded",
            )

        # Developer mode: allow all tools
        if self._mode == PolicyMode.DEVELOPER:
            return PolicyDecision(
                verdict=PolicyVerdict.ALLOW,
                rule="developer_mode",
                reason="Developer mode allows all tools",
            )

        allowed = self._manifest.policy.tools.allow
        if tool_input.tool_name in allowed:
            return PolicyDecision(
                verdict=PolicyVerdict.ALLOW,
                rule="tools.allow",
                reason=f"Tool '{tool_input.tool_name}' is in the allow list",
            )

        return PolicyDecision(
            verdict=PolicyVerdict.DENY,
            rule="tools.allow",
            reason=f"Tool '{tool_input.tool_name}' is not in the allow list",
        )

    # ── export path check ───────────────────────────────────────────

    def check_export_path(self, path: str) -> PolicyDecision:
        if self._manifest is None:
            return PolicyDecision(
                verdict=PolicyVerdict.DENY,
                rule="no_manifest",
                reason="No manifest loaded",
            )

        if self._mode == PolicyMode.DEVELOPER:
            return PolicyDecision(
                verdict=PolicyVerdict.ALLOW,
                rule="developer_mode",
                reason="Developer mode allows all export paths",
            )

        resolved = Path(path)
        if not resolved.is_absolute():
            resolved = self._root / resolved
        resolved = resolved.resolve()

        # The configured export directory is always writable.
        export_dir = Path(self._manifest.export.dir)
        if not export_dir.is_absolute():
            export_dir = self._root / export_dir
        if resolved.is_relative_to(export_dir.resolve()):
            return PolicyDecision(
                verdict=PolicyVerdict.ALLOW,
                rule="export.dir",
                reason=f"Path '{path}' is inside the export directory",
            )

        for pattern in self._manifest.policy.export.allow_write:
            candidate = Path(pattern)
            if not candidate.is_absolute():
                candidate = self._root / candidate
            if fnmatch.fnmatch(str(resolved), str(candidate)):
                return PolicyDecision(
                    verdict=PolicyVerdict.ALLOW,
                    rule="policy.export.allow_write",
                    reason=f"Path '{path}' matches export pattern '{pattern}'",
                )

        return PolicyDecision(
            verdict=PolicyVerdict.DENY,
            rule="policy.export.allow_write",
            reason=f"Path '{path}' is not in the export allow list",
        )
