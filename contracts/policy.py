"""Access policy contracts.

dbscope gates two things from the manifest before any SQL runs: which
``db_*`` tools a caller may invoke, and which files an export may create.
Statement safety is not a policy concern; the guard layer owns it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel

from contracts.manifest import Manifest
from contracts.tool_sdk import ToolInput


class PolicyVerdict(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class PolicyDecision(BaseModel):
    verdict: PolicyVerdict
    rule: str = ""      # e.g. tools.allow, export.dir, developer_mode
    reason: str = ""    # surfaced to the caller on deny

    @property
    def denied(self) -> bool:
        return self.verdict == PolicyVerdict.DENY


class PolicyEngine(ABC):
    """Decides tool and export-path access for one loaded manifest."""

    @abstractmethod
    def load_manifest(self, manifest: Manifest) -> None:
        """Replace the active tool allow list and export rules."""
        ...

    @abstractmethod
    def check_tool(self, tool_input: ToolInput) -> PolicyDecision:
        """Allow the call if the tool is on ``policy.tools.allow`` (any tool in developer mode)."""
        ...

    @abstractmethod
    def check_export_path(self, path: str) -> PolicyDecision:
        """Allow *path* inside ``export.dir`` or matching ``policy.export.allow_write``."""
        ...
