"""Manifest loader — parse and validate dbscope.yaml."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from contracts.manifest import Manifest

MANIFEST_ENV = "DBSCOPE_MANIFEST"
DEFAULT_MANIFEST = "./dbscope.yaml"


def default_manifest_path() -> str:
    """Manifest path from ``DBSCOPE_MANIFEST``, else ``./dbscope.yaml``."""
    return os.environ.get(MANIFEST_ENV, DEFAULT_MANIFEST)


def load_manifest(path: str | Path) -> Manifest:
    """Load a dbscope.yaml file and return a validated Manifest.

    Raises ``FileNotFoundError`` when missing, ``ValueError`` when the file
    is not a YAML mapping, and pydantic ``ValidationError`` on schema errors.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")

    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a YAML mapping, got {type(data).__name__}")

    return Manifest(**data)


def project_root(manifest_path: str | Path) -> Path:
    """Relative paths in a manifest resolve against its directory."""
    return Path(manifest_path).resolve().parent
