"""Unit tests for the dbscope CLI."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from cli.dbscope import main
from contracts.audit import AuditEntry, AuditEvent, LogLevel
from runtime.audit.logger import JsonlAuditLogger


def _run(monkeypatch: pytest.MonkeyPatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["dbscope", *argv])
    try:
        main()
    except SystemExit as exc:
        return int(exc.code or 0)
    return 0


class TestCheck:
    def test_accepted_statement_is_bounded(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(monkeypatch, "check", "select *\n from t", "--max-limit", "50")
        out = capsys.readouterr().out
        assert code == 0
        assert "ACCEPTED" in out
        assert "select * from t LIMIT 50" in out
        assert "not exportable" in out

    def test_rejected_statement(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(monkeypatch, "check", "PRAGMA table_info(t)")
        assert code == 1
        assert "REJECTED: Query must start with one of" in capsys.readouterr().out

    def test_policy_from_manifest(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        manifest = tmp_path / "dbscope.yaml"
        manifest.write_text("app:\n  name: cli\nsecurity:\n  allowed_statements: [select]\n")
        code = _run(monkeypatch, "check", "SHOW tables", "--manifest", str(manifest))
        assert code == 1
        assert "Query must start with one of: SELECT" in capsys.readouterr().out


class TestValidate:
    def test_valid_manifest(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        manifest = tmp_path / "dbscope.yaml"
        manifest.write_text(
            "app:\n  name: cli\npolicy:\n  tools:\n    allow: [db_query, db_magic]\n"
        )
        code = _run(monkeypatch, "validate", str(manifest))
        out = capsys.readouterr().out
        assert code == 0
        assert "Manifest OK: cli" in out
        assert "tool 'db_magic' is not a known built-in tool" in out

    def test_missing_manifest(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(monkeypatch, "validate", str(tmp_path / "nope.yaml"))
        assert code == 1
        assert "manifest not found" in capsys.readouterr().err


class TestLogs:
    @pytest.fixture()
    def log_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "audit.jsonl"
        logger = JsonlAuditLogger(path)
        logger.log(AuditEntry(request_id="aaaa1111", event=AuditEvent.QUERY_EXEC, message="ok"))
        logger.log(AuditEntry(
            request_id="bbbb2222", event=AuditEvent.ERROR, level=LogLevel.ERROR, message="boom",
        ))
        return path

    def test_tail_json(
        self, log_file: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run(monkeypatch, "logs", str(log_file), "--json") == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert [json.loads(line)["request_id"] for line in lines] == ["aaaa1111", "bbbb2222"]

    def test_level_filter(
        self, log_file: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run(monkeypatch, "logs", str(log_file), "--level", "error") == 0
        out = capsys.readouterr().out
        assert "boom" in out
        assert "aaaa1111" not in out

    def test_unknown_event(
        self, log_file: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run(monkeypatch, "logs", str(log_file), "--event", "nope") == 1
        assert "Valid events" in capsys.readouterr().err

    def test_missing_log(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        assert _run(monkeypatch, "logs", str(tmp_path / "none.jsonl")) == 1
