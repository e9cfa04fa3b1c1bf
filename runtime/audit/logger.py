"""Append-only JSONL audit logger with level filtering and size rotation."""

from __future__ import annotations

import json
import threading
from pathlib import Path

from contracts.audit import AuditEntry, AuditEvent, AuditLogger, LogLevel

MAX_SQL_CHARS = 1000


class JsonlAuditLogger(AuditLogger):
    """Thread-safe, append-only JSONL audit logger.

    Entries below *min_level* are dropped.  When the file reaches
    *max_bytes* it is rotated to ``<name>.1`` … ``<name>.<max_files>``,
    discarding the oldest.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        min_level: LogLevel = LogLevel.DEBUG,
        max_bytes: int = 10 * 1024 * 1024,
        max_files: int = 5,
    ) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._min_level = LogLevel(min_level)
        self._max_bytes = max_bytes
        self._max_files = max(max_files, 1)
        # Ensure parent directory exists
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def log(self, entry: AuditEntry) -> None:
        if entry.level.rank < self._min_level.rank:
            return
        sql = entry.detail.get("sql")
        if isinstance(sql, str) and len(sql) > MAX_SQL_CHARS:
            entry = entry.model_copy(
                update={"detail": {**entry.detail, "sql": sql[:MAX_SQL_CHARS]}}
            )
        line = entry.model_dump_json() + "\n"
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._rotate_if_needed()
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)

    def query_by_request(self, request_id: str) -> list[AuditEntry]:
        return [e for e in self._read_all() if e.request_id == request_id]

    def query_by_event(self, event: AuditEvent, limit: int = 100) -> list[AuditEntry]:
        matches = [e for e in self._read_all() if e.event == event]
        return matches[-limit:]

    def tail(self, n: int = 20) -> list[AuditEntry]:
        entries = self._read_all()
        return entries[-n:]

    # ── internal ────────────────────────────────────────────────────

    def _rotate_if_needed(self) -> None:
        if not self._path.exists() or self._path.stat().st_size < self._max_bytes:
            return
        oldest = self._path.with_name(f"{self._path.name}.{self._max_files}")
        if oldest.exists():
            oldest.unlink()
        for i in range(self._max_files - 1, 0, -1):
            src = self._path.with_name(f"{self._path.name}.{i}")
            if src.exists():
                src.rename(self._path.with_name(f"{self._path.name}.{i + 1}"))
        self._path.rename(self._path.with_name(f"{self._path.name}.1"))

    def _read_all(self) -> list[AuditEntry]:
        if not self._path.exists():
            return []
        entries: list[AuditEntry] = []
        with self._path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                entries.append(AuditEntry(**json.loads(line)))
        return entries
