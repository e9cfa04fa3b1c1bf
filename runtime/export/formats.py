"""Serialisation of exported row batches.

Each writer owns the framing for its format across the whole export:
the JSON array brackets, the JSONL line separators between batches, and
the CSV header taken from the first batch.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from pydantic_core import to_jsonable_python

from contracts.export import ExportFormat, Sink


def dump_row(row: dict[str, Any]) -> str:
    return json.dumps(row, default=to_jsonable_python)


class BatchWriter(ABC):
    def __init__(self) -> None:
        self.rows_written = 0

    def begin(self, sink: Sink) -> None:
        """Write anything that precedes the first batch."""

    @abstractmethod
    def write_batch(self, sink: Sink, rows: list[dict[str, Any]]) -> None:
        ...

    def finish(self, sink: Sink) -> None:
        """Write anything that follows the last batch."""


class JsonlWriter(BatchWriter):
    """One object per line; batches joined by a single newline."""

    def write_batch(self, sink: Sink, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        lines = "\n".join(dump_row(r) for r in rows)
        sink.append(("\n" if self.rows_written else "") + lines)
        self.rows_written += len(rows)


class JsonWriter(BatchWriter):
    """A single JSON array spanning every batch."""

    def begin(self, sink: Sink) -> None:
        sink.append("[\n")

    def write_batch(self, sink: Sink, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        body = ",\n".join("  " + dump_row(r) for r in rows)
        sink.append((",\n" if self.rows_written else "") + body)
        self.rows_written += len(rows)

    def finish(self, sink: Sink) -> None:
        sink.append("\n]")


def csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + value.replace('"', '""') + '"'
    if isinstance(value, (int, float)):
        return str(value)
    encoded = value if isinstance(value, (dict, list)) else to_jsonable_python(value)
    if isinstance(encoded, str):
        return '"' + encoded.replace('"', '""') + '"'
    text = json.dumps(encoded, default=to_jsonable_python)
    return '"' + text.replace('"', '""') + '"'


class CsvWriter(BatchWriter):
    """Header from the first batch's keys, written once; data rows after."""

    def __init__(self) -> None:
        super().__init__()
        self.headers: list[str] | None = None

    def write_batch(self, sink: Sink, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        if self.headers is None:
            self.headers = list(rows[0].keys())
            sink.append(",".join(self.headers) + "\n")
        lines = [
            ",".join(csv_value(row.get(h)) for h in self.headers) for row in rows
        ]
        sink.append("\n".join(lines) + "\n")
        self.rows_written += len(rows)


def writer_for(fmt: ExportFormat | str) -> BatchWriter:
    fmt = ExportFormat(fmt)
    if fmt == ExportFormat.JSONL:
        return JsonlWriter()
    if fmt == ExportFormat.CSV:
        return CsvWriter()
    return JsonWriter()
