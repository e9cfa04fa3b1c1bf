"""Batch export contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel


class ExportFormat(str, Enum):
    JSON = "json"
    JSONL = "jsonl"
    CSV = "csv"


class Sink(ABC):
    """Append-only destination for exported text."""

    @abstractmethod
    def append(self, chunk: str) -> None:
        ...


@dataclass
class ExportJobState:
    """Mutable progress of one export call.  Never shared or persisted."""

    base_query: str
    page_size: int
    output_format: ExportFormat
    row_cap: int | None = None
    offset: int = 0
    total_rows_written: int = 0
    batches_written: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def next_batch_limit(self) -> int:
        if self.row_cap is None:
            return self.page_size
        return min(self.page_size, self.row_cap - self.total_rows_written)

    def record_batch(self, rows: int) -> None:
        self.offset += rows
        self.total_rows_written += rows
        self.batches_written += 1

    @property
    def cap_reached(self) -> bool:
        return self.row_cap is not None and self.total_rows_written >= self.row_cap


class ExportSummary(BaseModel):
    total_rows: int
    batch_count: int
    duration_ms: int
    rows_per_second: int = 0
    page_size: int
    format: ExportFormat
