"""Append-only export sinks."""

from __future__ import annotations

from pathlib import Path
from typing import IO

from contracts.export import Sink


class FileSink(Sink):
    """Writes export output to a file, flushing after every append.

    The file is truncated when opened.  Nothing is removed on failure: a
    partially written export stays on disk.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh: IO[str] | None = self.path.open("w", encoding="utf-8", newline="")
        self.bytes_written = 0

    def append(self, chunk: str) -> None:
        if self._fh is None:
            raise ValueError(f"Sink already closed: {self.path}")
        self._fh.write(chunk)
        self._fh.flush()
        self.bytes_written += len(chunk.encode("utf-8"))

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "FileSink":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
