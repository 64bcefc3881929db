"""Row handlers that write delivered rows to a text stream."""
from __future__ import annotations

import sys
import threading
from typing import List, Optional, TextIO

from . import jsonutil


class _StreamSink:
    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream or sys.stdout
        # Several watch threads may share one sink.
        self._lock = threading.Lock()

    def __call__(self, path: str, row: List[str]) -> None:
        text = self.format(path, row)
        with self._lock:
            self.stream.write(text + "\n")
            self.stream.flush()

    def format(self, path: str, row: List[str]) -> str:
        raise NotImplementedError


class PrintRowHandler(_StreamSink):
    """``[path] col0=a|col1=b|`` per row."""

    def format(self, path: str, row: List[str]) -> str:
        cells = "".join(f"col{index}={value}|" for index, value in enumerate(row))
        return f"[{path}] {cells}"


class JsonLinesRowHandler(_StreamSink):
    """One ``{"path": ..., "row": [...]}`` object per line."""

    def format(self, path: str, row: List[str]) -> str:
        return jsonutil.dumps({"path": path, "row": list(row)})


__all__ = ["JsonLinesRowHandler", "PrintRowHandler"]
