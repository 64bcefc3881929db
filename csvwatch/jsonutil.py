"""JSON encoding for emitted rows, backed by orjson."""
from __future__ import annotations

from typing import Any

import orjson


def dumps(data: Any) -> str:
    return orjson.dumps(data).decode("utf-8")


__all__ = ["dumps"]
