"""Pick the newest matching file in a directory."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

CSV_EXTENSION = ".csv"


@dataclass(frozen=True)
class LatestFile:
    path: Path
    modified_ns: int


def _matches(name: str, prefix: str) -> bool:
    return name.startswith(prefix) and name[-len(CSV_EXTENSION):].lower() == CSV_EXTENSION


def find_latest(directory: Union[str, Path], prefix: str = "") -> Optional[LatestFile]:
    """Return the most recently modified ``prefix*.csv`` regular file in ``directory``.

    Ties on modification time go to the lexicographically greatest name, so
    repeated scans of an unchanged directory always agree. An unreadable
    directory or one without matches yields ``None``.
    """

    best: Optional[Tuple[int, str]] = None
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                name = entry.name
                if len(name) < len(CSV_EXTENSION) or not _matches(name, prefix):
                    continue
                try:
                    if not entry.is_file():
                        continue
                    modified_ns = entry.stat().st_mtime_ns
                except OSError:
                    continue
                key = (modified_ns, name)
                if best is None or key > best:
                    best = key
    except OSError as exc:
        logger.debug("cannot scan %s: %s", directory, exc)
        return None
    if best is None:
        return None
    return LatestFile(path=Path(directory) / best[1], modified_ns=best[0])


__all__ = ["CSV_EXTENSION", "LatestFile", "find_latest"]
