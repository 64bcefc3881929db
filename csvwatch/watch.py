"""Polling watch loops that turn file changes into parsed CSV rows."""
from __future__ import annotations

import enum
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .errors import ConfigError, ParseError
from .selector import find_latest
from .tabular import parse_rows, strip_bom
from .tailer import TailCursor

logger = logging.getLogger(__name__)

RowHandler = Callable[[str, List[str]], None]

_OPEN_RETRY_DELAY = 0.5
_ERROR_BACKOFF = 1.0


class TickResult(enum.Enum):
    IDLE = "idle"
    NO_DATA = "no-data"
    DELIVERED = "delivered"
    TRANSIENT_ERROR = "transient-error"
    PARSE_ERROR = "parse-error"


def _check_interval(interval: object) -> int:
    if isinstance(interval, bool) or not isinstance(interval, int):
        raise ConfigError(f"poll interval must be a whole number of seconds, got {interval!r}")
    if interval < 0:
        raise ConfigError(f"poll interval must not be negative, got {interval}")
    return interval


def read_shared(path: Path) -> bytes:
    """Read a whole file without locking out writers."""
    with open(path, "rb") as handle:
        return handle.read()


class _Watch:
    def __init__(
        self,
        on_row: RowHandler,
        interval: int,
        sleep: Optional[Callable[[float], None]],
    ) -> None:
        if not callable(on_row):
            raise ConfigError("row handler must be callable")
        self.on_row = on_row
        self.interval = _check_interval(interval)
        self._sleep = sleep or time.sleep

    def tick(self) -> TickResult:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def run(self, stop: Optional[Callable[[], bool]] = None) -> None:
        """Tick until ``stop`` returns True; forever when no ``stop`` is given.

        ``stop`` is consulted between ticks only. Errors never end the loop.
        """

        logger.info("watching %s every %ds", self.describe(), self.interval)
        try:
            while True:
                if stop and stop():
                    return
                try:
                    result = self.tick()
                except Exception:
                    logger.exception("tick failed for %s", self.describe())
                    self._sleep(_ERROR_BACKOFF)
                    continue
                self._sleep(self._delay_after(result))
        finally:
            self.close()
            logger.info("stopped watching %s", self.describe())

    def _delay_after(self, result: TickResult) -> float:
        return float(self.interval)

    def _emit(self, source: str, rows: Sequence[List[str]]) -> None:
        for row in rows:
            self.on_row(source, row)


class AppendWatch(_Watch):
    """Follow one file and deliver each newly appended row once."""

    def __init__(
        self,
        path: Union[str, Path],
        on_row: RowHandler,
        interval: int = 5,
        *,
        skip_header: bool = True,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        super().__init__(on_row, interval, sleep)
        self.cursor = TailCursor(path, skip_header=skip_header)
        self._source = str(path)

    def describe(self) -> str:
        return self._source

    def close(self) -> None:
        self.cursor.close()

    def tick(self) -> TickResult:
        if not self.cursor.open():
            return TickResult.IDLE
        lines = self.cursor.read_lines()
        if not lines:
            if self.cursor.last_error is not None:
                return TickResult.TRANSIENT_ERROR
            return TickResult.NO_DATA
        errors: List[ParseError] = []
        rows = parse_rows("\n".join(lines), errors=errors)
        # The cursor has already moved past malformed lines.
        for exc in errors:
            logger.warning("dropping unparseable line from %s: %s", self._source, exc)
        if not rows:
            return TickResult.PARSE_ERROR if errors else TickResult.NO_DATA
        self._emit(self._source, rows)
        return TickResult.DELIVERED

    def _delay_after(self, result: TickResult) -> float:
        if result is TickResult.IDLE:
            return _OPEN_RETRY_DELAY
        return float(self.interval)


class LatestFileWatch(_Watch):
    """Re-deliver every row of the newest ``prefix*.csv`` whenever it changes.

    There is no cursor: each change re-reads the whole file, so rows seen on
    earlier ticks are delivered again. Handlers needing exactly-once
    behaviour must deduplicate themselves.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        prefix: str,
        on_row: RowHandler,
        interval: int = 5,
        *,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        super().__init__(on_row, interval, sleep)
        if not str(directory):
            raise ConfigError("watch directory must not be empty")
        if not isinstance(prefix, str):
            raise ConfigError(f"file prefix must be text, got {prefix!r}")
        self.directory = Path(directory)
        self.prefix = prefix
        self.last_path: Optional[Path] = None
        self.last_modified_ns = 0

    def describe(self) -> str:
        return f"{self.directory / self.prefix}*"

    def tick(self) -> TickResult:
        latest = find_latest(self.directory, self.prefix)
        if latest is None:
            return TickResult.NO_DATA
        if latest.path == self.last_path and latest.modified_ns <= self.last_modified_ns:
            return TickResult.NO_DATA
        try:
            data = read_shared(latest.path)
        except OSError as exc:
            logger.error("cannot read %s: %s", latest.path, exc)
            return TickResult.TRANSIENT_ERROR
        text = strip_bom(data).decode("utf-8", errors="replace")
        errors: List[ParseError] = []
        rows = parse_rows(text, errors=errors)
        for exc in errors:
            logger.warning("skipping unparseable line in %s: %s", latest.path, exc)
        if errors and not rows:
            return TickResult.PARSE_ERROR
        if latest.path != self.last_path:
            logger.info("newest file is now %s", latest.path)
        self.last_path = latest.path
        self.last_modified_ns = latest.modified_ns
        self._emit(str(latest.path), rows)
        return TickResult.DELIVERED


__all__ = ["AppendWatch", "LatestFileWatch", "RowHandler", "TickResult", "read_shared"]
