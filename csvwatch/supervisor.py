"""Own watch-loop threads, the scheduled stop and the process failure hook."""
from __future__ import annotations

import datetime as _dt
import logging
import sys
import threading
import time
from typing import Callable, Dict, Optional, Union

from .config import Config
from .errors import ConfigError
from .watch import AppendWatch, LatestFileWatch

logger = logging.getLogger(__name__)

Watch = Union[AppendWatch, LatestFileWatch]
_JOIN_TIMEOUT = 5.0


def seconds_until(hhmm: int, now: _dt.datetime) -> float:
    """Seconds from ``now`` to the next local wall-clock HHMM, always within 24h."""

    target = now.replace(hour=hhmm // 100, minute=hhmm % 100, second=0, microsecond=0)
    if target <= now:
        target += _dt.timedelta(days=1)
    return (target - now).total_seconds()


def install_failure_hook() -> None:
    """Route uncaught exceptions from any thread to a CRITICAL log record."""

    def _unhandled(exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        logger.critical("unhandled exception", exc_info=(exc_type, exc, tb))

    def _unhandled_in_thread(args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        name = args.thread.name if args.thread is not None else "?"
        logger.critical(
            "unhandled exception in thread %s",
            name,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    sys.excepthook = _unhandled
    threading.excepthook = _unhandled_in_thread


class Supervisor:
    """Run watch loops on their own threads until stopped or the scheduled stop time."""

    def __init__(
        self,
        config: Config,
        *,
        now: Callable[[], _dt.datetime] = _dt.datetime.now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._now = now
        self._monotonic = monotonic
        self._stop_event = threading.Event()
        self._watches: Dict[str, Watch] = {}
        self._threads: Dict[str, threading.Thread] = {}

    # ------------------------------------------------------------------
    # public API

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def sleep(self, seconds: float) -> None:
        """Sleep for watch loops; returns early once a stop is requested."""
        self._stop_event.wait(seconds)

    def add(self, name: str, watch: Watch) -> None:
        if self._threads:
            raise ConfigError("cannot add watches after start()")
        if name in self._watches:
            raise ConfigError(f"duplicate watch name {name!r}")
        self._watches[name] = watch

    def start(self) -> None:
        if self._threads:
            return
        for name, watch in self._watches.items():
            thread = threading.Thread(
                target=watch.run, args=(self._stop_event.is_set,), name=name, daemon=True
            )
            self._threads[name] = thread
            thread.start()
        logger.info("started %d watch(es)", len(self._threads))

    def stop(self) -> None:
        if not self._stop_event.is_set():
            logger.info("stop requested")
        self._stop_event.set()

    def wait(self, poll: float = 1.0) -> None:
        """Block until stopped, honouring ``crontab.stop``, then join every loop."""

        deadline: Optional[float] = None
        if self.config.stop_hhmm is not None:
            deadline = self._monotonic() + seconds_until(self.config.stop_hhmm, self._now())
        while not self._stop_event.is_set():
            timeout = poll
            if deadline is not None:
                remaining = deadline - self._monotonic()
                if remaining <= 0:
                    logger.warning("crontab.stop reached, stopping at HHMM=%04d", self.config.stop_hhmm)
                    self.stop()
                    break
                timeout = min(poll, remaining)
            self._stop_event.wait(timeout)
        for name, thread in self._threads.items():
            thread.join(_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("watch %s did not finish within %.0fs", name, _JOIN_TIMEOUT)


__all__ = ["Supervisor", "install_failure_hook", "seconds_until"]
