"""Process logging setup: daily-rotated file plus stderr."""
from __future__ import annotations

import logging
import logging.handlers
import sys
from typing import List, Optional

from .config import Config

_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)s] [%(threadName)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "err": logging.ERROR,
    "error": logging.ERROR,
}
_MARKER = "_csvwatch_handler"


def level_for_mode(mode: str) -> int:
    return _LEVELS.get(mode.lower(), logging.INFO)


def configure_logging(config: Config, root: Optional[logging.Logger] = None) -> logging.Logger:
    """Attach csvwatch handlers to ``root`` once; later calls only adjust the level."""

    root = root or logging.getLogger()
    root.setLevel(level_for_mode(config.mode))
    if any(getattr(handler, _MARKER, False) for handler in root.handlers):
        return root

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = config.log_file()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.TimedRotatingFileHandler(log_file, when="midnight", encoding="utf-8")
        )
    except OSError as exc:
        sys.stderr.write(f"csvwatch: file logging disabled, cannot use {log_file}: {exc}\n")
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _MARKER, True)
        root.addHandler(handler)
    return root


__all__ = ["configure_logging", "level_for_mode"]
