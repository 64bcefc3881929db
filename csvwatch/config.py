"""Configuration helpers for csvwatch."""
from __future__ import annotations

import datetime as _dt
import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

_DEFAULT_CONFIG_FILE = "config.json"
_DEFAULT_APP_NAME = "csvwatch"
_DEFAULT_LOG_PATH = "./logs/%Y%m%d"
_DEFAULT_MODE = "info"
_DEFAULT_INTERVAL = 5

CONFIG_ENV = "CSVWATCH_CONFIG"


def expand_time_wildcards(template: str, now: Optional[_dt.datetime] = None) -> str:
    """Expand strftime fields in ``template``; ``%f`` becomes three-digit milliseconds."""

    now = now or _dt.datetime.now()
    millis = f"{now.microsecond // 1000:03d}"
    # Protect %f from strftime, which would render microseconds.
    marker = "@@millis@@"
    try:
        expanded = now.strftime(template.replace("%f", marker))
    except ValueError:
        return template
    return expanded.replace(marker, millis)


def parse_hhmm(value: Any) -> Optional[int]:
    """Return ``value`` as an HHMM integer, or None when it is not a valid clock time."""

    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value < 0 or value > 2359 or value % 100 >= 60:
        return None
    return value


@dataclass(frozen=True)
class Config:
    """Resolved configuration values for one csvwatch process."""

    app_name: str = _DEFAULT_APP_NAME
    log_path: str = _DEFAULT_LOG_PATH
    mode: str = _DEFAULT_MODE
    stop_hhmm: Optional[int] = None
    interval: int = _DEFAULT_INTERVAL
    skip_header: bool = True

    def log_dir(self, now: Optional[_dt.datetime] = None) -> Path:
        return Path(expand_time_wildcards(self.log_path, now)).absolute()

    def log_file(self, now: Optional[_dt.datetime] = None) -> Path:
        return self.log_dir(now) / f"{self.app_name}.log"

    def with_overrides(self, **changes: Any) -> "Config":
        values = {key: value for key, value in changes.items() if value is not None}
        updated = replace(self, **values)
        validate(updated)
        return updated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "app": {"app_name": self.app_name, "log_path": self.log_path, "mode": self.mode},
            "crontab": {"stop": -1 if self.stop_hhmm is None else self.stop_hhmm},
            "watch": {"interval": self.interval, "skip_header": self.skip_header},
        }


def validate(config: Config) -> None:
    if isinstance(config.interval, bool) or not isinstance(config.interval, int) or config.interval < 0:
        raise ConfigError(f"watch.interval must be a non-negative integer, got {config.interval!r}")
    if not config.app_name:
        raise ConfigError("app.app_name must not be empty")


def resolve_config_path(explicit: Optional[Path] = None) -> Path:
    if explicit is not None:
        return Path(os.path.expanduser(str(explicit)))
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(os.path.expanduser(env))
    return Path(_DEFAULT_CONFIG_FILE)


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    return value if isinstance(value, dict) else {}


def _text(section: Dict[str, Any], key: str, default: str) -> str:
    value = section.get(key)
    return value if isinstance(value, str) else default


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from disk.

    A missing or unparseable file yields the defaults so that logging is
    always available. Values of the wrong type fall back to their default;
    an out-of-range interval raises :class:`ConfigError`.
    """

    config_path = resolve_config_path(path)
    data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            loaded = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            loaded = {}
        if isinstance(loaded, dict):
            data = loaded
    app = _section(data, "app")
    crontab = _section(data, "crontab")
    watch = _section(data, "watch")
    skip_header = watch.get("skip_header", True)
    config = Config(
        app_name=_text(app, "app_name", _DEFAULT_APP_NAME),
        log_path=_text(app, "log_path", _DEFAULT_LOG_PATH),
        mode=_text(app, "mode", _DEFAULT_MODE),
        stop_hhmm=parse_hhmm(crontab.get("stop", -1)),
        interval=watch.get("interval", _DEFAULT_INTERVAL),
        skip_header=skip_header if isinstance(skip_header, bool) else True,
    )
    validate(config)
    return config


def save_config(config: Config, path: Optional[Path] = None) -> None:
    resolve_config_path(path).write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")


__all__ = [
    "CONFIG_ENV",
    "Config",
    "expand_time_wildcards",
    "load_config",
    "parse_hhmm",
    "resolve_config_path",
    "save_config",
    "validate",
]
