"""Exception types shared across csvwatch."""
from __future__ import annotations


class CsvWatchError(Exception):
    """Base class for csvwatch errors."""


class ConfigError(CsvWatchError, ValueError):
    """Invalid configuration or constructor arguments; raised before any loop starts."""


class ParseError(CsvWatchError):
    """A text chunk could not be split into rows."""


__all__ = ["ConfigError", "CsvWatchError", "ParseError"]
