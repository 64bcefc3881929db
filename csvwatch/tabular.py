"""CSV chunk parsing."""
from __future__ import annotations

import csv
from typing import List, Optional

from .errors import ParseError

UTF8_BOM = b"\xef\xbb\xbf"


def strip_bom(data: bytes) -> bytes:
    if data.startswith(UTF8_BOM):
        return data[len(UTF8_BOM):]
    return data


def parse_line(line: str) -> List[str]:
    """Split one physical line into cells. A quoted field never continues past the line."""

    try:
        return next(csv.reader([line.rstrip("\r")], strict=True), [])
    except csv.Error as exc:
        raise ParseError(str(exc)) from exc


def parse_rows(
    text: str,
    *,
    has_header: bool = False,
    errors: Optional[List[ParseError]] = None,
) -> List[List[str]]:
    """Split ``text`` into rows of string cells, one row per ``\\n``-terminated line.

    When ``has_header`` is set the first row is treated as column names and
    dropped. Blank lines produce no row. A malformed line raises
    :class:`ParseError`, unless ``errors`` is given: the line is then skipped
    and its error appended there, so the other lines still parse.
    """

    rows: List[List[str]] = []
    for number, line in enumerate(text.split("\n"), start=1):
        try:
            row = parse_line(line)
        except ParseError as exc:
            failure = ParseError(f"line {number}: {exc}")
            if errors is None:
                raise failure from exc
            errors.append(failure)
            continue
        if row:
            rows.append(row)
    if has_header and rows:
        return rows[1:]
    return rows


__all__ = ["UTF8_BOM", "parse_line", "parse_rows", "strip_bom"]
