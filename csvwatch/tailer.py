"""Incremental tail cursor resilient to truncation and file replacement."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, List, NamedTuple, Optional, Union

from .errors import ConfigError

logger = logging.getLogger(__name__)

_BOM = b"\xef\xbb\xbf"
_DEFAULT_CHUNK_SIZE = 64 * 1024


class FileIdentity(NamedTuple):
    """Stable identifiers of one underlying file: device/volume and file index."""

    device: int
    index: int


def identity_from_stat(stat: os.stat_result) -> Optional[FileIdentity]:
    """Return the identity of the file described by ``stat``.

    Where the platform reports no inode number, the creation time stands in
    for it. That proxy only notices replacements which create a new file.
    Without either value ``None`` is returned and replacement detection is
    disabled for the handle.
    """

    inode = getattr(stat, "st_ino", 0)
    if inode:
        return FileIdentity(stat.st_dev, inode)
    birth = getattr(stat, "st_birthtime_ns", None)
    if birth is None:
        birth_s = getattr(stat, "st_birthtime", None)
        if birth_s is not None:
            birth = int(birth_s * 1_000_000_000)
    if birth:
        return FileIdentity(stat.st_dev, birth)
    return None


class TailCursor:
    """Follow one path and hand out newly appended, newline-terminated lines.

    The cursor holds at most one read handle. Before every read it probes the
    path; if the path now names a different file the handle is replaced and
    reading restarts at byte 0. Shrinking below the current offset is treated
    as an in-place truncation and also restarts at byte 0. Bytes that do not
    yet end in ``\\n`` stay in the carry buffer until a later read completes
    them.

    On Windows the handle comes from the builtin ``open``, which shares read
    and write access but not delete. A producer that renames or deletes the
    followed file fails while the cursor holds it open, so rotation there
    only works for producers that truncate in place or copy-then-truncate.
    POSIX has no such restriction.
    """

    def __init__(
        self,
        path: Union[str, Path],
        *,
        skip_header: bool = False,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
    ) -> None:
        if not str(path):
            raise ConfigError("tail path must not be empty")
        if chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {chunk_size!r}")
        self.path = Path(path)
        self.skip_header = skip_header
        self.chunk_size = chunk_size
        self._handle: Optional[BinaryIO] = None
        self._identity: Optional[FileIdentity] = None
        self._offset = 0
        self._carry = bytearray()
        self._bom_stripped = False
        self._header_skipped = False
        self._last_error: Optional[OSError] = None

    # ------------------------------------------------------------------
    # public API

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def identity(self) -> Optional[FileIdentity]:
        return self._identity

    @property
    def last_error(self) -> Optional[OSError]:
        """I/O error swallowed by the latest ``open``/``read_lines`` call, if any."""
        return self._last_error

    def open(self) -> bool:
        """Open the path if no handle is held. Returns False when it cannot be opened yet."""

        if self._handle is not None:
            return True
        try:
            handle = open(self.path, "rb")
        except OSError as exc:
            self._last_error = exc
            logger.debug("cannot open %s yet: %s", self.path, exc)
            return False
        try:
            self._identity = identity_from_stat(os.fstat(handle.fileno()))
        except OSError:
            self._identity = None
        if self._identity is None:
            logger.debug("no file identity for %s; replacement detection disabled", self.path)
        self._handle = handle
        self._last_error = None
        self._reset()
        logger.debug("opened %s", self.path)
        return True

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            self._handle.close()
        finally:
            self._handle = None
            self._identity = None
        logger.debug("closed %s", self.path)

    def read_lines(self) -> List[str]:
        """Return the complete lines appended since the previous call, in file order.

        I/O errors are never raised; the one swallowed during this call, if
        any, is left in :attr:`last_error`.
        """

        self._last_error = None
        if not self.open():
            return []
        self._refresh_if_replaced()
        handle = self._handle
        if handle is None:
            return []
        try:
            size = os.fstat(handle.fileno()).st_size
        except OSError as exc:
            self._record_error("size query", exc)
            return []
        if size < self._offset:
            logger.info("%s truncated from %d to %d bytes; restarting at 0", self.path, self._offset, size)
            self._reset()
        if size == self._offset:
            return []
        try:
            handle.seek(self._offset, os.SEEK_SET)
        except OSError as exc:
            self._record_error("seek", exc)
            return []

        lines: List[str] = []
        remaining = size - self._offset
        while remaining > 0:
            try:
                chunk = handle.read(min(self.chunk_size, remaining))
            except OSError as exc:
                self._record_error("read", exc)
                break
            if not chunk:
                break
            self._offset += len(chunk)
            remaining -= len(chunk)
            self._carry += chunk
            if not self._bom_stripped:
                self._strip_bom()
            if self.skip_header and not self._header_skipped:
                end = self._carry.find(b"\n")
                if end < 0:
                    # Still inside the header line.
                    continue
                del self._carry[: end + 1]
                self._header_skipped = True
            lines.extend(self._drain_lines())
        return lines

    def __enter__(self) -> "TailCursor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # internal helpers

    def _reset(self) -> None:
        self._offset = 0
        self._carry.clear()
        self._bom_stripped = False
        self._header_skipped = False

    def _refresh_if_replaced(self) -> bool:
        if self._identity is None:
            return False
        try:
            current = identity_from_stat(os.stat(self.path))
        except OSError:
            # Missing mid-rotation; keep reading the handle we have.
            return False
        if current is None or current == self._identity:
            return False
        logger.info("%s now names a different file; reopening", self.path)
        self.close()
        self.open()
        return True

    def _strip_bom(self) -> None:
        if len(self._carry) < len(_BOM) and _BOM.startswith(bytes(self._carry)):
            return
        if self._carry.startswith(_BOM):
            del self._carry[: len(_BOM)]
        self._bom_stripped = True

    def _drain_lines(self) -> List[str]:
        out: List[str] = []
        carry = self._carry
        start = 0
        while True:
            end = carry.find(b"\n", start)
            if end < 0:
                break
            stop = end - 1 if end > start and carry[end - 1] == 0x0D else end
            out.append(carry[start:stop].decode("utf-8", errors="replace"))
            start = end + 1
        if start:
            del carry[:start]
        return out

    def _record_error(self, operation: str, exc: OSError) -> None:
        self._last_error = exc
        logger.warning("%s failed for %s: %s", operation, self.path, exc)


__all__ = ["FileIdentity", "TailCursor", "identity_from_stat"]
