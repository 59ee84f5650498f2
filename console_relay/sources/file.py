"""Plain log file source.

Tails an append-only text file the way ``tail -F`` does: start at the end,
hand out complete lines, rewind when the file is truncated, and reopen from
the start when the path is rotated to a new file. A line still being written
(no trailing newline yet) is held back until it is complete.
"""

from __future__ import annotations

import os
from typing import BinaryIO, Optional

from console_relay.errors import SourceUnavailable
from console_relay.logging import get_component_logger
from console_relay.protocols import LoggerProtocol, SourceEntry


class FileSource:
    """Blocking reader over one log file. Entries carry no unit."""

    def __init__(self, path: str, *, logger: Optional[LoggerProtocol] = None) -> None:
        self._path = path
        self._logger = get_component_logger("file_source", logger).bind(path=path)
        self._fh: Optional[BinaryIO] = None
        self._inode: Optional[int] = None
        self._offset = 0
        self._partial = b""
        self._rotated = False
        self._closed = False

    @property
    def name(self) -> str:
        return f"file:{self._path}"

    @property
    def has_units(self) -> bool:
        return False

    @property
    def offset(self) -> int:
        """Byte offset of the next unread line."""
        return self._offset - len(self._partial)

    def open(self) -> None:
        """Open the file positioned at its current end.

        Raises:
            SourceUnavailable: the file cannot be opened
        """
        self._closed = False
        self._open(at_end=True)

    def next_entry(self) -> Optional[SourceEntry]:
        """Return the next complete line, or None when none is pending.

        Safe to race with close() from another thread: a closed source
        reads as empty.
        """
        if self._closed:
            return None
        if self._fh is None:
            if not self._rotated:
                return None
            try:
                self._open(at_end=False)
            except SourceUnavailable:
                return None

        fh = self._fh
        if fh is None:
            return None
        try:
            chunk = fh.readline()
        except ValueError:
            # Closed underneath us
            return None
        if chunk:
            self._offset += len(chunk)
            data = self._partial + chunk
            if not data.endswith(b"\n"):
                self._partial = data
                return None
            self._partial = b""
            text = data.rstrip(b"\r\n").decode("utf-8", errors="replace")
            return SourceEntry(message=text, cursor=str(self._offset))

        self._follow(fh)
        return None

    def close(self) -> None:
        self._closed = True
        self._release()

    def _release(self) -> None:
        fh, self._fh = self._fh, None
        if fh is not None:
            fh.close()

    def _open(self, *, at_end: bool) -> None:
        try:
            fh = open(self._path, "rb")
        except OSError as e:
            raise SourceUnavailable(self.name, e.strerror or str(e)) from e
        if at_end:
            fh.seek(0, os.SEEK_END)
        self._fh = fh
        self._inode = os.fstat(fh.fileno()).st_ino
        self._offset = fh.tell()
        self._partial = b""
        self._rotated = False

    def _follow(self, fh: BinaryIO) -> None:
        """Handle truncation and rotation once the current file is drained."""
        try:
            st = os.stat(self._path)
        except FileNotFoundError:
            # Rotated away, new file not created yet
            return

        if self._closed:
            return
        if st.st_ino != self._inode:
            self._logger.info("log_file_rotated")
            self._release()
            self._rotated = True
            try:
                self._open(at_end=False)
            except SourceUnavailable as e:
                self._logger.warning("log_file_reopen_failed", error=e.reason)
        elif st.st_size < self._offset:
            self._logger.info("log_file_truncated", size=st.st_size, offset=self._offset)
            try:
                fh.seek(0)
            except ValueError:
                return
            self._offset = 0
            self._partial = b""
