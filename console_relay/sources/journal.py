"""Systemd journal source backed by ``journalctl --follow --output=json``.

Every stdout line of journalctl is one JSON-encoded journal entry. The unit
field is ``_SYSTEMD_UNIT`` and the text is ``MESSAGE``; journald encodes
non-UTF-8 messages as an array of byte values.

The journal cursor of the last entry read is kept so that, when journalctl
exits, the next read restarts it with ``--after-cursor`` and resumes right
after the last entry read.

journalctl's stderr goes to an anonymous temporary file rather than a pipe.
Nothing reads stderr while the child runs, and a full pipe would stall
journalctl (and with it the stdout the reader is blocked on). The file is
read back for diagnostics once the child has exited.
"""

from __future__ import annotations

import json
import subprocess
import tempfile
from typing import IO, Any, Dict, List, Optional, Sequence

from console_relay.errors import SourceUnavailable
from console_relay.logging import get_component_logger
from console_relay.protocols import LoggerProtocol, SourceEntry

UNIT_FIELD = "_SYSTEMD_UNIT"
MESSAGE_FIELD = "MESSAGE"
CURSOR_FIELD = "__CURSOR"

# journalctl exiting this fast after spawn means it could not open the journal
STARTUP_GRACE_SECONDS = 0.2

# Tail of stderr kept in log records and errors
STDERR_TAIL_BYTES = 4096


def decode_field(value: Any) -> str:
    """Decode a journal field from its JSON representation.

    Absent fields are ``""``; byte arrays are decoded as UTF-8 with
    replacement characters.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(b, int) for b in value):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def parse_entry(raw: bytes) -> Optional[SourceEntry]:
    """Parse one line of ``journalctl --output=json``.

    Returns None for lines that are not a JSON object.
    """
    try:
        fields: Dict[str, Any] = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(fields, dict):
        return None
    cursor = fields.get(CURSOR_FIELD)
    return SourceEntry(
        message=decode_field(fields.get(MESSAGE_FIELD)),
        unit=decode_field(fields.get(UNIT_FIELD)),
        cursor=cursor if isinstance(cursor, str) else None,
        fields=fields,
    )


class _JournalProcess:
    """One journalctl run: the child and the file collecting its stderr."""

    def __init__(self, args: List[str]) -> None:
        self.errlog: IO[bytes] = tempfile.TemporaryFile()
        try:
            self.proc = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=self.errlog,
            )
        except OSError:
            self.errlog.close()
            raise

    def readline(self) -> bytes:
        return self.proc.stdout.readline()

    def wait(self, timeout: Optional[float] = None) -> int:
        return self.proc.wait(timeout=timeout)

    def stop(self) -> None:
        """Terminate the child if it is still running."""
        if self.proc.poll() is not None:
            return
        self.proc.terminate()
        try:
            self.proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self.proc.kill()
            self.proc.wait()

    def stderr_tail(self) -> str:
        try:
            self.errlog.seek(0, 2)
            size = self.errlog.tell()
            self.errlog.seek(max(0, size - STDERR_TAIL_BYTES))
            return self.errlog.read().decode("utf-8", errors="replace").strip()
        except (OSError, ValueError):
            return ""

    def release(self) -> None:
        for stream in (self.proc.stdout, self.errlog):
            if stream is not None:
                stream.close()


class JournalSource:
    """Blocking reader over the system journal."""

    def __init__(
        self,
        *,
        command: Sequence[str] = ("journalctl",),
        startup_grace: float = STARTUP_GRACE_SECONDS,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize the journal source.

        Args:
            command: journalctl executable (plus any fixed leading arguments)
            startup_grace: Seconds open() waits for journalctl to fail fast
            logger: Injected logger
        """
        self._command = list(command)
        self._startup_grace = startup_grace
        self._logger = get_component_logger("journal_source", logger)
        self._child: Optional[_JournalProcess] = None
        self._cursor: Optional[str] = None
        self._closed = False

    @property
    def name(self) -> str:
        return "journal"

    @property
    def has_units(self) -> bool:
        return True

    @property
    def cursor(self) -> Optional[str]:
        return self._cursor

    def build_command(self) -> List[str]:
        """Arguments for the next journalctl run."""
        args = self._command + ["--follow", "--output=json", "--no-pager"]
        if self._cursor:
            args.append(f"--after-cursor={self._cursor}")
        else:
            args.append("--lines=0")
        return args

    def open(self) -> None:
        """Start journalctl positioned at the current tail.

        Raises:
            SourceUnavailable: journalctl cannot be started or exits at once
        """
        self._closed = False
        self._spawn()
        try:
            returncode = self._child.wait(timeout=self._startup_grace)
        except subprocess.TimeoutExpired:
            return
        if returncode != 0:
            child, self._child = self._child, None
            stderr = child.stderr_tail()
            child.release()
            raise SourceUnavailable(
                self.name, f"journalctl exited with {returncode}: {stderr}"
            )

    def next_entry(self) -> Optional[SourceEntry]:
        """Read the next journal entry, blocking until one arrives.

        Returns None when journalctl has exited; the following call
        restarts it after the last cursor.
        """
        if self._closed:
            return None
        if self._child is None:
            try:
                self._spawn()
            except SourceUnavailable as e:
                self._logger.warning("journal_reopen_failed", error=e.reason)
                return None

        child = self._child
        if child is None:
            return None
        while True:
            try:
                raw = child.readline()
            except ValueError:
                # stdout closed by a concurrent close()
                return None
            if not raw:
                self._reap(child)
                return None
            entry = parse_entry(raw)
            if entry is None:
                self._logger.debug("journal_line_unparseable", size=len(raw))
                continue
            if entry.cursor:
                self._cursor = entry.cursor
            return entry

    def close(self) -> None:
        """Stop journalctl. Unblocks a reader waiting in next_entry()."""
        self._closed = True
        child, self._child = self._child, None
        if child is not None:
            child.stop()

    def _spawn(self) -> None:
        try:
            self._child = _JournalProcess(self.build_command())
        except OSError as e:
            raise SourceUnavailable(self.name, str(e)) from e
        self._logger.info("journal_opened", resumed=self._cursor is not None)

    def _reap(self, child: _JournalProcess) -> None:
        returncode = child.wait()
        if not self._closed:
            self._logger.warning(
                "journal_reader_exited",
                returncode=returncode,
                stderr=child.stderr_tail(),
            )
        child.release()
        if self._child is child:
            self._child = None
