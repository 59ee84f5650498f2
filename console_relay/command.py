"""CommandBridge - writes operator commands into the server's control input.

The control input is the managed process's stdin, exposed as a pre-existing
FIFO (or device-like file). The bridge never creates it: the path is opened
write-only with O_APPEND and without O_CREAT, fresh for every command.

O_NONBLOCK makes the open fail with ENXIO when nothing holds the FIFO's
read end, rather than hanging the request until the server starts.

Each command is written with a single os.write() call. Writes of up to
PIPE_BUF bytes are atomic on a pipe, so concurrent commands do not
interleave within a line. Writes go straight to the kernel with no
userspace buffer, so the process sees the command as soon as the write
returns.
"""

from __future__ import annotations

import asyncio
import os
from typing import Optional

from console_relay.errors import CommandDeliveryError
from console_relay.logging import get_component_logger
from console_relay.observability.metrics import record_command
from console_relay.protocols import LoggerProtocol

OPEN_FLAGS = os.O_WRONLY | os.O_APPEND | os.O_NONBLOCK | getattr(os, "O_CLOEXEC", 0)


def normalize_command(command: str) -> str:
    """Append the terminating newline the line-oriented input expects."""
    if not command.endswith("\n"):
        return command + "\n"
    return command


def write_command(path: str, command: str) -> int:
    """Write one normalized command to ``path`` in a single write.

    Returns:
        Number of bytes written

    Raises:
        CommandDeliveryError: the path could not be opened or the write
            was short or failed
    """
    data = normalize_command(command).encode("utf-8")
    try:
        fd = os.open(path, OPEN_FLAGS)
    except OSError as e:
        raise CommandDeliveryError(path, e.strerror or str(e)) from e

    try:
        written = os.write(fd, data)
    except OSError as e:
        raise CommandDeliveryError(path, e.strerror or str(e)) from e
    finally:
        os.close(fd)

    if written != len(data):
        raise CommandDeliveryError(path, f"short write ({written} of {len(data)} bytes)")
    return written


class CommandBridge:
    """Delivers commands to the managed process. Fire-and-forget."""

    def __init__(self, control_path: str, *, logger: Optional[LoggerProtocol] = None) -> None:
        self._path = control_path
        self._logger = get_component_logger("command_bridge", logger).bind(path=control_path)

    @property
    def control_path(self) -> str:
        return self._path

    async def deliver(self, command: str) -> int:
        """Write ``command`` to the control input.

        Success means the bytes reached the control input; it says nothing
        about what the process did with them.

        Returns:
            Number of bytes written

        Raises:
            CommandDeliveryError: delivery failed; the command did not take effect
        """
        try:
            written = await asyncio.to_thread(write_command, self._path, command)
        except CommandDeliveryError as e:
            record_command(False)
            self._logger.error("command_failed", error=e.reason)
            raise

        record_command(True)
        self._logger.info("command_delivered", size=written)
        return written


__all__ = ["CommandBridge", "normalize_command", "write_command"]
