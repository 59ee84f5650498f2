"""Log source back-ends for the reader.

- journal: systemd journal via journalctl, entries tagged with their unit
- file:    plain append-only log file, no unit
"""

from typing import Optional

from console_relay.protocols import LoggerProtocol, LogSourceProtocol
from console_relay.settings import MinecraftSettings
from console_relay.sources.file import FileSource
from console_relay.sources.journal import JournalSource


def create_source(
    config: MinecraftSettings,
    logger: Optional[LoggerProtocol] = None,
) -> LogSourceProtocol:
    """Build the log source named by ``config.log_source``."""
    if config.log_source == "file":
        return FileSource(config.log_path, logger=logger)
    return JournalSource(logger=logger)


__all__ = ["create_source", "FileSource", "JournalSource"]
