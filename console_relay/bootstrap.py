"""Composition Root - build the AppContext.

This is the only place where the bus, the log source, the reader and the
command bridge are instantiated and wired together.

Usage:
    from console_relay.bootstrap import create_app_context

    app_context = create_app_context()
    app.state.context = app_context
"""

from typing import Optional

from console_relay.bus import BroadcastBus
from console_relay.command import CommandBridge
from console_relay.context import AppContext
from console_relay.logging import configure_logging, create_logger
from console_relay.protocols import LoggerProtocol, LogSourceProtocol
from console_relay.reader import LogSourceReader
from console_relay.settings import Settings, get_settings
from console_relay.sources import create_source


def create_app_context(
    settings: Optional[Settings] = None,
    *,
    source: Optional[LogSourceProtocol] = None,
    with_reader: bool = True,
    logger: Optional[LoggerProtocol] = None,
) -> AppContext:
    """Create the AppContext with all dependencies wired.

    The reader is created but not started; the application lifespan starts
    it so that an unavailable source aborts startup.

    Args:
        settings: Settings to use (default: global settings)
        source: Log source override (default: built from settings)
        with_reader: Build a reader at all (False for apps without a feed)
        logger: Root logger (default: structlog-backed logger)
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.webserver.log_level,
        json_output=settings.webserver.log_json,
    )
    if logger is None:
        logger = create_logger("console_relay")

    mc = settings.minecraft
    bus = BroadcastBus(capacity=mc.bus_capacity)

    reader = None
    if with_reader:
        if source is None:
            source = create_source(mc, logger=logger)
        reader = LogSourceReader(
            source,
            bus,
            unit=mc.systemd_unit,
            poll_interval=mc.poll_interval,
            logger=logger,
        )

    return AppContext(
        settings=settings,
        logger=logger,
        bus=bus,
        command_bridge=CommandBridge(mc.socket_path, logger=logger),
        reader=reader,
    )


__all__ = ["create_app_context"]
