"""AppContext - the dependencies shared by every request handler.

Built once by the composition root (console_relay.bootstrap) and stored on
``app.state.context``. Handlers reach the bus and the command bridge through
it rather than through module globals.

Usage:
    from console_relay.bootstrap import create_app_context

    app_context = create_app_context(settings)
    subscription = app_context.bus.subscribe()
"""

from dataclasses import dataclass
from typing import Optional

from console_relay.bus import BroadcastBus
from console_relay.command import CommandBridge
from console_relay.protocols import LoggerProtocol
from console_relay.reader import LogSourceReader
from console_relay.settings import Settings


@dataclass
class AppContext:
    """Process-wide dependencies.

    Attributes:
        settings: Application settings
        logger: Root logger
        bus: Broadcast bus; lives as long as the process
        command_bridge: Writes operator commands to the control input
        reader: Log reader feeding the bus; None when the app runs without
            a live feed (tests)
    """

    settings: Settings
    logger: LoggerProtocol
    bus: BroadcastBus
    command_bridge: CommandBridge
    reader: Optional[LogSourceReader] = None

    @property
    def feed_alive(self) -> bool:
        return self.reader is not None and self.reader.is_alive
