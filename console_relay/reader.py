"""LogSourceReader - the single producer feeding the broadcast bus.

The source's read call blocks the calling thread, so the reader runs on its
own daemon thread and talks to the event loop only through
BroadcastBus.publish().

    source.next_entry() --filter by unit--> bus.publish(message)

An empty read means the source is exhausted for now; the reader waits
``poll_interval`` seconds and tries again. It only stops when asked to.
"""

from __future__ import annotations

import threading
from typing import Optional

from console_relay.bus import BroadcastBus
from console_relay.logging import get_component_logger
from console_relay.observability.metrics import LINES_FILTERED, LINES_PUBLISHED
from console_relay.protocols import LoggerProtocol, LogSourceProtocol, SourceEntry

STARTUP_LINE = "starting up"
DEFAULT_POLL_INTERVAL = 1.0


class LogSourceReader:
    """Tails one log source and publishes the target unit's messages."""

    def __init__(
        self,
        source: LogSourceProtocol,
        bus: BroadcastBus,
        *,
        unit: Optional[str] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize the reader.

        Args:
            source: Log source to tail
            bus: Bus that receives every accepted message
            unit: Target unit; entries whose unit differs are dropped.
                  Ignored for sources without units.
            poll_interval: Seconds to wait when the source is exhausted
            logger: Injected logger
        """
        self._source = source
        self._bus = bus
        self._unit = unit
        self._poll_interval = poll_interval
        self._logger = get_component_logger("log_reader", logger).bind(source=source.name)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._cursor: Optional[str] = None

    @property
    def cursor(self) -> Optional[str]:
        """Position of the last entry read from the source."""
        return self._cursor

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Open the source at its tail and start the reader thread.

        Raises:
            SourceUnavailable: the source cannot be opened. The caller
                should treat this as a fatal startup error.
        """
        if self._thread is not None:
            return

        self._source.open()
        self._logger.info("log_source_opened", unit=self._unit)
        self._bus.publish(STARTUP_LINE)

        self._thread = threading.Thread(
            target=self._run,
            name="log-source-reader",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the thread, close the source and close the bus."""
        self._stop.set()
        self._source.close()
        if self._thread is not None:
            self._thread.join(timeout)

    def handle_entry(self, entry: SourceEntry) -> bool:
        """Publish one entry if it belongs to the target unit.

        Unit match is exact; an absent unit field counts as "".

        Returns:
            True if the message was published
        """
        if entry.cursor is not None:
            self._cursor = entry.cursor

        if self._unit is not None and self._source.has_units:
            if (entry.unit or "") != self._unit:
                LINES_FILTERED.inc()
                return False

        self._bus.publish(entry.message)
        LINES_PUBLISHED.inc()
        return True

    def _run(self) -> None:
        self._logger.info("log_reader_started")
        try:
            while not self._stop.is_set():
                entry = self._source.next_entry()
                if self._stop.is_set():
                    break
                if entry is None:
                    self._stop.wait(self._poll_interval)
                    continue
                self.handle_entry(entry)
        except Exception as e:
            self._logger.error("log_reader_failed", error=str(e), error_type=type(e).__name__)
        finally:
            # Anything the source reopened while stop() was closing it
            self._source.close()
            self._bus.close()
            self._logger.info("log_reader_stopped")


__all__ = ["LogSourceReader", "STARTUP_LINE", "DEFAULT_POLL_INTERVAL"]
