"""Error taxonomy for the console relay.

Propagation:
- SourceUnavailable at reader startup is fatal (the lifespan re-raises it).
  On the /log snapshot endpoint it becomes a 404.
- TransportError and BusLagged stay inside one fanout session.
- CommandDeliveryError becomes a 500 on /command. Nothing retries.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for console relay errors."""
    pass


class SourceUnavailable(RelayError):
    """Raised when the log source cannot be opened."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Log source {source} unavailable: {reason}")


class TransportError(RelayError):
    """Raised when a client transport fails mid-session."""
    pass


class BusLagged(RelayError):
    """Raised by Subscription.receive() when buffered lines were dropped.

    The subscription stays usable; the next receive() returns the oldest
    line still retained.
    """

    def __init__(self, skipped: int):
        self.skipped = skipped
        super().__init__(f"Subscriber lagged, {skipped} line(s) skipped")


class BusClosed(RelayError):
    """Raised by Subscription.receive() once the bus has no producer left."""
    pass


class CommandDeliveryError(RelayError):
    """Raised when a command could not be written to the control input."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Command not delivered to {path}: {reason}")


__all__ = [
    "RelayError",
    "SourceUnavailable",
    "TransportError",
    "BusLagged",
    "BusClosed",
    "CommandDeliveryError",
]
