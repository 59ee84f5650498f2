"""Protocol definitions - interfaces for dependency injection.

These are typing.Protocol classes for static type checking. Concrete
implementations live next to the code that uses them:
- LoggerProtocol       -> console_relay.logging.Logger
- LogSourceProtocol    -> console_relay.sources.JournalSource / FileSource
- TransportProtocol    -> starlette WebSocket (duck typed)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable


# =============================================================================
# REQUEST CONTEXT
# =============================================================================

@dataclass(frozen=True)
class RequestContext:
    """Immutable request context bound into log records for one HTTP request."""
    request_id: str
    method: str
    path: str
    client: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.request_id, str) or not self.request_id.strip():
            raise ValueError("request_id is required and must be a non-empty string")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serializable dictionary."""
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "client": self.client,
        }


# =============================================================================
# LOGGING
# =============================================================================

@runtime_checkable
class LoggerProtocol(Protocol):
    """Structured logging interface."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def bind(self, **kwargs: Any) -> "LoggerProtocol": ...


# =============================================================================
# LOG SOURCES
# =============================================================================

@dataclass(frozen=True)
class SourceEntry:
    """One raw entry read from a log source.

    unit is None when the source carries no unit field (plain files).
    """
    message: str
    unit: Optional[str] = None
    cursor: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict, compare=False)


@runtime_checkable
class LogSourceProtocol(Protocol):
    """Blocking, sequential reader over an append-only log stream.

    Lifecycle: open (seeks to the tail) / close
    Read: next_entry returns None when nothing is pending right now
    """

    @property
    def name(self) -> str: ...

    @property
    def has_units(self) -> bool: ...

    def open(self) -> None: ...
    def next_entry(self) -> Optional[SourceEntry]: ...
    def close(self) -> None: ...


# =============================================================================
# CLIENT TRANSPORT
# =============================================================================

@runtime_checkable
class TransportProtocol(Protocol):
    """Message-based bidirectional client connection.

    Uses duck typing - starlette's WebSocket satisfies it. receive() returns
    ASGI websocket messages ({"type": "websocket.receive", ...} or
    {"type": "websocket.disconnect", ...}).
    """

    async def send_text(self, data: str) -> None: ...
    async def receive(self) -> Dict[str, Any]: ...


__all__ = [
    "RequestContext",
    "LoggerProtocol",
    "SourceEntry",
    "LogSourceProtocol",
    "TransportProtocol",
]
