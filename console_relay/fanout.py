"""FanoutSession - relays one bus subscription to one client transport.

Each iteration races two waits:

    bus_wait    = subscription.receive()   -> forward as a text frame
    client_wait = transport.receive()      -> watch for close / error

Whichever completes is handled and re-armed; the other stays registered
for the next iteration. When the session ends, both outstanding waits are
cancelled and awaited, and the subscription is closed.

The session ends on the first of:
- probe frame could not be sent        (PROBE_FAILED)
- outbound send failed                 (SEND_FAILED)
- inbound read raised                  (RECEIVE_FAILED)
- client sent a close / went away      (CLIENT_CLOSED)
- bus closed                           (BUS_CLOSED)

A lagged subscription is logged and the session keeps going. Failed sends
are never retried.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, Optional

from console_relay.bus import Subscription
from console_relay.errors import BusClosed, BusLagged, TransportError
from console_relay.logging import get_component_logger
from console_relay.observability.metrics import ACTIVE_SESSIONS, record_lag, record_session_end
from console_relay.protocols import LoggerProtocol, TransportProtocol

DISCONNECT_MESSAGE = "websocket.disconnect"


class SessionEnd(str, Enum):
    """Why a fanout session ended."""

    PROBE_FAILED = "probe_failed"
    SEND_FAILED = "send_failed"
    RECEIVE_FAILED = "receive_failed"
    CLIENT_CLOSED = "client_closed"
    BUS_CLOSED = "bus_closed"


class FanoutSession:
    """One client connection's live log feed."""

    def __init__(
        self,
        transport: TransportProtocol,
        subscription: Subscription,
        *,
        probe_message: Optional[str] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize the session.

        Args:
            transport: Accepted client connection
            subscription: Fresh bus subscription owned by this session
            probe_message: Text frame sent first to check the transport;
                None skips the probe
            logger: Injected logger
        """
        self._transport = transport
        self._subscription = subscription
        self._probe_message = probe_message
        self._logger = get_component_logger("fanout_session", logger)
        self._lines_sent = 0
        self._lines_skipped = 0

    @property
    def lines_sent(self) -> int:
        return self._lines_sent

    @property
    def lines_skipped(self) -> int:
        return self._lines_skipped

    async def run(self) -> SessionEnd:
        """Relay until a termination condition occurs.

        The subscription is always closed on exit, including cancellation.
        """
        ACTIVE_SESSIONS.inc()
        try:
            reason = await self._relay()
        finally:
            self._subscription.close()
            ACTIVE_SESSIONS.dec()

        record_session_end(reason.value)
        self._logger.info(
            "fanout_session_ended",
            reason=reason.value,
            lines_sent=self._lines_sent,
            lines_skipped=self._lines_skipped,
        )
        return reason

    async def _relay(self) -> SessionEnd:
        if self._probe_message is not None:
            try:
                await self._send(self._probe_message)
            except TransportError as e:
                self._logger.info("fanout_probe_failed", error=str(e))
                return SessionEnd.PROBE_FAILED

        bus_wait: Optional[asyncio.Future] = None
        client_wait: Optional[asyncio.Future] = None
        try:
            while True:
                if bus_wait is None:
                    bus_wait = asyncio.ensure_future(self._subscription.receive())
                if client_wait is None:
                    client_wait = asyncio.ensure_future(self._read())

                done, _ = await asyncio.wait(
                    {bus_wait, client_wait},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if bus_wait in done:
                    finished, bus_wait = bus_wait, None
                    reason = await self._on_bus_result(finished)
                    if reason is not None:
                        return reason

                if client_wait in done:
                    finished, client_wait = client_wait, None
                    reason = self._on_client_result(finished)
                    if reason is not None:
                        return reason
        finally:
            outstanding = [w for w in (bus_wait, client_wait) if w is not None]
            for wait in outstanding:
                wait.cancel()
            if outstanding:
                await asyncio.gather(*outstanding, return_exceptions=True)

    async def _on_bus_result(self, finished: asyncio.Future) -> Optional[SessionEnd]:
        try:
            line = finished.result()
        except BusLagged as e:
            self._lines_skipped += e.skipped
            record_lag(e.skipped)
            self._logger.warning("fanout_subscriber_lagged", skipped=e.skipped)
            return None
        except BusClosed:
            self._logger.info("fanout_bus_closed")
            return SessionEnd.BUS_CLOSED

        try:
            await self._send(line)
        except TransportError as e:
            self._logger.info("fanout_send_failed", error=str(e))
            return SessionEnd.SEND_FAILED

        self._lines_sent += 1
        return None

    def _on_client_result(self, finished: asyncio.Future) -> Optional[SessionEnd]:
        try:
            message: Dict[str, Any] = finished.result()
        except TransportError as e:
            self._logger.info("fanout_receive_failed", error=str(e))
            return SessionEnd.RECEIVE_FAILED

        if message.get("type") == DISCONNECT_MESSAGE:
            self._logger.info("fanout_client_closed", code=message.get("code"))
            return SessionEnd.CLIENT_CLOSED

        payload = message.get("text") or message.get("bytes") or ""
        self._logger.debug("fanout_inbound_frame", size=len(payload))
        return None

    async def _send(self, text: str) -> None:
        try:
            await self._transport.send_text(text)
        except Exception as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

    async def _read(self) -> Dict[str, Any]:
        try:
            return await self._transport.receive()
        except Exception as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e


__all__ = ["FanoutSession", "SessionEnd"]
