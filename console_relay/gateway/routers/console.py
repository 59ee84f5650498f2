"""Console router - live log feed, log snapshot and command submission.

Endpoints:
- WS   /ws       live log lines, one text frame per line
- GET  /log      current log file content as text/plain
- POST /command  raw text body written to the server's control input
"""

from __future__ import annotations

import asyncio
from typing import BinaryIO, Iterator

from fastapi import APIRouter, Depends, Request, WebSocket, status
from fastapi.responses import Response, StreamingResponse
from starlette.websockets import WebSocketState

from console_relay.context import AppContext
from console_relay.errors import CommandDeliveryError, SourceUnavailable
from console_relay.fanout import FanoutSession, SessionEnd

router = APIRouter(tags=["console"])

LOG_MEDIA_TYPE = "text/plain; charset=utf-8"
LOG_CHUNK_SIZE = 64 * 1024


# =============================================================================
# Dependencies
# =============================================================================

def get_app_context(request: Request) -> AppContext:
    """Get the AppContext stored on the application by the composition root."""
    return request.app.state.context


# =============================================================================
# Helpers
# =============================================================================

def open_log_snapshot(path: str) -> BinaryIO:
    """Open the log file for a one-shot read.

    Raises:
        SourceUnavailable: the file cannot be opened
    """
    try:
        return open(path, "rb")
    except OSError as e:
        raise SourceUnavailable(f"file:{path}", e.strerror or str(e)) from e


def iter_file(fh: BinaryIO, chunk_size: int = LOG_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield the file in chunks, closing it when done or abandoned."""
    try:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        fh.close()


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/log")
async def get_log(context: AppContext = Depends(get_app_context)):
    """Stream the current content of the log file.

    Returns 404 with an empty body when the file cannot be opened.
    """
    path = context.settings.minecraft.log_path
    try:
        fh = await asyncio.to_thread(open_log_snapshot, path)
    except SourceUnavailable as e:
        context.logger.warning("log_snapshot_unavailable", path=path, error=e.reason)
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    return StreamingResponse(iter_file(fh), media_type=LOG_MEDIA_TYPE)


@router.post("/command")
async def post_command(request: Request, context: AppContext = Depends(get_app_context)):
    """Write the request body, newline-terminated, to the control input.

    200 means the bytes were written; 500 means the command did not
    take effect. A body that is not valid UTF-8 is rejected with 400 and
    nothing is written.
    """
    body = await request.body()
    try:
        command = body.decode("utf-8")
    except UnicodeDecodeError as e:
        context.logger.warning("command_rejected", error=str(e), size=len(body))
        return Response(status_code=status.HTTP_400_BAD_REQUEST)
    try:
        await context.command_bridge.deliver(command)
    except CommandDeliveryError:
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(status_code=status.HTTP_200_OK)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Relay live log lines to one client until it goes away."""
    context: AppContext = websocket.app.state.context
    _logger = context.logger.bind(
        component="websocket",
        client=f"{websocket.client.host}:{websocket.client.port}" if websocket.client else None,
    )

    # Subscribe before accepting so the client sees every line published
    # after the handshake completes
    subscription = context.bus.subscribe()
    try:
        await websocket.accept()
    except Exception:
        subscription.close()
        raise

    _logger.info(
        "websocket_connected",
        http_version=websocket.scope.get("http_version"),
        subscribers=context.bus.subscriber_count,
    )

    session = FanoutSession(
        websocket,
        subscription,
        probe_message=context.settings.webserver.websocket_probe_message,
        logger=_logger,
    )
    reason = await session.run()

    if reason is SessionEnd.BUS_CLOSED and websocket.client_state == WebSocketState.CONNECTED:
        try:
            await websocket.close(code=status.WS_1001_GOING_AWAY)
        except RuntimeError as e:
            _logger.debug("websocket_close_failed", error=str(e))

    _logger.info("websocket_disconnected", reason=reason.value)
