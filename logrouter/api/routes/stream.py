"""WS /logs: live stream of redacted bus traffic.

Protocol::

    client → {"token": "<jwt>", "stream": "logs"}      first frame
    server → {"status": "ok"}                          or {"status": "unauthorized"} + close 1008
    server → {"subject": ..., "body": ..., ...}        one text frame per record
    client → "ping"                                    server → "pong" (keep-alive)

An unparseable first frame closes the socket with 1003.  The server closes
normally when the stream itself is closed (stream adapter stopped, service
shutdown).
"""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.websockets import WebSocketState
from pydantic import ValidationError

from logrouter.api.auth import verify_token
from logrouter.api.schemas import StreamHandshake
from logrouter.exceptions import StreamAuthError
from logrouter.logging import get_logger
from logrouter.streaming.broadcaster import StreamSubscriber

log = get_logger(__name__)
router = APIRouter(tags=["stream"])


async def _push(websocket: WebSocket, subscriber: StreamSubscriber) -> None:
    async for record in subscriber:
        await websocket.send_text(json.dumps(record))


async def _listen(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        if message.get("text") == "ping":
            await websocket.send_text("pong")


@router.websocket("/logs")
async def stream_logs(websocket: WebSocket) -> None:
    settings = websocket.app.state.settings
    broadcaster = websocket.app.state.service.broadcaster

    await websocket.accept()
    try:
        first = await websocket.receive_text()
    except WebSocketDisconnect:
        return

    try:
        handshake = StreamHandshake.model_validate_json(first)
    except ValidationError:
        log.warning("stream_bad_handshake")
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
        return

    try:
        viewer = verify_token(handshake.token, settings.auth)
    except StreamAuthError as exc:
        log.warning("stream_unauthorized", error=exc.message)
        await websocket.send_text(json.dumps({"status": "unauthorized"}))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    stream = handshake.stream or settings.stream.default_stream
    # Attach before acknowledging so nothing published after "ok" is missed.
    subscriber = broadcaster.subscribe(stream)
    await websocket.send_text(json.dumps({"status": "ok"}))
    log.info("stream_viewer_connected", stream=stream, username=viewer.username)

    pusher = asyncio.create_task(_push(websocket, subscriber))
    listener = asyncio.create_task(_listen(websocket))
    try:
        await asyncio.wait({pusher, listener}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        subscriber.close()
        for task in (pusher, listener):
            task.cancel()
        await asyncio.gather(pusher, listener, return_exceptions=True)

    log.info("stream_viewer_disconnected", stream=stream, username=viewer.username)
    if websocket.client_state == WebSocketState.CONNECTED:
        await websocket.close()
