"""WebSocket endpoint that relays every inbound message to all peers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket

from services.relay import BroadcastRelay, build_default_relay

router = APIRouter()


def get_relay() -> BroadcastRelay:
    return build_default_relay()


def _frame_text(message: dict) -> str | None:
    text = message.get("text")
    if text is not None:
        return text
    data = message.get("bytes")
    if data is not None:
        return data.decode("utf-8", errors="replace")
    return None


@router.websocket("/ws")
async def relay_socket(
    websocket: WebSocket,
    relay: BroadcastRelay = Depends(get_relay),
) -> None:
    await websocket.accept()
    relay.add_client(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = _frame_text(message)
            if text is not None:
                await relay.broadcast_message(text)
    finally:
        relay.remove_client(websocket)
