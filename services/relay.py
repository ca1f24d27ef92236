"""Fan-out of text messages to every connected WebSocket listener."""

from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Any, Dict, Protocol

from starlette.websockets import WebSocketDisconnect, WebSocketState

logger = logging.getLogger(__name__)


class Listener(Protocol):
    client_state: WebSocketState
    application_state: WebSocketState

    async def send_text(self, data: str) -> None:
        ...


def is_ready(listener: Any) -> bool:
    return (
        listener.client_state == WebSocketState.CONNECTED
        and listener.application_state == WebSocketState.CONNECTED
    )


class BroadcastRelay:
    """Registry of listeners keyed by connection identity.

    The relay only holds references. It never closes a listener, never
    removes one on its own, and gives no delivery guarantee: listeners that
    are not open are skipped.
    """

    def __init__(self) -> None:
        self._clients: Dict[int, Listener] = {}
        self._lock = Lock()

    def add_client(self, listener: Listener) -> None:
        with self._lock:
            self._clients[id(listener)] = listener
            count = len(self._clients)
        logger.info("Client connected", extra={"client_count": count})

    def remove_client(self, listener: Listener) -> None:
        with self._lock:
            removed = self._clients.pop(id(listener), None)
            count = len(self._clients)
        if removed is not None:
            logger.info("Client disconnected", extra={"client_count": count})

    def get_client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    async def broadcast_message(self, message: str) -> int:
        """Send ``message`` verbatim to every ready listener, sender included.

        Returns the number of listeners the message was handed to.
        """
        with self._lock:
            listeners = list(self._clients.values())

        delivered = 0
        for listener in listeners:
            if not is_ready(listener):
                continue
            try:
                await listener.send_text(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.debug("Dropped message for closing client", extra={"error": exc})
                continue
            delivered += 1
        return delivered


@lru_cache
def build_default_relay() -> BroadcastRelay:
    return BroadcastRelay()
