"""WebSocket Connection Manager - Pushes counter events to browsers.

Every message is a JSON object {"type": <EventType>, "data": {...}}.

Repository callbacks run on whichever thread mutated the collection, so
server-side events go through publish(), which hands the send over to the
server's event loop. Nothing is queued while no loop is registered.
"""

import asyncio
import json
import logging
from concurrent.futures import Future
from enum import Enum
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """WebSocket message types."""

    # Server -> Client
    COUNTERS_CHANGED = "counters_changed"
    COUNTERS_STATE = "counters_state"
    UNDO_AVAILABLE = "undo_available"
    THEME_CHANGE = "theme_change"

    # Client -> Server
    INCREMENT = "increment"
    DECREMENT = "decrement"


def encode_event(event_type: EventType, data: dict[str, Any]) -> str:
    """Serialize an event for the wire."""
    return json.dumps({"type": event_type.value, "data": data})


class ConnectionManager:
    """Connected browser clients.

    A client whose send fails is dropped; it reconnects and gets a fresh
    counters_state.
    """

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, websocket: WebSocket) -> bool:
        return websocket in self._clients

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a client and start sending it events."""
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        logger.info("WebSocket client connected. Total: %d", len(self._clients))

    async def disconnect(self, websocket: WebSocket) -> None:
        """Stop sending events to a client."""
        async with self._lock:
            self._clients.discard(websocket)
        logger.info("WebSocket client disconnected. Total: %d", len(self._clients))

    async def broadcast(self, message: str) -> None:
        """Send an encoded event to every client.

        Args:
            message: Output of encode_event().
        """
        async with self._lock:
            for client in list(self._clients):
                try:
                    await client.send_text(message)
                except Exception as e:
                    logger.warning("Dropping WebSocket client: %s", e)
                    self._clients.discard(client)


# Global connection manager instance
_manager: ConnectionManager | None = None
# Loop running the FastAPI app (None outside the server lifespan)
_server_loop: asyncio.AbstractEventLoop | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global connection manager.

    Returns:
        The ConnectionManager singleton.
    """
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


def set_server_loop(loop: asyncio.AbstractEventLoop | None) -> None:
    """Register the server's event loop (None on shutdown)."""
    global _server_loop
    _server_loop = loop
    logger.debug("WebSocket server loop %s", "registered" if loop else "cleared")


def publish(event_type: EventType, data: dict[str, Any]) -> None:
    """Broadcast an event from synchronous code on any thread.

    Args:
        event_type: Event type.
        data: Event payload.
    """
    loop = _server_loop
    if loop is None or not loop.is_running():
        logger.debug("WebSocket %s not sent: server loop not running", event_type.value)
        return

    message = encode_event(event_type, data)
    try:
        future = asyncio.run_coroutine_threadsafe(
            get_connection_manager().broadcast(message), loop
        )
    except RuntimeError as e:
        # Loop closed between the check and the call
        logger.warning("Failed to schedule WebSocket %s: %s", event_type.value, e)
        return
    future.add_done_callback(_log_publish_failure)


def _log_publish_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning("WebSocket broadcast failed: %s", exc)


def broadcast_counters_changed(kind: str, ids: list[str]) -> None:
    """Tell clients which counters changed.

    Args:
        kind: Change kind ("added", "updated", "deleted", ...).
        ids: Affected counter ids.
    """
    publish(EventType.COUNTERS_CHANGED, {"kind": kind, "ids": ids})


def broadcast_undo_available(counter_id: str, name: str, remaining_ms: int) -> None:
    """Tell clients a deleted counter can be restored (for the undo banner)."""
    publish(
        EventType.UNDO_AVAILABLE,
        {"id": counter_id, "name": name, "remaining_ms": remaining_ms},
    )


def broadcast_theme_change(theme: str) -> None:
    publish(EventType.THEME_CHANGE, {"theme": theme})


async def send_counters_state(websocket: WebSocket, counters: list[dict]) -> None:
    """Send the full counter list to a newly connected client.

    Args:
        websocket: Target client.
        counters: Serialized counters in display order.
    """
    await websocket.send_text(encode_event(EventType.COUNTERS_STATE, {"counters": counters}))
