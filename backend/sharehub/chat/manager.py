"""WebSocket connection manager: the transport behind the chat core.

This module owns the live WebSocket connections. It assigns each one a
unique connection id and implements the ``Transport`` delivery primitives
used by the registry, broadcaster and router.

Key features:
    - Backend-assigned connection ids (UUID4, never client-provided)
    - One bounded outbound queue per connection, drained by a writer task
    - Non-blocking, thread-safe send_to_one / send_to_all (enqueue only)
    - Dead connection cleanup when a send fails

Ordering:
    Each connection's queue is FIFO. Frames queued in a given order are
    written to that socket in the same order. Presence updates queued under
    the registry lock therefore arrive in commit order.

Performance Notes:
    - A full queue drops the frame for that connection only; a slow reader
      never blocks routing or other connections.
    - Uvicorn handles ping/pong at the protocol level (default 20s interval)
"""
import asyncio
import logging
import threading
import uuid
from typing import Any, Dict, List, Tuple

from fastapi import WebSocket

from .transport import Transport

logger = logging.getLogger(__name__)

# Default number of frames buffered per connection before dropping
DEFAULT_OUTBOX_SIZE = 256


class ConnectionManager(Transport):
    """Tracks accepted WebSockets and their outbound queues."""

    def __init__(self, outbox_size: int = DEFAULT_OUTBOX_SIZE) -> None:
        self.outbox_size = outbox_size
        # connection_id -> (owning event loop, queue of frames waiting to be written)
        self._outboxes: Dict[str, Tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = {}
        self._lock = threading.Lock()

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a WebSocket and assign it a connection id.

        Returns:
            The backend-generated connection id.
        """
        await websocket.accept()

        connection_id = str(uuid.uuid4())
        with self._lock:
            self._outboxes[connection_id] = (
                asyncio.get_running_loop(),
                asyncio.Queue(maxsize=self.outbox_size),
            )
        logger.info(f"[Manager] Accepted connection {connection_id}")
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """Forget a connection. Frames still queued for it are discarded."""
        with self._lock:
            entry = self._outboxes.pop(connection_id, None)
        if entry is not None:
            logger.info(
                f"[Manager] Dropped connection {connection_id} "
                f"({entry[1].qsize()} unsent frames)"
            )

    def is_connected(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._outboxes

    def get_connection_ids(self) -> List[str]:
        with self._lock:
            return list(self._outboxes)

    # =========================================================================
    # Transport primitives
    # =========================================================================

    def send_to_one(self, connection_id: str, event: str, payload: Any) -> bool:
        with self._lock:
            entry = self._outboxes.get(connection_id)
            if entry is None:
                logger.debug(f"[Manager] No connection {connection_id} for '{event}'")
                return False
            return self._enqueue(connection_id, entry, self._frame(event, payload))

    def send_to_all(self, event: str, payload: Any) -> int:
        frame = self._frame(event, payload)
        with self._lock:
            return sum(
                self._enqueue(connection_id, entry, frame)
                for connection_id, entry in self._outboxes.items()
            )

    # =========================================================================
    # Writer
    # =========================================================================

    async def pump(self, connection_id: str, websocket: WebSocket) -> None:
        """Write queued frames to the socket until it fails or is dropped.

        Run as one task per connection, alongside the receive loop.
        """
        with self._lock:
            entry = self._outboxes.get(connection_id)
        if entry is None:
            return
        outbox = entry[1]

        while True:
            frame = await outbox.get()
            if not await self._safe_send(websocket, frame):
                self.disconnect(connection_id)
                return

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        """Send a message to a WebSocket connection with error handling.

        Returns:
            True if successful, False if connection failed.
        """
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False

    @staticmethod
    def _frame(event: str, payload: Any) -> dict:
        return {"type": event, "data": payload}

    @staticmethod
    def _enqueue(
        connection_id: str,
        entry: Tuple[asyncio.AbstractEventLoop, asyncio.Queue],
        frame: dict,
    ) -> bool:
        # Callers may run on another thread or event loop.
        loop, outbox = entry
        try:
            loop.call_soon_threadsafe(_put_or_drop, connection_id, outbox, frame)
        except RuntimeError:
            logger.debug(f"[Manager] Event loop closed for {connection_id}")
            return False
        return True


def _put_or_drop(connection_id: str, outbox: asyncio.Queue, frame: dict) -> None:
    try:
        outbox.put_nowait(frame)
    except asyncio.QueueFull:
        logger.warning(
            f"[Manager] Outbox full for {connection_id}; dropped '{frame['type']}'"
        )
