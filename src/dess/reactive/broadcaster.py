"""Live reload channel: fans refresh messages out to connected browsers.

Each browser holds one SSE connection (see ``dess.app``).  The channel owns
the set of open connections; a connection removes itself from the channel
when it closes, so the set is mutated by subscribe, close and broadcast
independently.  ``broadcast`` iterates a snapshot, and sends to
connections that closed mid-broadcast are skipped.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import threading
import uuid
from collections.abc import AsyncIterator, Callable
from typing import Any

from dess._errors import SocketSendError

logger = logging.getLogger("dess.reload")

# Wire message sent after every successful rebuild.
REFRESH: dict[str, str] = {"type": "refresh"}

# Messages queued per connection before further sends are dropped.
DEFAULT_QUEUE_SIZE = 16


def encode_message(message: dict[str, Any]) -> str:
    """Serialize a channel message for the wire."""
    return json.dumps(message, separators=(",", ":"))


class ReloadConnection:
    """One live-reload subscriber.

    Messages are queued and drained by :meth:`messages`.  Once closed the
    connection rejects sends with :class:`SocketSendError` and runs its
    close callbacks exactly once.

    Args:
        client_id: Identifier used in log messages.  Generated when omitted.
        maxsize: Capacity of the outgoing queue.

    """

    __slots__ = ("_close_callbacks", "_closed", "_queue", "client_id")

    def __init__(self, client_id: str | None = None, *, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.client_id = client_id or uuid.uuid4().hex[:12]
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._close_callbacks: list[Callable[[ReloadConnection], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of queued, undelivered messages."""
        return self._queue.qsize()

    def on_close(self, callback: Callable[[ReloadConnection], None]) -> None:
        """Run *callback* when the connection closes."""
        if self._closed:
            callback(self)
            return
        self._close_callbacks.append(callback)

    def send(self, payload: str) -> None:
        """Queue *payload* for delivery.

        Raises:
            SocketSendError: If the connection is closed or its queue is full.

        """
        if self._closed:
            msg = f"connection {self.client_id} is closed"
            raise SocketSendError(msg)
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            msg = f"connection {self.client_id} is not draining its queue"
            raise SocketSendError(msg) from None

    def close(self) -> None:
        """Close the connection and notify its close callbacks."""
        if self._closed:
            return
        self._closed = True
        # Wake a consumer blocked on an empty queue.
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait(None)
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            callback(self)

    async def messages(self) -> AsyncIterator[str]:
        """Yield queued payloads until the connection closes.

        Closes the connection when the consumer goes away (client
        disconnect or task cancellation).
        """
        try:
            while not self._closed:
                payload = await self._queue.get()
                if payload is None:
                    break
                yield payload
        except (asyncio.CancelledError, GeneratorExit):
            return
        finally:
            self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ReloadConnection({self.client_id!r}, {state})"


class LiveReloadChannel:
    """The set of open live-reload connections.

    The channel only holds membership: connections are owned by their SSE
    handlers and leave the channel by closing.

    Thread-safe: the member set is protected by a lock.

    """

    def __init__(self) -> None:
        self._members: set[ReloadConnection] = set()
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        """Number of open connections."""
        with self._lock:
            return len(self._members)

    def subscribe(self, conn: ReloadConnection) -> None:
        """Add *conn*; it is removed automatically when it closes."""
        if conn.closed:
            return
        with self._lock:
            self._members.add(conn)
        conn.on_close(self._discard)
        logger.debug("Live reload client %s connected (%d open)", conn.client_id, self.subscriber_count)

    def _discard(self, conn: ReloadConnection) -> None:
        with self._lock:
            self._members.discard(conn)
        logger.debug("Live reload client %s disconnected", conn.client_id)

    def snapshot(self) -> frozenset[ReloadConnection]:
        """Current members (no lock held on return)."""
        with self._lock:
            return frozenset(self._members)

    async def broadcast(self, message: dict[str, Any] = REFRESH) -> int:
        """Send *message* to every open connection.

        Connections that closed or stalled are dropped from the channel and
        skipped; a send failure never propagates.

        Returns:
            Number of connections the message was queued on.

        """
        payload = encode_message(message)
        delivered = 0
        for conn in self.snapshot():
            try:
                conn.send(payload)
            except SocketSendError as exc:
                logger.debug("Skipping live reload client: %s", exc)
                conn.close()
                continue
            delivered += 1
        return delivered

    def close_all(self) -> None:
        """Close every open connection (server shutdown)."""
        for conn in self.snapshot():
            conn.close()
