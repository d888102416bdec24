"""
ClientChannel - Per-Connection Outbound Queue
=============================================
Owns the outbound side of one WebSocket connection.

Pushes are fire-and-forget: `send()` enqueues and returns immediately, a
writer task drains the queue in order. One slow or broken client therefore
never stalls the event loop or another client's fan-out, while messages to a
given client keep the order in which they were sent.

The queue is unbounded. There is no backpressure: a consumer that stops
reading accumulates buffered output until its connection closes.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from starlette.websockets import WebSocketState


class ClientChannel:
    """
    Outbound handle for one connection.

    Lifecycle:
    1. start() → writer task running, channel open
    2. send() → message queued
    3. stop() (transport reported close) or close() (server initiated)
       → channel closed, writer task finished

    The channel never removes itself from the registry; that is the close
    handler's job.
    """

    def __init__(self, websocket: Any, channel_id: Optional[str] = None, logger=None):
        """
        Args:
            websocket: Accepted WebSocket (anything with async send_text/close)
            channel_id: Identifier for logs; random if omitted
            logger: Optional StructuredLogger
        """
        self.websocket = websocket
        self.channel_id = channel_id or uuid.uuid4().hex[:12]
        self.logger = logger
        self.connected_at = datetime.now()

        self._queue: asyncio.Queue = asyncio.Queue()
        self._writer_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._closed = False

        # Statistics
        self.messages_sent = 0
        self.messages_dropped = 0
        self.bytes_sent = 0

    def start(self) -> None:
        """Start the writer task. Must be called from a running event loop."""
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._drain_queue())

    @property
    def is_open(self) -> bool:
        """True while both the client and this server still consider the connection open."""
        if self._closed:
            return False
        client_state = getattr(self.websocket, "client_state", WebSocketState.CONNECTED)
        application_state = getattr(self.websocket, "application_state", WebSocketState.CONNECTED)
        return client_state == WebSocketState.CONNECTED and application_state == WebSocketState.CONNECTED

    @property
    def pending(self) -> int:
        """Messages queued but not yet written."""
        return self._queue.qsize()

    def send(self, message: str) -> bool:
        """
        Queue an already serialized message.

        Returns:
            False if the channel is not open (nothing queued), True otherwise
        """
        if not self.is_open:
            self.messages_dropped += 1
            return False
        self._queue.put_nowait(message)
        return True

    async def flush(self) -> None:
        """Wait until everything queued so far has been written (or dropped)."""
        await self._queue.join()

    async def _drain_queue(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                if self._closed:
                    self.messages_dropped += 1
                    continue
                await self.websocket.send_text(message)
                self.messages_sent += 1
                self.bytes_sent += len(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Transport failure: stop writing to this client only. Removal
                # from the registry happens when the read side sees the close.
                self._closed = True
                self.messages_dropped += 1
                if self.logger:
                    self.logger.warning("client_channel.send_failed", {
                        "channel_id": self.channel_id,
                        "error": str(e),
                        "error_type": type(e).__name__
                    })
            finally:
                self._queue.task_done()

    def request_close(self, code: int = 1000, reason: str = "") -> None:
        """Schedule close() without awaiting it (safe to call from sync handlers)."""
        if self._close_task is None:
            self._close_task = asyncio.create_task(self.close(code, reason))

    async def close(self, code: int = 1000, reason: str = "", drain_timeout: float = 1.0) -> None:
        """
        Server-initiated close: flush what is queued, then send a close frame.

        Args:
            code: WebSocket close code
            reason: Close reason sent to the client
            drain_timeout: Max seconds to wait for queued messages
        """
        if self.is_open and self._writer_task is not None:
            try:
                await asyncio.wait_for(self.flush(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                if self.logger:
                    self.logger.warning("client_channel.drain_timeout", {
                        "channel_id": self.channel_id,
                        "pending": self.pending
                    })

        was_connected = self.is_open
        await self.stop()

        if not was_connected:
            return

        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            # The peer may have gone away between the check and the close
            if self.logger:
                self.logger.debug("client_channel.close_failed", {
                    "channel_id": self.channel_id,
                    "error": str(e),
                    "error_type": type(e).__name__
                })

        if self.logger:
            self.logger.info("client_channel.closed", {
                "channel_id": self.channel_id,
                "code": code,
                "reason": reason
            })

    async def stop(self) -> None:
        """Mark closed and stop the writer task. Idempotent."""
        self._closed = True
        task, self._writer_task = self._writer_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        # Release flush() waiters for messages that will never be written
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            self.messages_dropped += 1

    def get_stats(self) -> Dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "is_open": self.is_open,
            "pending": self.pending,
            "messages_sent": self.messages_sent,
            "messages_dropped": self.messages_dropped,
            "bytes_sent": self.bytes_sent,
            "connected_at": self.connected_at.isoformat()
        }
