"""Server-Sent-Events adapter for one notification subscription.

One ``NotificationStream`` backs one open ``GET /api/realtime/notifications``
response. It writes a local ``connected`` handshake first, registers
``push`` with the registry, feeds a bounded queue and interleaves heartbeat
comments. ``close`` is the single cleanup path for client disconnect,
cancellation, write failure and queue overflow; it runs at most once.
"""
from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator, Optional

from application.ports.realtime import ConnectedEvent, RealtimeNotification, serialize_notification
from core.logging_config import get_logger
from infrastructure.realtime.notification_registry import NotificationRegistry


logger = get_logger(__name__)


def format_data_frame(event: RealtimeNotification) -> str:
    return f"data: {serialize_notification(event)}\n\n"


def format_heartbeat_frame(now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f": heartbeat {now_ms}\n\n"


class NotificationStream:
    def __init__(
        self,
        registry: NotificationRegistry,
        user_id: str,
        *,
        heartbeat_interval: float = 30.0,
        queue_max: int = 100,
        overflow_policy: str = "drop_oldest",
    ) -> None:
        self._registry = registry
        self._user_id = user_id
        self._heartbeat_interval = heartbeat_interval
        self._overflow_policy = overflow_policy
        # None is the end-of-stream sentinel
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=max(1, int(queue_max)))
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._opened = False
        self._closed = False

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> str:
        """Subscribe and return the handshake frame; must run inside the event loop."""
        if self._opened:
            raise RuntimeError("notification stream already opened")
        self._opened = True
        self._loop = asyncio.get_running_loop()
        handshake = format_data_frame(ConnectedEvent())
        self._registry.register(self._user_id, self.push)
        if self._heartbeat_interval and self._heartbeat_interval > 0:
            self._heartbeat_task = asyncio.create_task(
                self._heartbeat_loop(), name=f"sse-heartbeat-{self._user_id}"
            )
        logger.info("notification_stream_opened", user_id=self._user_id)
        return handshake

    def push(self, event: RealtimeNotification) -> None:
        """Registry callback. Safe to call from any thread."""
        if self._closed:
            return
        if isinstance(event, ConnectedEvent):
            # the handshake belongs to the stream, never to producers
            logger.debug("notification_stream_connected_event_dropped", user_id=self._user_id)
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            raise RuntimeError("notification stream is not open")
        frame = format_data_frame(event)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._offer(frame)
        else:
            loop.call_soon_threadsafe(self._offer, frame)

    async def frames(self) -> AsyncIterator[str]:
        """Yield wire frames until the stream is closed.

        The ``finally`` covers client disconnect (generator closed or
        cancelled by the server) and failed writes, including heartbeats.
        """
        try:
            yield self.open()
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            self.close()

    def close(self) -> bool:
        """Unregister and stop the heartbeat. Returns False if already closed."""
        if self._closed:
            return False
        self._closed = True
        self._registry.unregister(self._user_id, self.push)
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is not None and not task.done():
            task.cancel()
        self._wake_consumer()
        logger.info("notification_stream_closed", user_id=self._user_id)
        return True

    # -------------------- Internals --------------------
    def _offer(self, frame: str) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(frame)
            return
        except asyncio.QueueFull:
            pass
        policy = self._overflow_policy
        if policy == "drop_new":
            logger.warning("notification_stream_drop_new", user_id=self._user_id)
            return
        if policy == "disconnect":
            logger.warning("notification_stream_overflow_disconnect", user_id=self._user_id)
            self.close()
            return
        # default: drop_oldest
        try:
            self._queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("notification_stream_drop_after_trim", user_id=self._user_id)

    def _wake_consumer(self) -> None:
        # make room for the sentinel; pending frames are moot once closed
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                try:
                    self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass

    async def _heartbeat_loop(self) -> None:
        try:
            while not self._closed:
                await asyncio.sleep(self._heartbeat_interval)
                if self._closed:
                    return
                if self._queue.full():
                    # pending data already keeps the connection busy
                    continue
                self._queue.put_nowait(format_heartbeat_frame())
        except asyncio.CancelledError:  # graceful exit
            return
