"""
lasexta.services.event_stream — Live Event Feed (Server-Sent Events)
=====================================================================

Fan-out registry for ``GET /api/events/stream``.

Each connected client owns a :class:`StreamChannel`, an entry in the hub's
registry keyed by a generated id, holding a bounded queue of pre-rendered
``data: <json>\\n\\n`` frames.  Admin mutations call :meth:`publish`, which
may run on any thread; frames are handed to each channel's event loop with
``call_soon_threadsafe``.

Channels are removed explicitly: when the client disconnects (the stream
generator's ``finally``), when its queue overflows, or when its loop is
gone.  A failing channel never affects delivery to the others.

Keep-alive: a single task pushes ``{"type": "ping", "at": <epoch ms>}``
every ``keepalive_seconds``.  It is started by the first channel and
cancelled as soon as the last channel closes, so it never runs with zero
listeners.

Message shapes::

    {"type": "snapshot", "events": [...]}
    {"type": "created" | "updated", "event": {...}}
    {"type": "deleted", "eventId": "<id>"}
    {"type": "ping", "at": 1730000000000}
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_KEEPALIVE_SECONDS = 25.0
DEFAULT_QUEUE_SIZE = 100

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_CLOSED = None  # queue sentinel: the hub dropped this channel


def format_frame(payload: dict[str, Any]) -> str:
    """Render one SSE frame."""
    return f"data: {json.dumps(payload, default=str)}\n\n"


def ping_payload() -> dict[str, Any]:
    return {"type": "ping", "at": int(time.time() * 1000)}


@dataclass
class StreamChannel:
    """One connected stream client."""

    id: str
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue


class EventStreamHub:
    """Registry of open stream channels plus the shared keep-alive task."""

    def __init__(
        self,
        keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.keepalive_seconds = keepalive_seconds
        self.queue_size = queue_size
        self._channels: dict[str, StreamChannel] = {}
        self._lock = threading.Lock()
        self._keepalive_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def channel_count(self) -> int:
        with self._lock:
            return len(self._channels)

    @property
    def keepalive_running(self) -> bool:
        task = self._keepalive_task
        return task is not None and not task.done()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def open_channel(self) -> StreamChannel:
        """Register a channel on the running loop; starts keep-alive if first."""
        loop = asyncio.get_running_loop()
        channel = StreamChannel(
            id=str(uuid.uuid4()),
            loop=loop,
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        with self._lock:
            self._channels[channel.id] = channel
            start_keepalive = self._keepalive_task is None
            if start_keepalive:
                self._keepalive_task = loop.create_task(self._keepalive())
            count = len(self._channels)

        logger.debug("Stream channel %s opened (%d open)", channel.id, count)
        return channel

    def close_channel(self, channel_id: str) -> bool:
        """Remove a channel; stops keep-alive when it was the last one.

        Returns ``False`` if the channel was already gone.
        """
        task = None
        with self._lock:
            channel = self._channels.pop(channel_id, None)
            if channel is None:
                return False
            if not self._channels:
                task, self._keepalive_task = self._keepalive_task, None
            count = len(self._channels)

        if task is not None:
            _cancel_task(task)
        logger.debug("Stream channel %s closed (%d open)", channel_id, count)
        return True

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------
    def publish(self, payload: dict[str, Any]) -> int:
        """Queue *payload* on every open channel; returns how many were reached."""
        frame = format_frame(payload)
        with self._lock:
            channels = list(self._channels.values())

        reached = 0
        for channel in channels:
            try:
                channel.loop.call_soon_threadsafe(self._deliver, channel, frame)
            except RuntimeError:
                # Event loop closed under us.
                logger.info("Pruning stream channel %s: loop closed", channel.id)
                self.close_channel(channel.id)
            else:
                reached += 1
        return reached

    def _deliver(self, channel: StreamChannel, frame: str) -> None:
        if channel.id not in self._channels:
            return
        try:
            channel.queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("Pruning stream channel %s: client is not reading", channel.id)
            self.close_channel(channel.id)
            _signal_closed(channel)

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self.keepalive_seconds)
            self.publish(ping_payload())

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    async def stream(self, channel: StreamChannel, first: dict[str, Any]) -> AsyncIterator[str]:
        """Yield *first* (the snapshot), then the channel's frames until closed."""
        try:
            yield format_frame(first)
            while True:
                frame = await channel.queue.get()
                if frame is _CLOSED:
                    break
                yield frame
        finally:
            self.close_channel(channel.id)

    def close_all(self) -> None:
        """Drop every channel (application shutdown)."""
        with self._lock:
            channels = list(self._channels.values())
        for channel in channels:
            self.close_channel(channel.id)
            try:
                channel.loop.call_soon_threadsafe(_signal_closed, channel)
            except RuntimeError:
                pass  # loop already closed; nothing is reading
        if channels:
            logger.info("Closed %d stream channel(s)", len(channels))


def _signal_closed(channel: StreamChannel) -> None:
    """Wake the channel's reader with the close sentinel, dropping backlog."""
    while True:
        try:
            channel.queue.get_nowait()
        except asyncio.QueueEmpty:
            break
    channel.queue.put_nowait(_CLOSED)


def _cancel_task(task: asyncio.Task) -> None:
    loop = task.get_loop()
    if loop.is_closed():
        return
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        task.cancel()
    else:
        loop.call_soon_threadsafe(task.cancel)
