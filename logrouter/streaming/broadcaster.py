"""In-process live-stream fan-out.

Records are published on named streams.  Each viewer owns a bounded queue;
a slow viewer loses its oldest records instead of slowing producers down.
Late viewers get no replay.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

from logrouter.logging import get_logger

log = get_logger(__name__)

_CLOSED = object()


class StreamSubscriber:
    """One viewer attached to one stream.  Iterate to receive records."""

    def __init__(self, broadcaster: "StreamBroadcaster", stream: str, maxsize: int) -> None:
        self.stream = stream
        self.dropped = 0
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    def offer(self, record: dict[str, Any]) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(record)

    def end(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> dict[str, Any] | None:
        """Next record, or None once the stream has closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Stay closed for later calls.
            self._queue.put_nowait(_CLOSED)
            return None
        return item  # type: ignore[no-any-return]

    def close(self) -> None:
        """Detach from the stream."""
        self._broadcaster.unsubscribe(self)
        self.end()

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            record = await self.get()
            if record is None:
                return
            yield record


class StreamBroadcaster:
    """Named streams with any number of viewers each.

    Usage::

        broadcaster = StreamBroadcaster(queue_size=1000)
        viewer = broadcaster.subscribe("logs")
        broadcaster.publish("logs", {"subject": "a.b", "body": "..."})
        async for record in viewer:
            ...
    """

    def __init__(self, queue_size: int = 1000) -> None:
        self._queue_size = queue_size
        self._streams: dict[str, list[StreamSubscriber]] = {}

    def subscribe(self, stream: str) -> StreamSubscriber:
        subscriber = StreamSubscriber(self, stream, self._queue_size)
        self._streams.setdefault(stream, []).append(subscriber)
        log.debug("stream_viewer_attached", stream=stream)
        return subscriber

    def unsubscribe(self, subscriber: StreamSubscriber) -> None:
        viewers = self._streams.get(subscriber.stream, [])
        if subscriber in viewers:
            viewers.remove(subscriber)
            log.debug("stream_viewer_detached", stream=subscriber.stream, dropped=subscriber.dropped)
        if not viewers:
            self._streams.pop(subscriber.stream, None)

    def publish(self, stream: str, record: dict[str, Any]) -> int:
        """Offer *record* to every viewer of *stream*; returns how many got it."""
        viewers = self._streams.get(stream, [])
        for viewer in viewers:
            viewer.offer(record)
        return len(viewers)

    def close_stream(self, stream: str) -> None:
        """End iteration for every viewer of *stream*."""
        for viewer in self._streams.pop(stream, []):
            viewer.end()

    def close_all(self) -> None:
        for stream in list(self._streams):
            self.close_stream(stream)

    def viewer_count(self, stream: str) -> int:
        return len(self._streams.get(stream, []))
