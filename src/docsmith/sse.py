"""Server-Sent Events framing for wire events.

The :class:`EventEmitter` drains a wire-event iterator into a
:class:`FrameSink`. Whatever happens upstream, the sink receives exactly
one ``finish`` frame followed by exactly one ``[DONE]`` frame, unless the
client went away first, and the sink is closed exactly once.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from typing import Any, Protocol

from docsmith.events import ErrorEvent, FinishEvent, WireEvent

logger = logging.getLogger(__name__)

DONE = "[DONE]"
DONE_FRAME = f"data: {DONE}\n\n"


def frame(event: WireEvent) -> str:
    return f"data: {json.dumps(event.payload())}\n\n"


class ClientDisconnected(Exception):
    """The consumer of a sink has gone away."""


class FrameSink(Protocol):
    @property
    def disconnected(self) -> bool: ...

    async def write(self, data: str) -> None: ...

    async def close(self) -> None: ...

    def disconnect(self) -> None: ...


class QueueSink:
    """Hands frames to an HTTP response body one at a time.

    The queue holds a single frame, so the emitter can never run more
    than one unacknowledged frame ahead of the response.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=1)
        self._disconnected = False
        self.producer: asyncio.Task | None = None

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    async def write(self, data: str) -> None:
        if self._disconnected:
            raise ClientDisconnected()
        await self._queue.put(data)

    async def close(self) -> None:
        if not self._disconnected:
            await self._queue.put(None)

    def disconnect(self) -> None:
        self._disconnected = True

    async def body(self, produce: Callable[[], Awaitable[None]]) -> AsyncIterator[str]:
        """Response body iterator.

        *produce* is started on the first iteration, so a body that is
        never iterated never leaves a producer behind. When the response
        stops early (client disconnect), the sink is marked disconnected
        and the producer is cancelled.
        """
        producer = self.producer = asyncio.ensure_future(produce())
        try:
            while True:
                data = await self._queue.get()
                if data is None:
                    return
                yield data
        finally:
            if not producer.done():
                self.disconnect()
                producer.cancel()


class EventEmitter:
    """Writes wire events to a sink as SSE frames.

    ``finish`` events coming from upstream are held back and written once,
    in the cleanup step, so the stream always ends with a single
    ``finish`` and a single terminal marker.
    """

    def __init__(self, sink: FrameSink) -> None:
        self.sink = sink
        self._closed = False
        self._sink_closed = False
        self._finish_reason = "stop"
        self.frames_written = 0

    @property
    def closed(self) -> bool:
        return self._closed or self.sink.disconnected

    async def _write(self, data: str) -> bool:
        if self.closed:
            return False
        try:
            await self.sink.write(data)
        except ClientDisconnected:
            logger.info("Client disconnected, dropping the rest of the stream")
            self._closed = True
            return False
        self.frames_written += 1
        return True

    async def emit(self, event: WireEvent) -> bool:
        """Write one event. Returns ``False`` once the stream is closed."""
        if isinstance(event, FinishEvent):
            self._finish_reason = event.finish_reason
            return not self.closed
        return await self._write(frame(event))

    async def run(self, events: AsyncIterator[WireEvent]) -> None:
        try:
            async for event in events:
                if not await self.emit(event):
                    break
        except asyncio.CancelledError:
            # Cleanup must not wait on a sink nobody reads.
            logger.info("Stream cancelled")
            self.sink.disconnect()
            raise
        except Exception as e:
            logger.exception(f"Stream failed: {e}")
            self._finish_reason = "error"
            await self._write(frame(ErrorEvent(error_text=str(e) or type(e).__name__)))
        finally:
            try:
                aclose = getattr(events, "aclose", None)
                if aclose is not None:
                    await aclose()
            finally:
                await self._write(frame(FinishEvent(finish_reason=self._finish_reason)))
                await self._write(DONE_FRAME)
                await self.aclose()

    async def aclose(self) -> None:
        self._closed = True
        if self._sink_closed:
            return
        self._sink_closed = True
        await self.sink.close()


def parse_frames(lines: Iterable[str]) -> list[dict[str, Any]]:
    """Decode SSE lines into payloads, stopping at the terminal marker.

    Lines that are not ``data:`` frames are ignored.
    """
    payloads = []
    for line in lines:
        line = line.strip()
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if data == DONE:
            break
        payloads.append(json.loads(data))
    return payloads
