"""Channel carrying transcription frames from the download task to the caller."""

import asyncio
from collections.abc import AsyncIterator

from gstt.duplex.models import TranscriptionFrame


class SinkClosedError(RuntimeError):
    """Raised when publishing to, or closing, a sink that is already closed."""


_CLOSED = object()


class FrameSink:
    """Single-producer, single-consumer queue of transcription frames.

    The producer (the download task) publishes frames in arrival order and
    closes the sink exactly once when the download stream terminates. The
    consumer iterates with ``async for`` until the sink is closed.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        """True once the producer has closed the sink."""
        return self._closed

    async def publish(self, frame: TranscriptionFrame) -> None:
        """Hand a frame to the consumer.

        Raises:
            SinkClosedError: If the sink has already been closed.
        """
        if self._closed:
            raise SinkClosedError("cannot publish to a closed frame sink")
        await self._queue.put(frame)

    def close(self) -> None:
        """Signal end-of-stream to the consumer.

        Raises:
            SinkClosedError: If the sink has already been closed.
        """
        if self._closed:
            raise SinkClosedError("frame sink already closed")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> TranscriptionFrame | None:
        """Wait for the next frame; None once the sink is closed and empty."""
        if self._drained:
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            self._drained = True
            return None
        return item  # type: ignore[return-value]

    async def __aiter__(self) -> AsyncIterator[TranscriptionFrame]:
        while (frame := await self.get()) is not None:
            yield frame
