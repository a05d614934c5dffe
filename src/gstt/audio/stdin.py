"""Standard-input source for piped FLAC streams."""

import asyncio
import sys
import threading
from collections.abc import AsyncIterator
from contextlib import suppress
from typing import BinaryIO

from gstt.audio.base import AudioSource
from gstt.core.config import DEFAULT_SAMPLE_RATE
from gstt.core.errors import SourceError
from gstt.core.logging import get_logger

logger = get_logger(__name__)

STDIN_CHUNK_SIZE = 1024
MAX_PENDING_CHUNKS = 64


class StdinSource(AudioSource):
    """Read a FLAC stream arriving on a pipe.

    Reads happen on a daemon thread so a pipe that never reaches EOF does
    not hold up interpreter shutdown. At most ``max_pending`` chunks are
    buffered between the thread and the upload.
    """

    def __init__(
        self,
        stream: BinaryIO | None = None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        chunk_size: int = STDIN_CHUNK_SIZE,
        max_pending: int = MAX_PENDING_CHUNKS,
    ) -> None:
        self.stream = stream if stream is not None else sys.stdin.buffer
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.max_pending = max_pending

    async def chunks(self) -> AsyncIterator[bytes]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[bytes | OSError | None] = asyncio.Queue()
        slots = threading.Semaphore(self.max_pending)
        stop = threading.Event()

        reader = threading.Thread(
            target=self._read_loop,
            kwargs={"loop": loop, "queue": queue, "slots": slots, "stop": stop},
            name="gstt-stdin-reader",
            daemon=True,
        )
        reader.start()

        total = 0
        try:
            while True:
                item = await queue.get()
                slots.release()
                if item is None:
                    logger.info("stdin_done", bytes_read=total)
                    return
                if isinstance(item, OSError):
                    raise SourceError(f"could not read from stdin: {item}") from item
                total += len(item)
                logger.debug("stdin_read", size=len(item), total=total)
                yield item
        finally:
            stop.set()
            # Wake the reader if it is waiting for a free slot.
            slots.release()

    def _read_loop(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        queue: "asyncio.Queue[bytes | OSError | None]",
        slots: threading.Semaphore,
        stop: threading.Event,
    ) -> None:
        read = getattr(self.stream, "read1", self.stream.read)

        while True:
            slots.acquire()
            if stop.is_set():
                return

            item: bytes | OSError | None
            try:
                data = read(self.chunk_size)
                item = data if data else None
            except OSError as e:
                item = e

            if stop.is_set():
                return
            # The loop may already be closed if the session ended meanwhile.
            with suppress(RuntimeError):
                loop.call_soon_threadsafe(queue.put_nowait, item)
            if not isinstance(item, bytes):
                return
