"""Base class for audio sources feeding the upload stream."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from gstt.core.config import DEFAULT_SAMPLE_RATE

DEFAULT_CHUNK_SIZE = 4096


class AudioSource(ABC):
    """Abstract base class for FLAC byte sources.

    A source is consumed once, lazily, by iterating over it. End of
    iteration is end-of-input; read failures raise ``SourceError``.
    """

    sample_rate: int = DEFAULT_SAMPLE_RATE

    @abstractmethod
    def chunks(self) -> AsyncIterator[bytes]:
        """Yield the encoded audio in chunks.

        Yields:
            bytes: Non-empty chunks of the FLAC stream, in order.

        Raises:
            SourceError: If the underlying reader fails.
        """

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.chunks()


class BufferSource(AudioSource):
    """Audio already held in memory."""

    def __init__(
        self,
        data: bytes,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.data = data
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size

    async def chunks(self) -> AsyncIterator[bytes]:
        for offset in range(0, len(self.data), self.chunk_size):
            yield self.data[offset : offset + self.chunk_size]
