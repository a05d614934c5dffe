"""FLAC file source."""

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import soundfile

from gstt.audio.base import DEFAULT_CHUNK_SIZE, AudioSource
from gstt.core.errors import ConfigError, SourceError
from gstt.core.logging import get_logger

logger = get_logger(__name__)


def read_sample_rate(path: Path) -> int:
    """Read the sample rate declared in a FLAC file's stream info.

    Args:
        path: Path of the audio file.

    Returns:
        The sample rate in Hz.

    Raises:
        ConfigError: If the file is missing, unreadable or not FLAC.
    """
    if not path.is_file():
        raise ConfigError(f"audio file not found: {path}")

    try:
        info = soundfile.info(str(path))
    except (RuntimeError, OSError) as e:
        raise ConfigError(f"cannot parse audio file {path}: {e}") from e

    if info.format != "FLAC":
        raise ConfigError(f"{path} is {info.format}, not FLAC")

    logger.info(
        "audio_file_parsed",
        path=str(path),
        sample_rate=info.samplerate,
        duration_sec=round(info.duration, 2),
    )
    return int(info.samplerate)


class FlacFileSource(AudioSource):
    """Stream a FLAC file from disk without loading it whole.

    The sample rate is taken from the file header when the source is
    created, so a bad file is reported before any network I/O.
    """

    def __init__(self, path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.path = path
        self.chunk_size = chunk_size
        self.sample_rate = read_sample_rate(path)

    async def chunks(self) -> AsyncIterator[bytes]:
        try:
            f = await asyncio.to_thread(self.path.open, "rb")
        except OSError as e:
            raise SourceError(f"cannot open {self.path}: {e}") from e

        try:
            while True:
                try:
                    data = await asyncio.to_thread(f.read, self.chunk_size)
                except OSError as e:
                    raise SourceError(f"cannot read {self.path}: {e}") from e
                if not data:
                    logger.debug("audio_file_done", path=str(self.path))
                    return
                yield data
        finally:
            f.close()
