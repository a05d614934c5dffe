"""Audio sources for the upload stream."""

from gstt.audio.base import AudioSource, BufferSource
from gstt.audio.flac import FlacFileSource, read_sample_rate
from gstt.audio.stdin import StdinSource

__all__ = [
    "AudioSource",
    "BufferSource",
    "FlacFileSource",
    "StdinSource",
    "read_sample_rate",
]
