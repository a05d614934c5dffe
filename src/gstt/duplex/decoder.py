"""Incremental decoder for the concatenated JSON frames of the download body."""

from collections.abc import Iterator

from pydantic import ValidationError

from gstt.core.errors import DecodeError
from gstt.duplex.models import TranscriptionFrame

# A single frame this large means the stream is not what we expect.
MAX_FRAME_BYTES = 1024 * 1024
EXCERPT_BYTES = 512

_WHITESPACE = b" \t\r\n"
_OPENERS = b"{["
_CLOSERS = b"}]"
_OPEN_OBJECT = ord("{")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")


def excerpt(data: bytes | bytearray, limit: int = EXCERPT_BYTES) -> str:
    """Decode at most ``limit`` bytes for logging."""
    text = bytes(data[:limit]).decode("utf-8", errors="replace")
    if len(data) > limit:
        text += "..."
    return text


class FrameDecoder:
    """Split a byte stream of back-to-back JSON objects into frames.

    The body is not wrapped in an array; objects follow each other with
    optional whitespace in between. Bytes are scanned once, tracking
    nesting depth and string state, so a frame is parsed as soon as its
    closing brace arrives, however the body is chunked.
    """

    def __init__(self, max_frame_bytes: int = MAX_FRAME_BYTES) -> None:
        self.max_frame_bytes = max_frame_bytes
        self._buffer = bytearray()
        self._pos = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet part of a complete frame."""
        return bytes(self._buffer)

    def feed(self, data: bytes) -> Iterator[TranscriptionFrame]:
        """Add a chunk and yield every frame it completes.

        The returned iterator must be exhausted before the next call.
        Frames completed before a malformed section are still yielded.

        Raises:
            DecodeError: On data outside an object, an invalid frame, or a
                frame larger than ``max_frame_bytes``.
        """
        buf = self._buffer
        buf.extend(data)
        start = 0
        pos = self._pos

        while pos < len(buf):
            byte = buf[pos]
            if self._depth == 0:
                if byte in _WHITESPACE:
                    start = pos + 1
                elif byte == _OPEN_OBJECT:
                    self._depth = 1
                else:
                    raise DecodeError(
                        "unexpected data between frames", fragment=excerpt(buf[pos:])
                    )
            elif self._in_string:
                if self._escaped:
                    self._escaped = False
                elif byte == _BACKSLASH:
                    self._escaped = True
                elif byte == _QUOTE:
                    self._in_string = False
            elif byte == _QUOTE:
                self._in_string = True
            elif byte in _OPENERS:
                self._depth += 1
            elif byte in _CLOSERS:
                self._depth -= 1
                if self._depth == 0:
                    frame = self._parse(bytes(buf[start : pos + 1]))
                    del buf[: pos + 1]
                    start = 0
                    pos = 0
                    yield frame
                    continue
            pos += 1

        del buf[:start]
        self._pos = pos - start

        if len(buf) > self.max_frame_bytes:
            raise DecodeError(
                f"frame exceeds {self.max_frame_bytes} bytes", fragment=excerpt(buf)
            )

    def finish(self) -> None:
        """Check that the stream did not end in the middle of a frame.

        Raises:
            DecodeError: If non-whitespace bytes are left over.
        """
        if self._buffer.strip(_WHITESPACE):
            raise DecodeError(
                "stream ended inside a frame", fragment=excerpt(self._buffer)
            )

    def _parse(self, raw: bytes) -> TranscriptionFrame:
        try:
            return TranscriptionFrame.model_validate_json(raw)
        except ValidationError as e:
            first = e.errors()[0]
            raise DecodeError(
                f"malformed transcription frame: {first['msg']}",
                fragment=excerpt(raw),
            ) from e
