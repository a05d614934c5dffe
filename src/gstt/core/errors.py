"""Error kinds raised by the full-duplex client."""


class GsttError(RuntimeError):
    """Base class for every failure surfaced by gstt."""

    exit_code = 1


class ConfigError(GsttError):
    """Raised for missing credentials, unreadable audio files or bad option values.

    Always raised before any network I/O takes place.
    """

    exit_code = 2


class ServiceError(GsttError):
    """Raised when the service answers with a non-2xx status."""

    exit_code = 3

    def __init__(self, direction: str, status_code: int, body: str) -> None:
        super().__init__(f"{direction} stream got HTTP {status_code}")
        self.direction = direction
        self.status_code = status_code
        self.body = body


class TransportError(GsttError):
    """Raised on connection, TLS or QUIC failures and abrupt closes."""

    exit_code = 4


class DecodeError(GsttError):
    """Raised when the download body is not a sequence of transcription frames."""

    exit_code = 5

    def __init__(self, message: str, fragment: str = "") -> None:
        super().__init__(message)
        self.fragment = fragment


class SourceError(GsttError):
    """Raised when the audio source fails for a reason other than end-of-input."""

    exit_code = 6
