"""Session coordinator running the upload and download halves concurrently."""

import asyncio
from collections.abc import AsyncIterable, AsyncIterator
from enum import Enum

import httpx

from gstt.core.config import SessionConfig
from gstt.core.errors import ConfigError, DecodeError, GsttError, ServiceError, TransportError
from gstt.core.logging import get_logger
from gstt.duplex.download import download
from gstt.duplex.models import TranscriptionFrame
from gstt.duplex.pair import generate_pair
from gstt.duplex.sink import FrameSink
from gstt.duplex.upload import upload
from gstt.duplex.urls import build_url

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle of a full-duplex session."""

    IDLE = "idle"
    RUNNING = "running"
    UPLOAD_DONE = "upload_done"
    TERMINATED = "terminated"


class Session:
    """A running full-duplex session.

    Created and started by :func:`start_session`. The caller reads frames
    from :attr:`sink` (or :meth:`frames`) until it closes, then calls
    :meth:`wait` to collect the errors that ended either half.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        source: AsyncIterable[bytes],
        config: SessionConfig,
        sink: FrameSink,
    ) -> None:
        if not config.pair:
            raise ConfigError("session config has no pair identifier")

        self.config = config
        self.sink = sink
        self.state = SessionState.IDLE
        self.errors: list[GsttError] = []
        self.up_url = build_url(config, "up")
        self.down_url = build_url(config, "down")

        self._client = client
        self._source = source
        self._upload_task: asyncio.Task[None] | None = None
        self._download_task: asyncio.Task[None] | None = None

    @property
    def pair(self) -> str:
        """The identifier correlating both halves."""
        return self.config.pair  # type: ignore[return-value]

    def start(self) -> None:
        """Launch upload and download as independent tasks and return."""
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"session {self.pair} already started")

        self.state = SessionState.RUNNING
        self._download_task = asyncio.create_task(
            self._run_download(), name=f"gstt-down-{self.pair}"
        )
        # A task cancelled before its first step never runs its finally
        # blocks, so the sink is also guarded on completion.
        self._download_task.add_done_callback(self._ensure_sink_closed)
        self._upload_task = asyncio.create_task(
            self._run_upload(), name=f"gstt-up-{self.pair}"
        )
        logger.info("session_started", pair=self.pair)

    def frames(self) -> AsyncIterator[TranscriptionFrame]:
        """Iterate over published frames until the sink closes."""
        return aiter(self.sink)

    async def wait(self) -> list[GsttError]:
        """Wait for the session to end.

        Once the download half has ended nothing can receive results, so
        an upload still in progress is cancelled.

        Returns:
            The errors that terminated either half, in the order they
            occurred. Empty on a clean session.
        """
        if self._download_task is None or self._upload_task is None:
            raise RuntimeError("session was never started")

        await self._download_task

        if not self._upload_task.done():
            logger.info("upload_cancelled", pair=self.pair)
            self._upload_task.cancel()
        await asyncio.wait([self._upload_task])
        if not self._upload_task.cancelled():
            exc = self._upload_task.exception()
            if exc is not None:
                raise exc

        return list(self.errors)

    def cancel(self) -> None:
        """Abort both halves; the sink still closes exactly once."""
        for task in (self._upload_task, self._download_task):
            if task is not None and not task.done():
                task.cancel()

    async def _run_upload(self) -> None:
        try:
            await upload(self._client, self._source, self.config, self.up_url)
        except GsttError as e:
            self._fail("upload", e)
        else:
            if self.state is SessionState.RUNNING:
                self.state = SessionState.UPLOAD_DONE

    async def _run_download(self) -> None:
        try:
            await download(self._client, self.config, self.sink, self.down_url)
        except GsttError as e:
            self._fail("download", e)
        finally:
            self.state = SessionState.TERMINATED
            logger.info("session_terminated", pair=self.pair, errors=len(self.errors))

    def _fail(self, direction: str, error: GsttError) -> None:
        self.errors.append(error)
        details: dict[str, object] = {}
        if isinstance(error, ServiceError):
            details = {"status": error.status_code, "body": error.body}
        elif isinstance(error, DecodeError):
            details = {"body": error.fragment}
        logger.error(
            f"{direction}_failed",
            pair=self.pair,
            error_type=type(error).__name__,
            error=str(error),
            **details,
        )
        if isinstance(error, TransportError):
            self.state = SessionState.TERMINATED

    def _ensure_sink_closed(self, task: asyncio.Task[None]) -> None:
        if not self.sink.closed:
            self.sink.close()


def start_session(
    client: httpx.AsyncClient,
    source: AsyncIterable[bytes],
    config: SessionConfig,
    sink: FrameSink | None = None,
) -> Session:
    """Start a full-duplex session without waiting for it.

    Must be called from a running event loop. A fresh pair identifier is
    assigned to a copy of ``config`` before either request is sent.

    Args:
        client: HTTP client shared by both halves.
        source: FLAC audio bytes to upload.
        config: Session options without a pair.
        sink: Frame sink to publish into; a new one is created if omitted.

    Returns:
        The started session.

    Raises:
        ConfigError: If the credential is missing or binary output is
            requested. Raised before any network I/O.
    """
    if not config.key:
        raise ConfigError("an API key is required")
    if config.output != "json":
        raise ConfigError(f"output format {config.output!r} cannot be decoded, use 'json'")

    session = Session(client, source, config.with_pair(generate_pair()), sink or FrameSink())
    session.start()
    return session
