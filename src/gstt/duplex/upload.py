"""Upload half of a full-duplex session: a streaming POST of FLAC audio."""

from collections.abc import AsyncIterable, AsyncIterator

import httpx

from gstt.core.config import SessionConfig
from gstt.core.errors import ServiceError, SourceError, TransportError
from gstt.core.logging import get_logger
from gstt.duplex.body import drain
from gstt.duplex.urls import build_url

logger = get_logger(__name__)


def upload_headers(config: SessionConfig) -> dict[str, str]:
    """Headers sent with every upload request."""
    return {
        "user-agent": config.user_agent,
        "content-type": f"audio/x-flac; rate={config.sample_rate}",
    }


class _BodyCounter:
    """Wrap an audio source, counting bytes as httpx pulls them."""

    def __init__(self, source: AsyncIterable[bytes]) -> None:
        self.source = source
        self.bytes_sent = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.source:
                self.bytes_sent += len(chunk)
                yield chunk
        except OSError as e:
            raise SourceError(f"audio source failed: {e}") from e


async def upload(
    client: httpx.AsyncClient,
    source: AsyncIterable[bytes],
    config: SessionConfig,
    url: str | None = None,
) -> int:
    """Stream audio to the up endpoint until the source is exhausted.

    The body is pulled lazily from ``source`` and sent without a
    Content-Length. The response body only carries diagnostics; it is
    drained so the stream is released, and logged at debug level.

    Args:
        client: Shared HTTP client.
        source: FLAC bytes, consumed once.
        config: Session options; the pair must already be assigned.
        url: Pre-built up URL, built from ``config`` when omitted.

    Returns:
        The number of audio bytes sent.

    Raises:
        TransportError: On connection failure or abrupt close.
        ServiceError: If the service answers with a non-2xx status.
        SourceError: If the audio source fails.
    """
    url = url or build_url(config, "up")
    body = _BodyCounter(source)

    logger.info("upload_started", pair=config.pair, sample_rate=config.sample_rate)

    try:
        async with client.stream(
            "POST", url, content=body, headers=upload_headers(config)
        ) as response:
            size, text = await drain(response)
    except httpx.TransportError as e:
        raise TransportError(
            f"upload failed after {body.bytes_sent} bytes: {e!r}"
        ) from e

    logger.debug(
        "upload_response",
        status=response.status_code,
        http_version=response.http_version,
        body_size=size,
        body=text,
    )
    if not response.is_success:
        raise ServiceError("up", response.status_code, text)

    logger.info("upload_completed", pair=config.pair, bytes_sent=body.bytes_sent)
    return body.bytes_sent
