"""Download half of a full-duplex session: a streaming GET of JSON frames."""

import httpx

from gstt.core.config import SessionConfig
from gstt.core.errors import DecodeError, ServiceError, TransportError
from gstt.core.logging import get_logger
from gstt.duplex.body import drain
from gstt.duplex.decoder import FrameDecoder
from gstt.duplex.sink import FrameSink
from gstt.duplex.urls import build_url

logger = get_logger(__name__)

# Bytes of the undecodable remainder kept for the error log.
DRAIN_EXCERPT_BYTES = 4096


async def download(
    client: httpx.AsyncClient,
    config: SessionConfig,
    sink: FrameSink,
    url: str | None = None,
) -> int:
    """Receive transcription frames and publish them in arrival order.

    The sink is closed when this returns or raises, whatever the outcome.

    Args:
        client: Shared HTTP client.
        config: Session options; the pair must already be assigned.
        sink: Where decoded frames are published.
        url: Pre-built down URL, built from ``config`` when omitted.

    Returns:
        The number of frames published.

    Raises:
        TransportError: On connection failure or abrupt close.
        ServiceError: If the service answers with a non-2xx status.
        DecodeError: If the body is not a sequence of transcription frames.
    """
    published = 0
    try:
        url = url or build_url(config, "down")
        async with client.stream(
            "GET", url, headers={"user-agent": config.user_agent}
        ) as response:
            logger.info(
                "download_connected",
                pair=config.pair,
                status=response.status_code,
                http_version=response.http_version,
            )
            if not response.is_success:
                _, text = await drain(response)
                raise ServiceError("down", response.status_code, text)

            decoder = FrameDecoder()
            chunks = response.aiter_bytes()
            try:
                async for chunk in chunks:
                    for frame in decoder.feed(chunk):
                        logger.info(
                            "frame_received",
                            result_index=frame.result_index,
                            final=frame.is_final,
                            transcripts=[
                                alt.transcript
                                for group in frame.result
                                for alt in group.alternative
                            ],
                        )
                        await sink.publish(frame)
                        published += 1
                decoder.finish()
            except DecodeError as e:
                size, rest = await drain(chunks, DRAIN_EXCERPT_BYTES)
                e.fragment = e.fragment + rest if size else e.fragment
                raise
    except httpx.TransportError as e:
        raise TransportError(
            f"download failed after {published} frames: {e!r}"
        ) from e
    finally:
        sink.close()

    logger.info("download_completed", pair=config.pair, frames=published)
    return published
