"""Response body draining with bounded retention."""

from collections.abc import AsyncIterator

import httpx

from gstt.duplex.decoder import EXCERPT_BYTES, excerpt


async def drain(
    chunks: AsyncIterator[bytes] | httpx.Response, limit: int = EXCERPT_BYTES
) -> tuple[int, str]:
    """Read a body to the end, keeping only its first ``limit`` bytes.

    Args:
        chunks: A response, or a partly consumed iterator over its body.
        limit: Number of leading bytes kept for diagnostics.

    Returns:
        The number of bytes read and a text excerpt of the kept bytes.
    """
    if isinstance(chunks, httpx.Response):
        chunks = chunks.aiter_bytes()

    kept = bytearray()
    total = 0
    async for chunk in chunks:
        total += len(chunk)
        if len(kept) <= limit:
            kept.extend(chunk[: limit + 1 - len(kept)])
    return total, excerpt(kept, limit)
