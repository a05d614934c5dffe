"""Factory for the HTTP client shared by both halves of a session."""

import httpx

from gstt.transport.http3 import DEFAULT_CONNECT_TIMEOUT, HTTP3Transport


def create_client(
    *,
    http3: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the async HTTP client used for uploads and downloads.

    Streaming requests have no read, write or pool timeout: a session ends
    when the audio ends and the service closes the download, not on a timer.

    Args:
        http3: Use the HTTP/3 transport. When False, httpx's default
            HTTP/1.1 transport is used.
        transport: Explicit transport, overriding ``http3``.

    Returns:
        A client that is safe to share between concurrent requests.
    """
    if transport is None:
        transport = HTTP3Transport() if http3 else httpx.AsyncHTTPTransport()

    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(None, connect=DEFAULT_CONNECT_TIMEOUT),
        follow_redirects=False,
    )
