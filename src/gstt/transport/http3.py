"""httpx transport speaking HTTP/3 over QUIC, built on aioquic."""

import asyncio
import ssl
from collections import deque
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack

import httpx
from aioquic.asyncio.client import connect
from aioquic.asyncio.protocol import QuicConnectionProtocol
from aioquic.h3.connection import H3_ALPN, ErrorCode, H3Connection
from aioquic.h3.events import DataReceived, H3Event, HeadersReceived
from aioquic.quic.configuration import QuicConfiguration
from aioquic.quic.events import ConnectionTerminated, QuicEvent, StreamReset

from gstt.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_IDLE_TIMEOUT = 60.0
# Unacknowledged request body bytes held per stream before the sender waits.
MAX_BUFFERED_BYTES = 256 * 1024

# Connection-specific headers are forbidden in HTTP/3 (RFC 9114, 4.2).
_CONNECTION_HEADERS = {
    b"connection",
    b"host",
    b"keep-alive",
    b"proxy-connection",
    b"transfer-encoding",
    b"upgrade",
}
_BODYLESS_METHODS = {b"GET", b"HEAD", b"OPTIONS", b"DELETE"}


class H3Protocol(QuicConnectionProtocol):
    """QUIC connection carrying concurrent HTTP/3 request streams.

    Events are queued per stream id so any number of requests can wait on
    their own stream while sharing the connection. Request bodies are
    throttled per stream: a sender waits in :meth:`wait_writable` until the
    peer has acknowledged enough of what was already queued.
    """

    def __init__(self, *args, max_buffered_bytes: int = MAX_BUFFERED_BYTES, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.max_buffered_bytes = max_buffered_bytes
        self._http = H3Connection(self._quic)
        self._events: dict[int, deque[H3Event | Exception]] = {}
        self._ready: dict[int, asyncio.Event] = {}
        self._writable: dict[int, asyncio.Event] = {}
        self._sending: set[int] = set()
        self.terminated: Exception | None = None

    def open_stream(self, headers: list[tuple[bytes, bytes]], end_stream: bool) -> int:
        """Start a request stream by sending its header block."""
        if self.terminated is not None:
            raise httpx.ConnectError(str(self.terminated))
        stream_id = self._quic.get_next_available_stream_id()
        self._events[stream_id] = deque()
        self._ready[stream_id] = asyncio.Event()
        if not end_stream:
            self._sending.add(stream_id)
            self._writable[stream_id] = asyncio.Event()
        self._http.send_headers(stream_id=stream_id, headers=headers, end_stream=end_stream)
        self.transmit()
        return stream_id

    def send_body(self, stream_id: int, data: bytes, end_stream: bool = False) -> None:
        """Queue request body data on a stream.

        Raises:
            httpx.RemoteProtocolError: If the peer reset the stream or closed
                the connection.
        """
        self._raise_for_stream(stream_id)
        self._http.send_data(stream_id=stream_id, data=data, end_stream=end_stream)
        if end_stream:
            self._sending.discard(stream_id)
        self.transmit()

    def buffered_bytes(self, stream_id: int) -> int:
        """Bytes queued on a stream that the peer has not acknowledged yet."""
        stream = self._quic._streams.get(stream_id)
        if stream is None:
            return 0
        return stream.sender._buffer_stop - stream.sender._buffer_start

    async def wait_writable(self, stream_id: int) -> None:
        """Wait until more request body can be queued on a stream.

        Returns early when the peer has already rejected the request, so
        the caller can stop instead of waiting for credit that may never
        come.

        Raises:
            httpx.RemoteProtocolError: If the peer reset the stream or closed
                the connection.
        """
        writable = self._writable.get(stream_id)
        while True:
            self._raise_for_stream(stream_id)
            status = self.early_status(stream_id)
            if (
                writable is None
                or (status is not None and status >= 300)
                or self.buffered_bytes(stream_id) <= self.max_buffered_bytes
            ):
                return
            writable.clear()
            await writable.wait()

    def early_status(self, stream_id: int) -> int | None:
        """Status of a response that arrived before the request body ended."""
        for item in self._events.get(stream_id, ()):
            if isinstance(item, HeadersReceived):
                for name, value in item.headers:
                    if name == b":status":
                        return int(value.decode())
        return None

    async def next_event(self, stream_id: int) -> H3Event:
        """Wait for the next header or data event on a stream."""
        events = self._events[stream_id]
        ready = self._ready[stream_id]
        while not events:
            ready.clear()
            await ready.wait()
        item = events.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def abort_body(self, stream_id: int) -> None:
        """Stop sending a request body, keeping the response side open."""
        if stream_id in self._sending and self.terminated is None:
            self._quic.reset_stream(stream_id, ErrorCode.H3_REQUEST_CANCELLED)
            self.transmit()
        self._sending.discard(stream_id)
        self._writable.pop(stream_id, None)

    def cancel_stream(self, stream_id: int) -> None:
        """Abandon a stream, resetting it if the request body is unfinished."""
        self.abort_body(stream_id)
        self.release_stream(stream_id)

    def release_stream(self, stream_id: int) -> None:
        """Forget a stream; later events for it are ignored."""
        self._sending.discard(stream_id)
        self._writable.pop(stream_id, None)
        self._events.pop(stream_id, None)
        self._ready.pop(stream_id, None)

    def transmit(self) -> None:
        super().transmit()
        # Acknowledgements are processed before every transmit.
        for stream_id, writable in self._writable.items():
            if self.buffered_bytes(stream_id) <= self.max_buffered_bytes:
                writable.set()

    def quic_event_received(self, event: QuicEvent) -> None:
        if isinstance(event, ConnectionTerminated):
            self.terminated = httpx.RemoteProtocolError(
                f"QUIC connection terminated: {event.reason_phrase or event.error_code}"
            )
            for stream_id in list(self._events):
                self._push(stream_id, self.terminated)
            return

        if isinstance(event, StreamReset):
            self._push(
                event.stream_id,
                httpx.RemoteProtocolError(
                    f"stream {event.stream_id} reset by peer (error {event.error_code})"
                ),
            )

        for http_event in self._http.handle_event(event):
            if isinstance(http_event, (HeadersReceived, DataReceived)):
                self._push(http_event.stream_id, http_event)

    def _push(self, stream_id: int, item: H3Event | Exception) -> None:
        if stream_id not in self._events:
            return
        self._events[stream_id].append(item)
        self._ready[stream_id].set()
        if stream_id in self._writable:
            self._writable[stream_id].set()

    def _raise_for_stream(self, stream_id: int) -> None:
        if self.terminated is not None:
            raise self.terminated
        for item in self._events.get(stream_id, ()):
            if isinstance(item, Exception):
                raise item


class H3ResponseStream(httpx.AsyncByteStream):
    """Response body read from the DATA frames of one stream."""

    def __init__(self, protocol: H3Protocol, stream_id: int, ended: bool) -> None:
        self._protocol = protocol
        self._stream_id = stream_id
        self._ended = ended

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while not self._ended:
            event = await self._protocol.next_event(self._stream_id)
            if isinstance(event, DataReceived):
                self._ended = event.stream_ended
                if event.data:
                    yield event.data
            elif isinstance(event, HeadersReceived):
                # Trailers.
                self._ended = event.stream_ended

    async def aclose(self) -> None:
        if self._ended:
            self._protocol.release_stream(self._stream_id)
        else:
            self._protocol.cancel_stream(self._stream_id)


class HTTP3Transport(httpx.AsyncBaseTransport):
    """Send httpx requests as HTTP/3 streams.

    One QUIC connection is opened per origin on first use and shared by
    every request to it, so concurrent requests are multiplexed as
    independent streams.
    """

    def __init__(
        self,
        *,
        verify: bool = True,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    ) -> None:
        self.verify = verify
        self.connect_timeout = connect_timeout
        self.idle_timeout = idle_timeout
        self._connections: dict[tuple[str, int], H3Protocol] = {}
        self._lock = asyncio.Lock()
        self._stack = AsyncExitStack()

    async def _get_connection(self, url: httpx.URL) -> H3Protocol:
        host = url.host
        port = url.port or 443

        async with self._lock:
            protocol = self._connections.get((host, port))
            if protocol is not None and protocol.terminated is None:
                return protocol

            configuration = QuicConfiguration(
                is_client=True,
                alpn_protocols=H3_ALPN,
                idle_timeout=self.idle_timeout,
            )
            if not self.verify:
                configuration.verify_mode = ssl.CERT_NONE

            logger.debug("quic_connecting", host=host, port=port)
            try:
                protocol = await asyncio.wait_for(
                    self._stack.enter_async_context(
                        connect(
                            host,
                            port,
                            configuration=configuration,
                            create_protocol=H3Protocol,
                        )
                    ),
                    timeout=self.connect_timeout,
                )
            except (OSError, ConnectionError, asyncio.TimeoutError) as e:
                raise httpx.ConnectError(
                    f"QUIC connection to {host}:{port} failed: {e!r}"
                ) from e

            logger.info("quic_connected", host=host, port=port)
            self._connections[(host, port)] = protocol
            return protocol

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if not isinstance(request.stream, httpx.AsyncByteStream):
            raise TypeError("HTTP3Transport requires an async request body")

        protocol = await self._get_connection(request.url)
        method = request.method.encode()
        has_body = (
            method not in _BODYLESS_METHODS
            or "content-length" in request.headers
            or "transfer-encoding" in request.headers
        )

        headers = [
            (b":method", method),
            (b":scheme", request.url.raw_scheme),
            (b":authority", request.url.netloc),
            (b":path", request.url.raw_path),
        ] + [
            (name.lower(), value)
            for name, value in request.headers.raw
            if name.lower() not in _CONNECTION_HEADERS
        ]

        stream_id = protocol.open_stream(headers, end_stream=not has_body)

        if has_body:
            try:
                await self._send_body(protocol, stream_id, request.stream)
            except BaseException:
                protocol.cancel_stream(stream_id)
                raise

        try:
            event = await protocol.next_event(stream_id)
            while not isinstance(event, HeadersReceived):
                event = await protocol.next_event(stream_id)
        except BaseException:
            protocol.cancel_stream(stream_id)
            raise

        status_code = 0
        response_headers = []
        for name, value in event.headers:
            if name == b":status":
                status_code = int(value.decode())
            elif not name.startswith(b":"):
                response_headers.append((name, value))

        return httpx.Response(
            status_code=status_code,
            headers=response_headers,
            stream=H3ResponseStream(protocol, stream_id, ended=event.stream_ended),
            extensions={"http_version": b"HTTP/3"},
        )

    async def _send_body(
        self, protocol: H3Protocol, stream_id: int, body: httpx.AsyncByteStream
    ) -> None:
        async for chunk in body:
            protocol.send_body(stream_id, chunk)
            await protocol.wait_writable(stream_id)
            status = protocol.early_status(stream_id)
            if status is not None and status >= 300:
                # The service rejected the request; the rest of the body is moot.
                logger.debug("request_rejected_early", stream_id=stream_id, status=status)
                protocol.abort_body(stream_id)
                return
        protocol.send_body(stream_id, b"", end_stream=True)

    async def aclose(self) -> None:
        self._connections.clear()
        await self._stack.aclose()
