"""Integration tests for the session coordinator."""

import asyncio
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fakes import FakeSpeechService, frame

from gstt.audio import BufferSource
from gstt.core.config import SessionConfig
from gstt.core.errors import ConfigError, DecodeError, ServiceError, TransportError
from gstt.duplex import FrameSink, SessionState, SinkClosedError, start_session


@pytest.fixture
def config() -> SessionConfig:
    """Session config without a pair, as callers build it."""
    return SessionConfig(key="test-key", interim=True, continuous=True)


class TestStartSession:
    """Tests for start_session."""

    @pytest.mark.asyncio
    async def test_returns_without_blocking(self, config: SessionConfig) -> None:
        """Test that the coordinator returns while both halves still run."""
        service = FakeSpeechService([frame("hi")])
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC" * 10), config)
            assert session.state is SessionState.RUNNING
            assert not session.sink.closed

            frames = [f async for f in session.frames()]
            errors = await session.wait()

        assert errors == []
        assert len(frames) == 1
        assert session.state is SessionState.TERMINATED

    @pytest.mark.asyncio
    async def test_both_halves_share_pair(self, config: SessionConfig) -> None:
        """Test that upload and download carry the same fresh pair."""
        service = FakeSpeechService()
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            [f async for f in session.frames()]
            await session.wait()

        up_pair = parse_qs(urlsplit(str(service.up_requests[0].url)).query)["pair"]
        down_pair = parse_qs(urlsplit(str(service.down_requests[0].url)).query)["pair"]
        assert up_pair == down_pair == [session.pair]
        assert len(session.pair) == 16
        assert config.pair is None

    @pytest.mark.asyncio
    async def test_up_query_carries_session_options(self, config: SessionConfig) -> None:
        """Test that session flags reach the up URL but not the down URL."""
        service = FakeSpeechService()
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            [f async for f in session.frames()]
            await session.wait()

        up_query = parse_qs(
            urlsplit(str(service.up_requests[0].url)).query, keep_blank_values=True
        )
        down_query = parse_qs(
            urlsplit(str(service.down_requests[0].url)).query, keep_blank_values=True
        )
        assert up_query["interim"] == [""]
        assert up_query["continuous"] == [""]
        assert up_query["app"] == ["chromium"]
        assert set(down_query) == {"key", "pair", "output"}

    @pytest.mark.asyncio
    async def test_every_request_carries_user_agent(self) -> None:
        """Test the user agent on both requests of a session."""
        config = SessionConfig(key="k", user_agent="agent/2.0", sample_rate=22050)
        service = FakeSpeechService()
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            [f async for f in session.frames()]
            await session.wait()

        assert len(service.requests) == 2
        assert all(r.headers["user-agent"] == "agent/2.0" for r in service.requests)
        assert service.up_requests[0].headers["content-type"] == "audio/x-flac; rate=22050"

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_io(self) -> None:
        """Test that an empty credential raises ConfigError without requests."""
        service = FakeSpeechService()
        async with httpx.AsyncClient(transport=service) as client:
            with pytest.raises(ConfigError):
                start_session(client, BufferSource(b"fLaC"), SessionConfig(key=""))

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_binary_output_rejected(self) -> None:
        """Test that output=pb is refused since frames could not be decoded."""
        service = FakeSpeechService()
        async with httpx.AsyncClient(transport=service) as client:
            with pytest.raises(ConfigError):
                start_session(
                    client, BufferSource(b"fLaC"), SessionConfig(key="k", output="pb")
                )

        assert service.requests == []

    @pytest.mark.asyncio
    async def test_uses_given_sink(self, config: SessionConfig) -> None:
        """Test that frames are published into a caller-supplied sink."""
        sink = FrameSink()
        service = FakeSpeechService([frame("one"), frame("two")])
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config, sink)
            frames = [f async for f in sink]
            await session.wait()

        assert session.sink is sink
        assert [f.final_transcripts() for f in frames] == [["one"], ["two"]]


class TestFrameOrdering:
    """Tests for frame ordering through a whole session."""

    @pytest.mark.asyncio
    async def test_consumer_sees_service_order(self, config: SessionConfig) -> None:
        """Test that the consumer observes exactly the emitted sequence."""
        indices = [0, 0, 1, 1, 2, 3, 3, 3]
        chunks = [
            frame(f"t{n}", final=(n % 2 == 1), index=i) for n, i in enumerate(indices)
        ]
        service = FakeSpeechService(chunks)
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            frames = [f async for f in session.frames()]
            await session.wait()

        assert [f.result_index for f in frames] == indices
        assert [f.result[0].alternative[0].transcript for f in frames] == [
            f"t{n}" for n in range(len(indices))
        ]


class TestSinkClosure:
    """Tests that the frame sink closes exactly once, after the download ends."""

    @pytest.mark.asyncio
    async def test_closed_once_after_normal_end(self, config: SessionConfig) -> None:
        """Test closure after a clean session."""
        service = FakeSpeechService([frame("a")])
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            await session.wait()

        assert session.sink.closed
        with pytest.raises(SinkClosedError):
            session.sink.close()

    @pytest.mark.asyncio
    async def test_closed_after_decode_error(self, config: SessionConfig) -> None:
        """Test closure when the download ends with a DecodeError."""
        service = FakeSpeechService([frame("a"), b"]"])
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            frames = [f async for f in session.frames()]
            errors = await session.wait()

        assert len(frames) == 1
        assert [type(e) for e in errors] == [DecodeError]
        assert session.sink.closed

    @pytest.mark.asyncio
    async def test_not_closed_by_upload_failure(self, config: SessionConfig) -> None:
        """Test that an upload failure leaves closing to the download side."""
        service = FakeSpeechService(
            [frame("never")], up_status=500, up_body=b"bad", hold_frames_until=10**9
        )
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            await service.upload_finished.wait()
            for _ in range(100):
                if session.errors:
                    break
                await asyncio.sleep(0.01)

            assert [type(e) for e in session.errors] == [ServiceError]
            assert not session.sink.closed

            session.cancel()
            frames = [f async for f in session.frames()]

        assert frames == []
        assert session.sink.closed

    @pytest.mark.asyncio
    async def test_closed_when_cancelled(self, config: SessionConfig) -> None:
        """Test that cancelling a session still closes the sink."""
        service = FakeSpeechService([frame("never")], hold_frames_until=10**9)
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(b"fLaC"), config)
            session.cancel()
            frames = [f async for f in session.frames()]

        assert frames == []
        assert session.sink.closed


class TestConcurrency:
    """Tests that upload and download are not serialised."""

    @pytest.mark.asyncio
    async def test_frames_withheld_until_upload_progresses(
        self, config: SessionConfig
    ) -> None:
        """Test completion when the first frame needs 1 KiB of uploaded audio."""
        service = FakeSpeechService(
            [frame("after one kibibyte")], hold_frames_until=1024
        )
        audio = bytes(4096)
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, BufferSource(audio, chunk_size=128), config)

            async def consume() -> list:
                return [f async for f in session.frames()]

            frames = await asyncio.wait_for(consume(), timeout=5)
            errors = await session.wait()

        assert errors == []
        assert len(service.uploaded) == len(audio)
        assert [f.final_transcripts() for f in frames] == [["after one kibibyte"]]

    @pytest.mark.asyncio
    async def test_upload_transport_failure_terminates(self, config: SessionConfig) -> None:
        """Test that a dropped upload ends the session with a TransportError."""
        service = FakeSpeechService([frame("partial")], fail_upload_after=100)
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(
                client, BufferSource(bytes(1000), chunk_size=20), config
            )
            frames = [f async for f in session.frames()]
            errors = await session.wait()

        assert [f.final_transcripts() for f in frames] == [["partial"]]
        assert [type(e) for e in errors] == [TransportError]
        assert session.state is SessionState.TERMINATED

    @pytest.mark.asyncio
    async def test_wait_cancels_upload_after_download_ends(
        self, config: SessionConfig
    ) -> None:
        """Test that an endless upload is cancelled once the download is over."""

        async def endless():
            while True:
                yield b"\x00" * 64
                await asyncio.sleep(0.001)

        service = FakeSpeechService([frame("done")], close_after_upload=False)
        async with httpx.AsyncClient(transport=service) as client:
            session = start_session(client, endless(), config)
            frames = [f async for f in session.frames()]
            errors = await asyncio.wait_for(session.wait(), timeout=5)

        assert len(frames) == 1
        assert errors == []
