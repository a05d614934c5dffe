"""Unit tests for transcript printers."""

import io

import pytest

from gstt.duplex.models import Alternative, ResultGroup, TranscriptionFrame
from gstt.output import CLEAR_SCREEN, SubtitlePrinter, TranscriptPrinter


def make_frame(text: str, final: bool = True) -> TranscriptionFrame:
    return TranscriptionFrame(
        result=[ResultGroup(alternative=[Alternative(transcript=text)], final=final)]
    )


class TestTranscriptPrinter:
    """Tests for TranscriptPrinter."""

    @pytest.mark.asyncio
    async def test_prints_final_only(self) -> None:
        """Test that interim frames are not printed on stdout."""
        out = io.StringIO()
        err = io.StringIO()
        printer = TranscriptPrinter(out=out, err=err)

        await printer.render(make_frame("he", final=False))
        await printer.render(make_frame(" hello \n"))

        assert out.getvalue() == "hello\n"
        assert err.getvalue() == ""

    @pytest.mark.asyncio
    async def test_show_interim(self) -> None:
        """Test that interim transcripts go to stderr when enabled."""
        out = io.StringIO()
        err = io.StringIO()
        printer = TranscriptPrinter(out=out, err=err, show_interim=True)

        await printer.render(make_frame("he", final=False))

        assert out.getvalue() == ""
        assert err.getvalue() == "... he\n"


class TestSubtitlePrinter:
    """Tests for SubtitlePrinter."""

    def test_dwell_is_quarter_second_per_word(self) -> None:
        """Test the reading time at 238 words per minute."""
        assert SubtitlePrinter.dwell_seconds("one") == pytest.approx(0.26)
        assert SubtitlePrinter.dwell_seconds("the quick brown fox") == pytest.approx(1.04)
        assert SubtitlePrinter.dwell_seconds("") == 0

    @pytest.mark.asyncio
    async def test_clears_screen_then_dwells(self) -> None:
        """Test the escape sequence and the sleep after each line."""
        out = io.StringIO()
        sleeps: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        printer = SubtitlePrinter(out=out, err=io.StringIO(), sleep=fake_sleep)
        await printer.render(make_frame("hello world"))
        await printer.render(make_frame("again"))

        assert out.getvalue() == f"{CLEAR_SCREEN}hello world\n{CLEAR_SCREEN}again\n"
        assert sleeps == [pytest.approx(0.52), pytest.approx(0.26)]
