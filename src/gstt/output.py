"""Rendering of transcription frames on the terminal."""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import TextIO

from gstt.duplex.models import TranscriptionFrame

# 238 words per minute.
SECONDS_PER_WORD = 0.26
CLEAR_SCREEN = "\033[H\033[2J"


class TranscriptPrinter:
    """Print one line per alternative of each final result."""

    def __init__(
        self,
        out: TextIO | None = None,
        err: TextIO | None = None,
        show_interim: bool = False,
    ) -> None:
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.show_interim = show_interim

    async def render(self, frame: TranscriptionFrame) -> None:
        """Write the frame's final transcripts, and interim ones if enabled."""
        if self.show_interim:
            for text in frame.interim_transcripts():
                print(f"... {text}", file=self.err, flush=True)

        for text in frame.final_transcripts():
            await self.write_line(text)

    async def write_line(self, text: str) -> None:
        print(text, file=self.out, flush=True)


class SubtitlePrinter(TranscriptPrinter):
    """Show each final transcript alone on a cleared screen.

    Each line stays up for a reading time proportional to its word count.
    """

    def __init__(
        self,
        out: TextIO | None = None,
        err: TextIO | None = None,
        show_interim: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(out, err, show_interim)
        self._sleep = sleep

    @staticmethod
    def dwell_seconds(text: str) -> float:
        """Reading time for a line at 238 words per minute."""
        return len(text.split()) * SECONDS_PER_WORD

    async def write_line(self, text: str) -> None:
        self.out.write(CLEAR_SCREEN)
        print(text, file=self.out, flush=True)
        await self._sleep(self.dwell_seconds(text))
