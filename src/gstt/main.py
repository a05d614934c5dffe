"""Command-line entry point for gstt"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import BinaryIO, TextIO

import httpx

from gstt import __version__
from gstt.audio import AudioSource, FlacFileSource, StdinSource
from gstt.core.config import DEFAULT_SAMPLE_RATE, SessionConfig, Settings, get_settings
from gstt.core.errors import ConfigError, GsttError
from gstt.core.logging import configure_logging, get_logger
from gstt.duplex import start_session
from gstt.output import SubtitlePrinter, TranscriptPrinter
from gstt.transport import create_client

logger = get_logger(__name__)

EXIT_INTERRUPTED = 130

DESCRIPTION = """\
Transcribe FLAC audio with the full-duplex speech endpoint built into Chromium.

Audio is read from --file, or piped on standard input (recorded at
--sample-rate, 16000 Hz by default). Final transcripts are printed on
standard output, one per line.
"""

EPILOG = """\
examples:
  gstt --key $KEY --file speech.flac
  rec -q -t flac - rate 16000 | gstt --key $KEY --interim --continuous
"""


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gstt",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", help="log at debug level")
    parser.add_argument("--file", type=Path, default=None, help="path of a FLAC file to transcribe")
    parser.add_argument(
        "--key",
        default=None,
        help="API key built into Chromium (default: $GSTT_KEY)",
    )
    parser.add_argument(
        "--output",
        choices=["json", "pb"],
        default="json",
        help="frame format requested from the service (only json is decoded)",
    )
    parser.add_argument(
        "--language",
        default=None,
        help="IETF language tag of the recording, e.g. 'en-US' or 'ru'; 'null' lets the service detect it",
    )
    parser.add_argument(
        "--continuous",
        action="store_true",
        help="keep recognising across pauses instead of stopping at the first silence",
    )
    parser.add_argument(
        "--interim",
        action="store_true",
        help="ask for results before an utterance is finished",
    )
    parser.add_argument(
        "--max-alts",
        type=int,
        default=1,
        help="how many alternative transcriptions to request (default: 1)",
    )
    parser.add_argument(
        "--pfilter",
        type=int,
        choices=[0, 1, 2],
        default=2,
        help="profanity filter: 0=off, 1=medium, 2=strict (default: 2)",
    )
    parser.add_argument("--user-agent", default=None, help="user-agent header to send")
    parser.add_argument(
        "--sample-rate",
        type=int,
        default=DEFAULT_SAMPLE_RATE,
        help="sample rate of audio piped on stdin (default: 16000)",
    )
    parser.add_argument(
        "--subtitle-mode",
        action="store_true",
        help="clear the screen before each transcript and hold it for its reading time",
    )
    parser.add_argument(
        "--show-interim",
        action="store_true",
        help="also print interim transcripts on stderr",
    )
    parser.add_argument(
        "--http1",
        action="store_true",
        help="use HTTP/1.1 instead of HTTP/3",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to .env file (default: .env). Use empty to disable.",
    )
    return parser.parse_args(argv)


def open_source(args: argparse.Namespace, stdin: BinaryIO | None = None) -> AudioSource:
    """Pick the audio source named on the command line.

    Raises:
        ConfigError: If the file is missing or not a FLAC file.
    """
    if args.file is not None:
        return FlacFileSource(args.file)
    return StdinSource(stream=stdin, sample_rate=args.sample_rate)


def build_config(
    args: argparse.Namespace, settings: Settings, sample_rate: int
) -> SessionConfig:
    """Merge command-line flags over environment settings.

    Raises:
        ConfigError: If the key is empty or a value is out of range.
    """
    key = args.key if args.key is not None else settings.key
    if not key:
        raise ConfigError("'--key' is mandatory (or set GSTT_KEY)")

    return SessionConfig.create(
        key=key,
        output=args.output,
        language=args.language if args.language is not None else settings.language,
        continuous=args.continuous,
        interim=args.interim,
        max_alternatives=args.max_alts,
        profanity_filter=args.pfilter,
        user_agent=args.user_agent or settings.user_agent,
        sample_rate=sample_rate,
    )


async def run(
    args: argparse.Namespace,
    settings: Settings,
    *,
    client: httpx.AsyncClient | None = None,
    stdin: BinaryIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Run one transcription session and return the process exit code."""
    err = stderr or sys.stderr
    printer_cls = SubtitlePrinter if args.subtitle_mode else TranscriptPrinter
    printer = printer_cls(out=stdout, err=err, show_interim=args.show_interim)

    owns_client = client is None
    if client is None:
        client = create_client(http3=not args.http1)

    try:
        try:
            source = open_source(args, stdin)
            config = build_config(args, settings, source.sample_rate)
            session = start_session(client, source, config)
        except ConfigError as e:
            logger.error("config_error", error=str(e))
            print(f"Config error: {e}", file=err)
            return e.exit_code

        try:
            async for frame in session.frames():
                await printer.render(frame)
        except BaseException:
            session.cancel()
            raise
        errors = await session.wait()
    finally:
        if owns_client:
            await client.aclose()

    if errors:
        first: GsttError = errors[0]
        print(f"{type(first).__name__}: {first}", file=err)
        return first.exit_code
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = get_settings(args.env_file or None)
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.warning("interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
