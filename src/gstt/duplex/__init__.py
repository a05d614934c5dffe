"""Full-duplex streaming session with the speech endpoint."""

from gstt.duplex.decoder import FrameDecoder
from gstt.duplex.download import download
from gstt.duplex.models import Alternative, ResultGroup, TranscriptionFrame
from gstt.duplex.pair import PAIR_ALPHABET, PAIR_LENGTH, generate_pair
from gstt.duplex.session import Session, SessionState, start_session
from gstt.duplex.sink import FrameSink, SinkClosedError
from gstt.duplex.upload import upload, upload_headers
from gstt.duplex.urls import SERVICE_URL, build_url

__all__ = [
    "Alternative",
    "FrameDecoder",
    "FrameSink",
    "PAIR_ALPHABET",
    "PAIR_LENGTH",
    "ResultGroup",
    "SERVICE_URL",
    "Session",
    "SessionState",
    "SinkClosedError",
    "TranscriptionFrame",
    "build_url",
    "download",
    "generate_pair",
    "start_session",
    "upload",
    "upload_headers",
]
