"""HTTP transports for the full-duplex endpoint."""

from gstt.transport.client import create_client
from gstt.transport.http3 import HTTP3Transport

__all__ = ["HTTP3Transport", "create_client"]
