"""Core utilities for gstt"""

from gstt.core.config import SessionConfig, Settings, get_settings
from gstt.core.errors import (
    ConfigError,
    DecodeError,
    GsttError,
    ServiceError,
    SourceError,
    TransportError,
)
from gstt.core.logging import configure_logging, get_logger

__all__ = [
    "SessionConfig",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "GsttError",
    "ConfigError",
    "DecodeError",
    "ServiceError",
    "SourceError",
    "TransportError",
]
