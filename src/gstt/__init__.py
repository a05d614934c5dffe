"""Speech-to-text over Chromium's full-duplex speech endpoint."""

__version__ = "0.1.0"
