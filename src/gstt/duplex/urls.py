"""Endpoint URLs for the two directions of a full-duplex session."""

from typing import Literal
from urllib.parse import urlencode

from gstt.core.config import SessionConfig
from gstt.core.errors import ConfigError
from gstt.core.logging import get_logger

logger = get_logger(__name__)

SERVICE_URL = "https://www.google.com/speech-api/full-duplex/v1"

Direction = Literal["up", "down"]


def query_params(config: SessionConfig, direction: Direction) -> dict[str, str]:
    """Collect the query parameters for one direction.

    Raises:
        ConfigError: If the credential or the pair identifier is missing.
        ValueError: If direction is neither "up" nor "down".
    """
    if direction not in ("up", "down"):
        raise ValueError(f"unknown stream direction: {direction!r}")
    if not config.key:
        raise ConfigError("an API key is required")
    if not config.pair:
        raise ConfigError("session has no pair identifier")

    params = {
        "key": config.key,
        "pair": config.pair,
        "output": config.output,
    }

    if direction == "up":
        params["app"] = "chromium"
        if config.interim:
            params["interim"] = ""
        if config.continuous:
            params["continuous"] = ""
        params["maxAlternatives"] = str(config.max_alternatives)
        params["pFilter"] = str(config.profanity_filter)
        params["lang"] = config.language

    return params


def build_url(config: SessionConfig, direction: Direction) -> str:
    """Format the absolute URL for the up or down endpoint.

    Keys are encoded in sorted order, so a given config always produces
    the same URL.
    """
    params = query_params(config, direction)
    url = f"{SERVICE_URL}/{direction}?{urlencode(sorted(params.items()))}"
    logger.debug("url_built", direction=direction, url=url)
    return url
