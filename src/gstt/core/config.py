"""Configuration management using Pydantic Settings"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gstt.core.errors import ConfigError

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

OutputFormat = Literal["json", "pb"]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)
DEFAULT_SAMPLE_RATE = 16000
DEFAULT_LANGUAGE = "null"


class Settings(BaseSettings):
    """Process-level settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GSTT_",
        extra="ignore",
    )

    # Service
    key: str = ""
    language: str = DEFAULT_LANGUAGE
    user_agent: str = DEFAULT_USER_AGENT

    # Logging
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> LogLevel:
        """Validate log level, fallback to WARNING if invalid."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            return "WARNING"
        return upper_v  # type: ignore[return-value]


@lru_cache
def get_settings(env_file: str | None = ".env") -> Settings:
    """Get cached settings instance.

    Args:
        env_file: Path to a dotenv file, or None to read the environment only.
    """
    return Settings(_env_file=env_file)  # type: ignore[call-arg]


class SessionConfig(BaseModel):
    """Immutable options for one full-duplex session.

    The pair identifier is left unset by callers; the session coordinator
    assigns it with :meth:`with_pair` before either stream is dispatched.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    output: OutputFormat = "json"
    language: str = DEFAULT_LANGUAGE
    continuous: bool = False
    interim: bool = False
    max_alternatives: int = Field(default=1, ge=1)
    profanity_filter: int = Field(default=2, ge=0, le=2)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0)
    pair: str | None = None

    @classmethod
    def create(cls, **values: object) -> "SessionConfig":
        """Build a config, reporting invalid values as ConfigError.

        Raises:
            ConfigError: If any value is out of range or of the wrong type.
        """
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigError(f"invalid session config: {problems}") from e

    def with_pair(self, pair: str) -> "SessionConfig":
        """Return a copy of this config carrying the given pair identifier."""
        return self.model_copy(update={"pair": pair})
