from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from windowguard.core.duration import parse_duration
from windowguard.exceptions import DurationFormatError

ALGORITHMS = ("fixed-window", "sliding-window")


class Settings(BaseSettings):
    """Rate limiter settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    They only provide defaults for ``create_rate_limiter``; a constructed
    limiter never reads them again.
    """

    # Rate limiting defaults
    rate_limit_limit: int = 10
    rate_limit_window: str = "1m"  # duration string, e.g. "30s", "1m", "2h"
    rate_limit_algorithm: str = "fixed-window"  # fixed-window | sliding-window
    rate_limit_prefix: str = "rl"
    rate_limit_skip_headers: bool = False
    rate_limit_fail_closed: bool = (
        False  # If True, the middleware denies requests when storage is unavailable
    )

    # In-process storage
    memory_sweep_interval_seconds: float = 60.0

    # Redis settings (optional)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @property
    def rate_limit_window_ms(self) -> int:
        """Window size in milliseconds."""
        return parse_duration(self.rate_limit_window)

    @field_validator("rate_limit_limit")
    @classmethod
    def validate_limit_positive(cls, v: int) -> int:
        """Validate the limit is positive."""
        if v < 1:
            raise ValueError("rate_limit_limit must be at least 1")
        return v

    @field_validator("rate_limit_window")
    @classmethod
    def validate_window(cls, v: str) -> str:
        """Validate the window parses to a positive duration."""
        try:
            window_ms = parse_duration(v)
        except DurationFormatError as e:
            raise ValueError(e.message) from e
        if window_ms <= 0:
            raise ValueError("rate_limit_window must be positive")
        return v

    @field_validator("rate_limit_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Validate the algorithm name."""
        if v not in ALGORITHMS:
            raise ValueError(f"rate_limit_algorithm must be one of {', '.join(ALGORITHMS)}")
        return v

    @field_validator("rate_limit_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError("rate_limit_prefix must not be empty")
        return v

    @field_validator("memory_sweep_interval_seconds")
    @classmethod
    def validate_sweep_interval(cls, v: float) -> float:
        """Validate sweep interval is positive."""
        if v <= 0:
            raise ValueError("memory_sweep_interval_seconds must be positive")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of text, structured, json")
        return v.lower()

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
