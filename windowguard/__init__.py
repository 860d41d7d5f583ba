"""windowguard - fixed and sliding window rate limiting.

Counters live in-process (MemoryStorage) or in Redis (RedisStorage).
"""

from windowguard.algorithms import FIXED_WINDOW, SLIDING_WINDOW, fixed_window, sliding_window
from windowguard.core.duration import parse_duration
from windowguard.core.headers import apply_headers, build_headers
from windowguard.core.ip import default_key_generator, extract_ip
from windowguard.exceptions import (
    ConfigurationError,
    DurationFormatError,
    RateLimiterException,
    StorageError,
)
from windowguard.limiter import RateLimiter, RateLimiterConfig, create_rate_limiter
from windowguard.middleware import RateLimitMiddleware
from windowguard.models import (
    CounterEntry,
    IncrementResult,
    RateLimitDecision,
    RateLimitEvaluation,
)
from windowguard.storage import MemoryStorage, RedisStorage, StorageBackend

__version__ = "0.1.0"

__all__ = [
    "FIXED_WINDOW",
    "SLIDING_WINDOW",
    "fixed_window",
    "sliding_window",
    "parse_duration",
    "apply_headers",
    "build_headers",
    "default_key_generator",
    "extract_ip",
    "ConfigurationError",
    "DurationFormatError",
    "RateLimiterException",
    "StorageError",
    "RateLimiter",
    "RateLimiterConfig",
    "create_rate_limiter",
    "RateLimitMiddleware",
    "CounterEntry",
    "IncrementResult",
    "RateLimitDecision",
    "RateLimitEvaluation",
    "MemoryStorage",
    "RedisStorage",
    "StorageBackend",
]
