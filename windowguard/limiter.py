"""Rate limiter orchestration.

The ``RateLimiter`` owns an immutable configuration, dispatches each check
to the configured algorithm and packages the result for HTTP layers: a
ready 429 response on denial and a header applier for every response.
"""

import inspect
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Union

from fastapi.responses import JSONResponse

from windowguard.algorithms import ALGORITHMS, FIXED_WINDOW
from windowguard.core.config import Settings, settings as default_settings
from windowguard.core.duration import parse_duration
from windowguard.core.headers import REMAINING_HEADER, apply_headers
from windowguard.core.ip import default_key_generator
from windowguard.core.logging import get_log_context, get_logger
from windowguard.exceptions import ConfigurationError
from windowguard.models import RateLimitDecision, RateLimitEvaluation
from windowguard.storage.base import StorageBackend
from windowguard.storage.memory import MemoryStorage
from windowguard.storage.redis import RedisStorage

logger = get_logger(__name__)

KeyGenerator = Callable[[Any], Union[str, Awaitable[str]]]
LimitHandler = Callable[[RateLimitDecision, Any], Union[Any, Awaitable[Any]]]


async def _resolve(value: Any) -> Any:
    """Await ``value`` if a callback returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(frozen=True)
class RateLimiterConfig:
    """Immutable limiter configuration.

    Attributes:
        limit: Maximum requests per window.
        window_ms: Window size in milliseconds.
        algorithm: "fixed-window" or "sliding-window".
        prefix: Prefix prepended to every storage key.
        key_generator: Derives the identifier from a request.
        on_limit_reached: Optional denial override. Returning None falls
            back to the default 429 response.
        skip_headers: Disable rate limit header emission.
    """
    limit: int = 10
    window_ms: int = 60_000
    algorithm: str = FIXED_WINDOW
    prefix: str = "rl"
    key_generator: KeyGenerator = default_key_generator
    on_limit_reached: Optional[LimitHandler] = None
    skip_headers: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise ConfigurationError(f"limit must be a positive integer, got {self.limit!r}", field="limit")
        if self.window_ms <= 0:
            raise ConfigurationError(f"window must be positive, got {self.window_ms}ms", field="window")
        if self.algorithm not in ALGORITHMS:
            raise ConfigurationError(
                f"Unknown algorithm: {self.algorithm}. Available: {', '.join(ALGORITHMS)}",
                field="algorithm",
            )
        if not self.prefix:
            raise ConfigurationError("prefix must not be empty", field="prefix")
        if not callable(self.key_generator):
            raise ConfigurationError("key_generator must be callable", field="key_generator")
        if self.on_limit_reached is not None and not callable(self.on_limit_reached):
            raise ConfigurationError("on_limit_reached must be callable", field="on_limit_reached")

    @classmethod
    def from_options(
        cls,
        limit: int = 10,
        window: Union[str, int, float, timedelta] = "1m",
        algorithm: str = FIXED_WINDOW,
        prefix: str = "rl",
        key_generator: Optional[KeyGenerator] = None,
        on_limit_reached: Optional[LimitHandler] = None,
        skip_headers: bool = False,
    ) -> "RateLimiterConfig":
        """Build a config from user-facing options, parsing the window once."""
        return cls(
            limit=limit,
            window_ms=parse_duration(window),
            algorithm=algorithm,
            prefix=prefix,
            key_generator=key_generator or default_key_generator,
            on_limit_reached=on_limit_reached,
            skip_headers=skip_headers,
        )


class RateLimiter:
    """Main rate limiter.

    Example:
        >>> limiter = RateLimiter(limit=100, window="15m", algorithm="sliding-window")
        >>> decision = await limiter.check("1.2.3.4")
        >>> evaluation = await limiter.evaluate(request)
        >>> if evaluation.denial_response is not None:
        ...     return evaluation.denial_response
    """

    def __init__(
        self,
        limit: int = 10,
        window: Union[str, int, float, timedelta] = "1m",
        algorithm: str = FIXED_WINDOW,
        storage: Optional[StorageBackend] = None,
        key_generator: Optional[KeyGenerator] = None,
        on_limit_reached: Optional[LimitHandler] = None,
        skip_headers: bool = False,
        prefix: str = "rl",
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the rate limiter.

        Args:
            limit: Maximum requests per window
            window: Duration string ("30s", "1m"...), milliseconds or timedelta
            algorithm: Rate limiting algorithm (fixed-window or sliding-window)
            storage: Counter store (defaults to a new MemoryStorage)
            key_generator: Derives the identifier from a request, sync or async
            on_limit_reached: Optional denial override, sync or async
            skip_headers: Make the header applier a no-op
            prefix: Prefix prepended to all storage keys
            clock: Time source returning UNIX time in seconds

        Raises:
            ConfigurationError: If any option is invalid.
        """
        self.config = RateLimiterConfig.from_options(
            limit=limit,
            window=window,
            algorithm=algorithm,
            prefix=prefix,
            key_generator=key_generator,
            on_limit_reached=on_limit_reached,
            skip_headers=skip_headers,
        )
        self._clock = clock
        self._algorithm = ALGORITHMS[self.config.algorithm]
        self._storage = storage if storage is not None else MemoryStorage(clock=clock)

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    def _make_key(self, identifier: str) -> str:
        return f"{self.config.prefix}:{identifier}"

    async def check(self, identifier: str) -> RateLimitDecision:
        """Consume one unit for ``identifier`` and return the decision.

        Storage failures propagate to the caller unchanged.
        """
        key = self._make_key(identifier)
        decision = await self._algorithm(
            key,
            self.config.limit,
            self.config.window_ms,
            self._storage,
            self._clock,
        )

        context = get_log_context(
            identifier=identifier,
            key=key,
            algorithm=self.config.algorithm,
            backend=getattr(self._storage, "name", type(self._storage).__name__),
            limit=decision.limit,
            remaining=decision.remaining,
            retry_after=decision.retry_after,
        )
        if decision.allowed:
            logger.debug("rate_limit.allowed", extra=context)
        else:
            logger.info("rate_limit.exceeded", extra=context)
        return decision

    async def resolve_key(self, request: Any) -> str:
        """Resolve the rate limit identifier for a request."""
        return str(await _resolve(self.config.key_generator(request)))

    async def evaluate(self, request: Any) -> RateLimitEvaluation:
        """Full request pipeline: resolve, check and build the denial.

        Returns:
            RateLimitEvaluation whose ``denial_response`` is None when the
            request is allowed.
        """
        identifier = await self.resolve_key(request)
        decision = await self.check(identifier)
        header_applier = self._header_applier(decision)

        if decision.allowed:
            return RateLimitEvaluation(decision=decision, apply_headers=header_applier)

        denial = await self._denial_response(decision, request)
        return RateLimitEvaluation(
            decision=decision,
            denial_response=denial,
            apply_headers=header_applier,
        )

    def _header_applier(self, decision: RateLimitDecision) -> Callable[[Any], Any]:
        skip = self.config.skip_headers

        def apply(response: Any) -> Any:
            if not skip:
                apply_headers(response.headers, decision.headers())
            return response

        return apply

    async def _denial_response(self, decision: RateLimitDecision, request: Any) -> Any:
        handler = self.config.on_limit_reached
        if handler is not None:
            try:
                custom = await _resolve(handler(decision, request))
            except Exception as e:
                logger.warning(
                    f"on_limit_reached handler failed: {e}. Using default denial response.",
                    exc_info=True,
                )
                custom = None
            if custom is not None:
                return custom
        return self.default_denial_response(decision)

    @staticmethod
    def default_denial_response(decision: RateLimitDecision) -> JSONResponse:
        """Build the default 429 response for a denied decision."""
        headers = decision.headers()
        headers[REMAINING_HEADER] = "0"
        return JSONResponse(
            status_code=429,
            content={"error": "Too Many Requests", "retryAfter": decision.retry_after},
            headers=headers,
        )

    async def close(self) -> None:
        """Close the storage backend (e.g. the Redis connection)."""
        await self._storage.close()

    async def __aenter__(self) -> "RateLimiter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def create_rate_limiter(settings: Optional[Settings] = None, **overrides: Any) -> RateLimiter:
    """Create a rate limiter from settings.

    Selects RedisStorage when ``redis_enabled`` is set, otherwise
    MemoryStorage. Keyword overrides take precedence over settings.

    Args:
        settings: Settings instance (defaults to the global settings)
        **overrides: Any RateLimiter keyword argument

    Returns:
        Configured RateLimiter.
    """
    cfg = settings or default_settings
    options: dict[str, Any] = {
        "limit": cfg.rate_limit_limit,
        "window": cfg.rate_limit_window,
        "algorithm": cfg.rate_limit_algorithm,
        "prefix": cfg.rate_limit_prefix,
        "skip_headers": cfg.rate_limit_skip_headers,
    }
    options.update(overrides)

    # Validate before any connection or sweep task is created
    RateLimiterConfig.from_options(
        **{k: v for k, v in options.items() if k not in ("storage", "clock")}
    )

    if options.get("storage") is None:
        clock = options.get("clock", time.time)
        if cfg.redis_enabled:
            options["storage"] = RedisStorage(redis_url=cfg.redis_url, clock=clock)
            logger.info("Using Redis rate limiter backend")
        else:
            options["storage"] = MemoryStorage(
                sweep_interval=cfg.memory_sweep_interval_seconds,
                clock=clock,
            )
            logger.debug("Using in-memory rate limiter backend")

    return RateLimiter(**options)
