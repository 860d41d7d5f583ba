"""Redis-backed counter storage for multi-instance deployments.

All instances sharing a Redis database see the same counters. Increments
go through a single Lua script (see ``redis_lua``) so they stay atomic
across processes.
"""

import math
import time
from typing import Any, Callable, Optional

import redis
import redis.asyncio as aioredis

from windowguard.core.config import settings
from windowguard.core.logging import get_logger
from windowguard.exceptions import StorageError
from windowguard.models import IncrementResult
from windowguard.storage.base import StorageBackend
from windowguard.storage.redis_lua import INCREMENT_SCRIPT

logger = get_logger(__name__)


class RedisStorage(StorageBackend):
    """Redis-based counter store.

    Failures are wrapped in ``StorageError`` and propagated without retry;
    fail-open or fail-closed is the caller's decision.

    Example:
        >>> storage = RedisStorage(redis_url="redis://localhost:6379/0")
        >>> result = await storage.increment("rl:1.2.3.4", ttl_seconds=60)
    """

    name = "redis"

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_client: Optional ``redis.asyncio`` client. A client passed
                in is owned by the caller and is not closed by ``close()``.
            redis_url: Redis connection URL used when no client is given.
                Defaults to settings.redis_url.
            clock: Time source returning UNIX time in seconds.
        """
        super().__init__(clock)
        self._redis = redis_client
        self._owns_client = redis_client is None
        self._redis_url = redis_url or settings.redis_url

    def _get_redis(self) -> Any:
        """Get or create the Redis client."""
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    def _wrap(self, operation: str, error: Exception) -> StorageError:
        logger.error(
            f"Redis {operation} failed: {error}",
            extra={"backend": self.name},
        )
        return StorageError(self.name, operation, str(error))

    async def increment(self, key: str, ttl_seconds: float) -> IncrementResult:
        """Atomically increment ``key`` with a single EVAL round trip.

        Args:
            key: Counter key.
            ttl_seconds: Lifetime of a new window in seconds.

        Returns:
            IncrementResult with the new count and the window expiry.

        Raises:
            StorageError: If the script could not be executed.
        """
        ttl_ms = math.ceil(ttl_seconds * 1000)
        now = self._now_ms()
        client = self._get_redis()
        try:
            result = await client.eval(
                INCREMENT_SCRIPT,
                1,  # Number of keys
                key,  # KEYS[1]
                ttl_ms,  # ARGV[1]
                now,  # ARGV[2]
            )
        except redis.RedisError as e:
            raise self._wrap("increment", e) from e
        return IncrementResult(count=int(result[0]), window_expires=int(result[1]))

    async def ttl(self, key: str) -> int:
        """Remaining lifetime of ``key`` in milliseconds, -1 if absent or expired."""
        client = self._get_redis()
        try:
            pttl = await client.pttl(key)
        except redis.RedisError as e:
            raise self._wrap("ttl", e) from e
        pttl = int(pttl)
        return pttl if pttl > 0 else -1

    async def get_count(self, key: str) -> int:
        """Current count of ``key`` without incrementing it, 0 if absent."""
        client = self._get_redis()
        try:
            value = await client.get(key)
        except redis.RedisError as e:
            raise self._wrap("get_count", e) from e
        return int(value) if value is not None else 0

    async def delete(self, key: str) -> None:
        """Remove ``key`` immediately."""
        client = self._get_redis()
        try:
            await client.delete(key)
        except redis.RedisError as e:
            raise self._wrap("delete", e) from e

    async def close(self) -> None:
        """Close the Redis connection if this store created it."""
        if self._redis is None or not self._owns_client:
            return
        try:
            # Use aclose() for proper async cleanup in redis-py 5.0+
            await self._redis.aclose()
        except redis.RedisError as e:
            logger.warning(f"Error closing Redis connection: {e}")
        self._redis = None
