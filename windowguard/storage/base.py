"""Storage backend abstraction for rate limit counters.

Algorithms never touch counter state directly; they only go through the
primitives defined here. Any store implementing them can be substituted.
"""

from abc import ABC, abstractmethod
import time
from typing import Callable

from windowguard.models import IncrementResult


class StorageBackend(ABC):
    """Abstract base class for counter stores.

    All storage implementations must inherit from this class and implement
    the abstract methods. ``increment`` must be atomic with respect to
    concurrent callers incrementing the same key.
    """

    name: str = "storage"

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialize the backend.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock

    def _now_ms(self) -> int:
        """Current time in epoch milliseconds."""
        return int(self._clock() * 1000)

    @abstractmethod
    async def increment(self, key: str, ttl_seconds: float) -> IncrementResult:
        """Atomically add one to the counter at ``key``.

        Args:
            key: Counter key.
            ttl_seconds: Lifetime of a newly created counter. Ignored when
                a live counter already exists: a window's expiry is fixed
                at creation.

        Returns:
            The post-increment count and the window's absolute expiry.
        """
        pass

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Return remaining lifetime in milliseconds, or -1 if absent/expired.

        Must not mutate state.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a counter immediately, regardless of expiry."""
        pass

    async def get_count(self, key: str) -> int:
        """Read a live counter without incrementing it.

        Optional capability. Backends that cannot read a counter without
        mutating it leave this unimplemented, and the sliding window falls
        back to a compensating increment.

        Returns:
            The counter value, or 0 if absent or expired.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support get_count")

    async def close(self) -> None:
        """Release held resources. Safe to call more than once."""
        pass

    async def __aenter__(self) -> "StorageBackend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
