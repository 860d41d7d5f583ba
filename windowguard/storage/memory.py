"""In-process counter storage.

Suitable for single-instance deployments only: every process keeps its own
counters, so running several workers multiplies the effective limit. Use
``RedisStorage`` for shared limits.
"""

import asyncio
import math
import time
from typing import Callable, Optional

from windowguard.core.config import settings
from windowguard.core.logging import get_logger
from windowguard.exceptions import ConfigurationError
from windowguard.models import CounterEntry, IncrementResult
from windowguard.storage.base import StorageBackend

logger = get_logger(__name__)


class MemoryStorage(StorageBackend):
    """Dictionary-backed counter store with a periodic expiry sweep.

    Concurrency relies on asyncio's cooperative scheduling: ``increment``
    never awaits between reading and writing an entry, so concurrent
    coroutines hitting the same key are strictly serialized without a lock.

    A background task purges expired entries every ``sweep_interval``
    seconds. It is started at construction when an event loop is running
    (otherwise on first use) and stopped exactly once by ``close()``.
    """

    name = "memory"

    def __init__(
        self,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            sweep_interval: Seconds between expiry sweeps. Defaults to
                settings.memory_sweep_interval_seconds.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ConfigurationError: If sweep_interval is not positive.
        """
        super().__init__(clock)
        if sweep_interval is None:
            sweep_interval = settings.memory_sweep_interval_seconds
        if sweep_interval <= 0:
            raise ConfigurationError("sweep_interval must be positive", field="sweep_interval")

        self._data: dict[str, CounterEntry] = {}
        self._sweep_interval = sweep_interval
        self._sweep_task: Optional[asyncio.Task] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._closed = False
        self._start_sweeper()

    @property
    def sweeper_running(self) -> bool:
        task = self._sweep_task
        return task is not None and not task.done() and not task.get_loop().is_closed()

    def _start_sweeper(self) -> None:
        """Start the sweep task unless one is already running on this loop.

        A task left behind by another (usually finished) event loop is
        discarded and replaced.
        """
        if self._closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the next storage call starts it
            return
        task = self._sweep_task
        if task is not None and not task.done():
            if task.get_loop() is loop:
                return
            self._abandon(task)
        self._shutdown_event = asyncio.Event()
        self._sweep_task = loop.create_task(self._sweep_loop(self._shutdown_event))
        logger.debug(f"Started memory storage sweep task (interval={self._sweep_interval}s)")

    @staticmethod
    def _abandon(task: asyncio.Task) -> None:
        """Cancel a sweep task owned by a loop other than the current one."""
        owner = task.get_loop()
        if task.done() or owner.is_closed():
            return
        owner.call_soon_threadsafe(task.cancel)

    async def _stop_sweeper(self) -> None:
        """Stop the sweep task."""
        task, self._sweep_task = self._sweep_task, None
        shutdown_event, self._shutdown_event = self._shutdown_event, None
        if task is None or task.done():
            return
        if task.get_loop() is not asyncio.get_running_loop():
            self._abandon(task)
            return
        shutdown_event.set()
        try:
            await asyncio.wait_for(task, timeout=5.0)
        except asyncio.TimeoutError:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug("Stopped memory storage sweep task")

    async def _sweep_loop(self, shutdown_event: asyncio.Event) -> None:
        """Background loop purging expired entries until ``shutdown_event`` is set."""
        while not shutdown_event.is_set():
            try:
                await asyncio.wait_for(
                    shutdown_event.wait(),
                    timeout=self._sweep_interval,
                )
            except asyncio.TimeoutError:
                pass
            if shutdown_event.is_set():
                break
            try:
                removed = await self.sweep()
            except Exception as e:
                logger.error(f"Error during memory storage sweep: {e}")
                continue
            if removed:
                logger.debug(f"Swept {removed} expired rate limit entries")

    async def sweep(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._now_ms()
        expired_keys = [
            key for key, entry in self._data.items() if entry.is_expired(now)
        ]
        for key in expired_keys:
            del self._data[key]
        return len(expired_keys)

    async def increment(self, key: str, ttl_seconds: float) -> IncrementResult:
        """Atomically increment the counter at ``key``.

        Args:
            key: Counter key.
            ttl_seconds: Lifetime of a new window in seconds.

        Returns:
            IncrementResult with the new count and the window expiry.
        """
        self._start_sweeper()
        now = self._now_ms()
        entry = self._data.get(key)

        # Read and write below must stay free of awaits.
        if entry is not None and not entry.is_expired(now):
            entry.count += 1
            return IncrementResult(count=entry.count, window_expires=entry.window_expires)

        window_expires = now + math.ceil(ttl_seconds * 1000)
        self._data[key] = CounterEntry(count=1, window_expires=window_expires)
        return IncrementResult(count=1, window_expires=window_expires)

    async def ttl(self, key: str) -> int:
        """Remaining lifetime of ``key`` in milliseconds, -1 if absent or expired."""
        self._start_sweeper()
        entry = self._data.get(key)
        if entry is None:
            return -1
        remaining = entry.window_expires - self._now_ms()
        return remaining if remaining > 0 else -1

    async def get_count(self, key: str) -> int:
        """Current count of a live counter, 0 if absent or expired."""
        self._start_sweeper()
        entry = self._data.get(key)
        if entry is None or entry.is_expired(self._now_ms()):
            return 0
        return entry.count

    async def delete(self, key: str) -> None:
        """Remove ``key`` immediately."""
        self._start_sweeper()
        self._data.pop(key, None)

    async def close(self) -> None:
        """Stop the sweep task and drop all counters."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._stop_sweeper()
        finally:
            self._data.clear()
