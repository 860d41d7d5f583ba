"""Approximate sliding window algorithm.

Uses two adjacent fixed windows and weights the previous window's count by
how much of it still overlaps the sliding span ending now::

    effective = ceil(previous_count * overlap_ratio + current_count)
    overlap_ratio = 1 - elapsed / window_ms

``overlap_ratio`` descends linearly from 1 at the start of the current
window to 0 at its end. This smooths the boundary burst of the fixed
window while keeping only two counters per identifier instead of a log of
request timestamps.
"""

import math
import time
from typing import Callable

from windowguard.core.logging import get_logger
from windowguard.models import RateLimitDecision
from windowguard.storage.base import StorageBackend

logger = get_logger(__name__)


async def _previous_count(storage: StorageBackend, prev_key: str, ttl_seconds: int) -> int:
    """Read the previous window's count.

    Prefers the non-mutating ``get_count``. Stores without it get a
    compensating increment: the previous window is already closed, so the
    extra unit never affects an admission decision for that window.
    """
    try:
        return await storage.get_count(prev_key)
    except NotImplementedError:
        logger.debug(f"{type(storage).__name__} has no get_count; using compensating increment")
    result = await storage.increment(prev_key, ttl_seconds)
    return max(0, result.count - 1)


async def sliding_window(
    key: str,
    limit: int,
    window_ms: int,
    storage: StorageBackend,
    clock: Callable[[], float] = time.time,
) -> RateLimitDecision:
    """Consume one unit for ``key`` and decide admission.

    Args:
        key: Fully prefixed storage key; window indexes are appended to it.
        limit: Maximum requests per sliding window.
        window_ms: Window size in milliseconds.
        storage: Counter store.
        clock: Time source returning UNIX time in seconds.

    Returns:
        RateLimitDecision computed from the weighted count. ``reset_at`` is
        the current window counter's expiry.
    """
    now = int(clock() * 1000)
    # Counters live for two windows so the next window can still read them
    ttl_seconds = math.ceil(window_ms / 1000) * 2

    window_index = now // window_ms
    current_key = f"{key}:{window_index}"
    prev_key = f"{key}:{window_index - 1}"

    prev_ttl = await storage.ttl(prev_key)
    current = await storage.increment(current_key, ttl_seconds)

    elapsed = now - window_index * window_ms
    overlap_ratio = 1 - elapsed / window_ms

    previous_count = 0
    if prev_ttl > 0:
        previous_count = await _previous_count(storage, prev_key, ttl_seconds)

    effective = math.ceil(previous_count * overlap_ratio + current.count)
    return RateLimitDecision.from_count(effective, limit, current.window_expires, now)
