"""Fixed window algorithm.

Divides time into equal-sized windows and counts requests in the current
one. Simple and cheap (one counter, one round trip), but a window boundary
resets capacity abruptly: up to ``2 * limit`` requests can pass across a
boundary (limit at the end of one window, limit again at the start of the
next).
"""

import math
import time
from typing import Callable

from windowguard.models import RateLimitDecision
from windowguard.storage.base import StorageBackend


async def fixed_window(
    key: str,
    limit: int,
    window_ms: int,
    storage: StorageBackend,
    clock: Callable[[], float] = time.time,
) -> RateLimitDecision:
    """Consume one unit for ``key`` and decide admission.

    Args:
        key: Fully prefixed storage key.
        limit: Maximum requests per window.
        window_ms: Window size in milliseconds.
        storage: Counter store.
        clock: Time source returning UNIX time in seconds.

    Returns:
        RateLimitDecision for this request.
    """
    ttl_seconds = math.ceil(window_ms / 1000)
    result = await storage.increment(key, ttl_seconds)
    now_ms = int(clock() * 1000)
    return RateLimitDecision.from_count(result.count, limit, result.window_expires, now_ms)
