"""Rate limiting data models.

This module contains dataclasses for counter state, storage results and
admission decisions. All timestamps are UNIX epoch milliseconds.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from windowguard.core.headers import build_headers


@dataclass
class CounterEntry:
    """Counter state for one storage key (owned by the storage backend)."""
    count: int = 0
    window_expires: int = 0

    def is_expired(self, now_ms: int) -> bool:
        """Check if the entry's window has elapsed."""
        return self.window_expires <= now_ms


@dataclass(frozen=True)
class IncrementResult:
    """Result of an atomic increment.

    Attributes:
        count: Counter value after the increment.
        window_expires: Absolute expiry of the counter's window (epoch ms).
            Fixed when the counter is created; later increments keep it.
    """
    count: int
    window_expires: int


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: Epoch milliseconds when the current window resets.
        retry_after: Seconds to wait before retrying (0 when allowed).
    """
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int = 0

    @classmethod
    def from_count(cls, count: int, limit: int, reset_at: int, now_ms: int) -> "RateLimitDecision":
        """Derive a decision from the observed count in a window."""
        allowed = count <= limit
        retry_after = 0 if allowed else max(0, math.ceil((reset_at - now_ms) / 1000))
        return cls(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=reset_at,
            retry_after=retry_after,
        )

    @property
    def reset_seconds(self) -> int:
        """Reset time as epoch seconds, rounded up."""
        return math.ceil(self.reset_at / 1000)

    def headers(self) -> dict[str, str]:
        """Standard rate limit response headers for this decision."""
        return build_headers(self)


@dataclass
class RateLimitEvaluation:
    """Outcome of the full request pipeline.

    Attributes:
        decision: The admission decision.
        denial_response: Ready-to-send response when denied, else None.
        apply_headers: Stamps the rate limit headers onto a response.
    """
    decision: RateLimitDecision
    denial_response: Optional[Any] = None
    apply_headers: Callable[[Any], Any] = field(default=lambda response: response)

    @property
    def allowed(self) -> bool:
        return self.decision.allowed
