"""Rate limit response headers."""

import math
from typing import Any, Protocol

LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_HEADER = "X-RateLimit-Reset"
RETRY_AFTER_HEADER = "Retry-After"


class _DecisionLike(Protocol):
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int


def build_headers(decision: _DecisionLike) -> dict[str, str]:
    """Build the standard headers for a decision.

    ``X-RateLimit-Reset`` is epoch seconds rounded up; ``Retry-After`` is
    only present when the request was denied.
    """
    headers = {
        LIMIT_HEADER: str(decision.limit),
        REMAINING_HEADER: str(decision.remaining),
        RESET_HEADER: str(math.ceil(decision.reset_at / 1000)),
    }
    if not decision.allowed:
        headers[RETRY_AFTER_HEADER] = str(decision.retry_after)
    return headers


def apply_headers(target: Any, headers: dict[str, str]) -> None:
    """Copy headers onto a mutable headers mapping (e.g. ``response.headers``)."""
    for name, value in headers.items():
        target[name] = value
