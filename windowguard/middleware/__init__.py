"""Middleware package for windowguard."""

from windowguard.middleware.rate_limit import RateLimitMiddleware

__all__ = [
    "RateLimitMiddleware",
]
