"""Tests for the rate limiting middleware."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from windowguard.exceptions import StorageError
from windowguard.limiter import RateLimiter
from windowguard.middleware.rate_limit import RateLimitMiddleware
from windowguard.storage.base import StorageBackend


class FailingStorage(StorageBackend):
    """Store whose every operation fails like an unreachable Redis."""

    name = "redis"

    async def increment(self, key, ttl_seconds):
        raise StorageError(self.name, "increment", "Connection refused")

    async def ttl(self, key):
        raise StorageError(self.name, "ttl", "Connection refused")

    async def delete(self, key):
        raise StorageError(self.name, "delete", "Connection refused")


def make_app(limiter: RateLimiter, **middleware_kwargs) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app):
        yield
        await limiter.close()

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(RateLimitMiddleware, limiter=limiter, **middleware_kwargs)

    @app.get("/ping")
    async def ping():
        return {"status": "ok"}

    return app


def test_allowed_responses_carry_headers():
    app = make_app(RateLimiter(limit=2, window="1m"))

    with TestClient(app) as client:
        first = client.get("/ping")
        second = client.get("/ping")

    assert first.status_code == 200
    assert first.json() == {"status": "ok"}
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert "X-RateLimit-Reset" in first.headers
    assert second.headers["X-RateLimit-Remaining"] == "0"


def test_denies_after_limit():
    app = make_app(RateLimiter(limit=2, window="1m"))

    with TestClient(app) as client:
        client.get("/ping")
        client.get("/ping")
        resp = client.get("/ping")

    assert resp.status_code == 429
    assert resp.headers["content-type"].startswith("application/json")
    retry_after = int(resp.headers["Retry-After"])
    assert 0 < retry_after <= 60
    assert resp.json() == {"error": "Too Many Requests", "retryAfter": retry_after}
    assert resp.headers["X-RateLimit-Remaining"] == "0"


def test_clients_are_limited_separately():
    app = make_app(RateLimiter(limit=1, window="1m"))

    with TestClient(app) as client:
        client.get("/ping", headers={"X-Forwarded-For": "203.0.113.1"})
        blocked = client.get("/ping", headers={"X-Forwarded-For": "203.0.113.1"})
        other = client.get("/ping", headers={"X-Forwarded-For": "203.0.113.2"})

    assert blocked.status_code == 429
    assert other.status_code == 200


def test_skip_headers():
    app = make_app(RateLimiter(limit=2, window="1m", skip_headers=True))

    with TestClient(app) as client:
        resp = client.get("/ping")

    assert resp.status_code == 200
    assert "X-RateLimit-Limit" not in resp.headers


def test_storage_failure_fails_open_by_default():
    app = make_app(RateLimiter(storage=FailingStorage()), fail_closed=False)

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.get("/ping")

    assert resp.status_code == 200
    assert "X-RateLimit-Limit" not in resp.headers


def test_storage_failure_fails_closed():
    app = make_app(RateLimiter(storage=FailingStorage()), fail_closed=True)

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.get("/ping")

    assert resp.status_code == 503
    assert resp.json()["error"] == "Service Unavailable"


def test_fail_closed_defaults_from_settings():
    with patch("windowguard.middleware.rate_limit.settings") as mock_settings:
        mock_settings.rate_limit_fail_closed = True
        middleware = RateLimitMiddleware(Mock(), limiter=Mock())

    assert middleware.fail_closed is True


def test_builds_limiter_from_keyword_arguments():
    with patch("windowguard.middleware.rate_limit.create_rate_limiter") as factory:
        middleware = RateLimitMiddleware(Mock(), limit=5, window="30s")

    factory.assert_called_once_with(limit=5, window="30s")
    assert middleware.limiter is factory.return_value


@pytest.mark.asyncio
async def test_aclose_releases_limiter_it_built():
    with patch("windowguard.middleware.rate_limit.create_rate_limiter") as factory:
        factory.return_value.close = AsyncMock()
        middleware = RateLimitMiddleware(Mock(), limit=5)

    await middleware.aclose()

    factory.return_value.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_aclose_leaves_injected_limiter_open():
    limiter = Mock()
    limiter.close = AsyncMock()
    middleware = RateLimitMiddleware(Mock(), limiter=limiter)

    await middleware.aclose()

    limiter.close.assert_not_awaited()
