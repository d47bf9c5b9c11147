"""Tests for the Redis fixed-window rate limiter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from config.settings import settings
from src.sl_gateway.auth.jwt_handler import create_access_token
from src.sl_gateway.middleware.rate_limit import (
    RateLimitMiddleware,
    client_key,
    endpoint_group,
)


def _request(
    path: str = "/api/v1/events",
    method: str = "GET",
    headers: dict[str, str] | None = None,
    host: str = "10.0.0.1",
) -> MagicMock:
    request = MagicMock()
    request.url.path = path
    request.method = method
    request.headers = headers or {}
    request.client.host = host
    return request


def _app(redis: AsyncMock) -> FastAPI:
    app = FastAPI()

    @app.post("/api/v1/payments")
    async def pay() -> dict[str, str]:
        return {"status": "paid"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    async def _get_redis() -> AsyncMock:
        return redis

    app.add_middleware(RateLimitMiddleware, redis_getter=_get_redis, enabled=True)
    return app


class TestClientKey:
    def test_bearer_token_subject(self) -> None:
        token = create_access_token("alice")
        request = _request(headers={"authorization": f"Bearer {token}"})
        assert client_key(request) == "user:alice"

    def test_invalid_token_falls_back_to_ip(self) -> None:
        request = _request(headers={"authorization": "Bearer nonsense"})
        assert client_key(request) == "ip:10.0.0.1"

    def test_forwarded_for_first_hop(self) -> None:
        request = _request(headers={"x-forwarded-for": "203.0.113.9, 10.0.0.2"})
        assert client_key(request) == "ip:203.0.113.9"


class TestEndpointGroup:
    def test_payments_group(self) -> None:
        group = endpoint_group(_request("/api/v1/payments", "POST"))
        assert group == ("payments", settings.RATE_LIMIT_PAYMENTS_PER_MINUTE)

    def test_queries_group(self) -> None:
        group = endpoint_group(_request("/api/v1/users/me/aggregate"))
        assert group == ("queries", settings.RATE_LIMIT_QUERIES_PER_MINUTE)

    def test_health_not_limited(self) -> None:
        assert endpoint_group(_request("/health")) is None


class TestRateLimitMiddleware:
    async def test_under_limit_passes_and_sets_expiry(self) -> None:
        redis = AsyncMock()
        redis.incr.return_value = 1
        async with AsyncClient(transport=ASGITransport(app=_app(redis)), base_url="http://t") as c:
            resp = await c.post("/api/v1/payments")
        assert resp.status_code == 200
        redis.expire.assert_awaited_once()
        key = redis.incr.await_args.args[0]
        assert key.startswith("ratelimit:ip:")
        assert ":payments:" in key

    async def test_over_limit_returns_429_envelope(self) -> None:
        redis = AsyncMock()
        redis.incr.return_value = settings.RATE_LIMIT_PAYMENTS_PER_MINUTE + 1
        async with AsyncClient(transport=ASGITransport(app=_app(redis)), base_url="http://t") as c:
            resp = await c.post("/api/v1/payments")
        assert resp.status_code == 429
        assert resp.json()["code"] == 9001
        assert 1 <= int(resp.headers["Retry-After"]) <= 60
        redis.expire.assert_not_awaited()

    async def test_redis_down_lets_request_through(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        redis = AsyncMock()
        redis.incr.side_effect = RedisConnectionError("refused")
        async with AsyncClient(transport=ASGITransport(app=_app(redis)), base_url="http://t") as c:
            resp = await c.post("/api/v1/payments")
        assert resp.status_code == 200
        assert "Rate limiter unavailable" in caplog.text

    async def test_unlimited_path_skips_redis(self) -> None:
        redis = AsyncMock()
        async with AsyncClient(transport=ASGITransport(app=_app(redis)), base_url="http://t") as c:
            resp = await c.get("/health")
        assert resp.status_code == 200
        redis.incr.assert_not_awaited()
