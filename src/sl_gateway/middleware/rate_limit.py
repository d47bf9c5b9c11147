"""Rate limiting middleware — Redis fixed-window counters.

Rules:
  - POST /api/v1/payments:  RATE_LIMIT_PAYMENTS_PER_MINUTE per client
  - everything else under /api/: RATE_LIMIT_QUERIES_PER_MINUTE per client

Client key is the token subject when a valid bearer token is present,
otherwise the first X-Forwarded-For hop, otherwise the socket peer.
Key pattern: "ratelimit:{client}:{group}:{window}".

If Redis is unreachable the request is let through and a warning is logged:
rate limiting protects the ledger from spam, it does not guard correctness.
"""

import logging
import time
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from config.settings import settings
from src.sl_common.errors import InvalidCredentialsError, RateLimitError
from src.sl_common.redis_client import get_redis
from src.sl_common.response import error_json
from src.sl_gateway.auth.jwt_handler import resolve_user_id

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60


def client_key(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            return f"user:{resolve_user_id(auth[7:].strip())}"
        except InvalidCredentialsError:
            pass  # fall back to IP; the route itself will reject the token
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


def endpoint_group(request: Request) -> tuple[str, int] | None:
    """Return (group name, per-minute limit), or None when the path is not limited."""
    path = request.url.path
    if not path.startswith("/api/"):
        return None
    if request.method == "POST" and path.rstrip("/").endswith("/payments"):
        return "payments", settings.RATE_LIMIT_PAYMENTS_PER_MINUTE
    return "queries", settings.RATE_LIMIT_QUERIES_PER_MINUTE


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        redis_getter: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        enabled: bool | None = None,
    ) -> None:
        super().__init__(app)
        self._redis_getter = redis_getter
        self._enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self._enabled:
            return await call_next(request)
        group = endpoint_group(request)
        if group is None:
            return await call_next(request)

        name, limit = group
        window = int(time.time()) // _WINDOW_SECONDS
        key = f"ratelimit:{client_key(request)}:{name}:{window}"
        try:
            redis = await self._redis_getter()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > limit:
            retry_after = _WINDOW_SECONDS - int(time.time()) % _WINDOW_SECONDS
            logger.warning("Rate limit hit: key=%s count=%d limit=%d", key, count, limit)
            return error_json(
                RateLimitError(), request, headers={"Retry-After": str(retry_after)}
            )
        return await call_next(request)
