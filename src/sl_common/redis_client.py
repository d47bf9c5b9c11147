"""Redis connection for the rate limiter.

Ledger state never lives here: entries, versions and payments are in
PostgreSQL. Timeouts are short so an unreachable Redis costs a request at
most a second before the limiter gives up and lets it through.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_SOCKET_TIMEOUT_SECONDS = 1.0

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Return the process-wide client, creating its pool on first use."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=_SOCKET_TIMEOUT_SECONDS,
            socket_timeout=_SOCKET_TIMEOUT_SECONDS,
        )
    return _client


async def ping_redis() -> bool:
    """Startup check. A failure is logged, not raised: the ledger runs without Redis."""
    try:
        client = await get_redis()
        await client.ping()
    except RedisError as exc:
        logger.warning("Redis unreachable at startup, rate limiting degraded: %s", exc)
        return False
    return True


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
