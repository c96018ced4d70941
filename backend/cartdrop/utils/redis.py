"""Process-wide Redis client for the revocation list and readiness check."""

import redis.asyncio as redis

from cartdrop.config import settings

_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Return the shared client, connecting lazily on first use."""
    global _client
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
