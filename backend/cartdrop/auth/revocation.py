"""Signed-out tokens, kept in Redis until they would have expired anyway.

Keys are `revoked:<token>` with a TTL equal to the token's remaining
lifetime.
"""

import logging
import time

import redis.asyncio as redis

from cartdrop.utils.redis import get_redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "revoked:"


class TokenRevocation:
    def __init__(self, client: redis.Redis):
        self.client = client

    async def revoke_token(self, token: str, expires_at: float) -> bool:
        """Blacklist `token` until `expires_at` (unix time). False if Redis failed."""
        remaining = int(expires_at - time.time())
        if remaining <= 0:
            return True
        try:
            await self.client.set(KEY_PREFIX + token, "1", ex=remaining)
        except redis.RedisError as exc:
            logger.error("Could not revoke token: %s", exc)
            return False
        return True

    async def is_revoked(self, token: str) -> bool:
        # Treat an unreachable Redis as "revoked"
        try:
            return bool(await self.client.exists(KEY_PREFIX + token))
        except redis.RedisError as exc:
            logger.error("Revocation lookup failed, rejecting token: %s", exc)
            return True


async def get_token_revocation() -> TokenRevocation:
    return TokenRevocation(await get_redis())
