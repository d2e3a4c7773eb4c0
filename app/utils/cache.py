"""
Ledger cache.

Thin get/set/invalidate layer over Redis used for read-only dashboard data.
Write paths call the invalidate helpers; withdrawal request, approval and
completion never read from here.
"""

import json
from typing import Any

from loguru import logger
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from app.config.constants import (
    CACHE_KEY_BALANCE,
    CACHE_KEY_COMMISSION_STATS,
    CACHE_KEY_DASHBOARD,
    CACHE_KEY_REFERRAL_TREE,
)


class LedgerCache:
    """
    Redis-backed cache with explicit invalidation.

    A missing client or a Redis failure behaves like a cache miss, so the
    ledger keeps working when Redis is down.

    Example:
        >>> from app.utils.redis_utils import get_redis_client
        >>> cache = LedgerCache(await get_redis_client())
        >>> await cache.invalidate_user(123)
    """

    def __init__(
        self,
        redis_client: AsyncRedis | None = None,
        default_ttl: int = 300,
    ) -> None:
        """
        Initialize cache.

        Args:
            redis_client: Redis client instance (None disables caching)
            default_ttl: TTL in seconds for set_json without explicit ttl
        """
        self.redis_client = redis_client
        self.default_ttl = default_ttl

    @property
    def enabled(self) -> bool:
        """Whether a Redis client is attached."""
        return self.redis_client is not None

    async def get_json(self, key: str) -> Any | None:
        """Read and decode a cached JSON value, None on miss."""
        if not self.redis_client:
            return None
        try:
            raw = await self.redis_client.get(key)
        except RedisError as e:
            logger.debug(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Dropping undecodable cache entry {key}")
            await self.delete(key)
            return None

    async def set_json(
        self, key: str, value: Any, ttl: int | None = None
    ) -> None:
        """Store a JSON-encodable value with TTL."""
        if not self.redis_client:
            return
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        try:
            await self.redis_client.set(
                key, json.dumps(value, default=str), ex=ttl
            )
        except RedisError as e:
            logger.debug(f"Cache write failed for {key}: {e}")

    async def delete(self, *keys: str) -> int:
        """Delete keys, returns number removed."""
        if not self.redis_client or not keys:
            return 0
        try:
            return await self.redis_client.delete(*keys)
        except RedisError as e:
            # Don't fail the operation if cache invalidation fails
            logger.warning(
                f"Failed to invalidate cache keys {keys}: {e}",
                extra={"keys": list(keys)},
            )
            return 0

    async def invalidate_user(self, user_id: int) -> None:
        """
        Invalidate balance and dashboard entries of a user.

        Called by every write to a commission or withdrawal owned by
        the user, before the triggering operation returns.
        """
        deleted = await self.delete(
            CACHE_KEY_BALANCE.format(user_id=user_id),
            CACHE_KEY_DASHBOARD.format(user_id=user_id),
        )
        if deleted:
            logger.debug(
                f"Invalidated {deleted} cache keys for user {user_id}",
                extra={"user_id": user_id},
            )

    async def invalidate_affiliate(self, affiliate_id: int) -> None:
        """Invalidate commission stats and referral tree of an affiliate."""
        await self.delete(
            CACHE_KEY_COMMISSION_STATS.format(affiliate_id=affiliate_id),
            CACHE_KEY_REFERRAL_TREE.format(affiliate_id=affiliate_id),
        )

    async def invalidate_owner(
        self, user_id: int, affiliate_id: int | None = None
    ) -> None:
        """Invalidate everything cached for a balance owner."""
        await self.invalidate_user(user_id)
        if affiliate_id is not None:
            await self.invalidate_affiliate(affiliate_id)
