"""Redis implementation of PresenceCacheStore."""

import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.domain.models.errors import CacheStoreUnavailable
from src.domain.ports.presence_cache import PresenceCacheStore

logger = logging.getLogger(__name__)


def create_redis_client(
    url: str,
    connect_timeout_seconds: float = 2.0,
    socket_timeout_seconds: float = 2.0
) -> Redis:
    """Construct an asyncio Redis client that returns str values."""
    return Redis.from_url(
        url,
        socket_connect_timeout=connect_timeout_seconds,
        socket_timeout=socket_timeout_seconds,
        decode_responses=True,
        encoding="utf-8",
    )


class RedisPresenceCache(PresenceCacheStore):
    """Presence cache on Redis, using SETEX for native expiry."""

    def __init__(self, client: Redis):
        """
        Initialize cache.

        Args:
            client: redis.asyncio client created with decode_responses=True
        """
        self.client = client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise CacheStoreUnavailable(f"GET {key} failed: {e}") from e

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.client.setex(key, int(ttl_seconds), value)
        except RedisError as e:
            raise CacheStoreUnavailable(f"SETEX {key} failed: {e}") from e

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.client.delete(key))
        except RedisError as e:
            raise CacheStoreUnavailable(f"DEL {key} failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
