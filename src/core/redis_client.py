"""Optional Redis store for scheduler job history."""

import logging

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from src.core.config import Constants, settings


logger = logging.getLogger(__name__)


class RedisClient:
    """Async Redis wrapper that degrades to no-ops when Redis is not configured or failing.

    Callers check is_available and keep their own in-memory fallback.
    """

    def __init__(self, url: str | None = None) -> None:
        url = url if url is not None else settings.redis_url
        self._client: Redis | None = None

        if url:
            try:
                pool = ConnectionPool.from_url(
                    url,
                    decode_responses=True,
                    max_connections=Constants.REDIS_MAX_CONNECTIONS,
                )
                self._client = Redis(connection_pool=pool)
                logger.info("Redis client initialized with URL: %s", url)
            except (RedisError, ValueError) as e:
                logger.warning("Failed to initialize Redis client: %s. Keeping job history in memory.", e)
        else:
            logger.info("Redis URL not configured. Keeping job history in memory.")

    @property
    def is_available(self) -> bool:
        """Check if Redis is configured."""
        return self._client is not None

    async def get(self, key: str) -> str | None:
        """Get a value, or None if missing or Redis failed."""
        if not self._client:
            return None
        try:
            return await self._client.get(key)
        except RedisError as e:
            logger.warning("Redis GET error for key %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set a value with a TTL. Returns False on failure."""
        if not self._client:
            return False
        try:
            await self._client.setex(key, ttl_seconds, value)
            return True
        except RedisError as e:
            logger.warning("Redis SET error for key %s: %s", key, e)
            return False

    async def ping(self) -> bool:
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())  # type: ignore[misc]
        except RedisError as e:
            logger.warning("Redis PING failed: %s", e)
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis client closed")


# Global Redis client instance
redis_client = RedisClient()
