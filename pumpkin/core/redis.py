import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError
from typing import Optional, Any
import json
import structlog

from pumpkin.core.config import settings

logger = structlog.get_logger()

# Redis connection pool
redis_pool: Optional[redis.ConnectionPool] = None


async def init_redis():
    """Initialize Redis connection pool"""
    global redis_pool
    redis_pool = redis.ConnectionPool.from_url(
        settings.REDIS_URL,
        password=settings.REDIS_PASSWORD,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20
    )
    logger.info("Redis connection pool created", url=settings.REDIS_URL)


async def get_redis() -> Redis:
    """Get Redis client"""
    if redis_pool is None:
        await init_redis()
    return Redis(connection_pool=redis_pool)


async def close_redis():
    global redis_pool
    if redis_pool is not None:
        await redis_pool.disconnect()
        redis_pool = None


class RedisCache:
    """Redis cache manager.

    Cache failures never break a request: reads degrade to a miss and writes
    report False, so callers fall through to the backing store.
    """

    def __init__(self, client: Optional[Redis] = None):
        self.redis = client

    async def _get_client(self) -> Redis:
        if self.redis is None:
            self.redis = await get_redis()
        return self.redis

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        try:
            client = await self._get_client()
            value = await client.get(key)
            if value is not None:
                return json.loads(value)
            return None
        except (RedisError, OSError, ValueError) as e:
            logger.error("Redis get failed", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, expire: int = 3600) -> bool:
        """Set value in cache with expiration"""
        try:
            client = await self._get_client()
            await client.setex(key, expire, json.dumps(value, default=str))
            return True
        except (RedisError, OSError) as e:
            logger.error("Redis set failed", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        try:
            client = await self._get_client()
            await client.delete(key)
            return True
        except (RedisError, OSError) as e:
            logger.error("Redis delete failed", key=key, error=str(e))
            return False


# Global cache instance
cache = RedisCache()
