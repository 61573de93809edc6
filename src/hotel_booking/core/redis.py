"""
Redis client configuration with proper enum handling
"""
import redis.asyncio as redis
from redis.exceptions import RedisError
from hotel_booking.core.config import settings
import json
from typing import Optional, Any
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class EnumEncoder(json.JSONEncoder):
    """JSON encoder that handles Enums properly"""
    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class RedisClient:
    """
    Async Redis client wrapper.

    Every operation is a no-op while disconnected, so the calendar cache
    degrades to direct database reads when Redis is down.
    """

    def __init__(self):
        self.redis: Optional[redis.Redis] = None

    async def connect(self, url: Optional[str] = None):
        """Connect to Redis"""
        try:
            self.redis = redis.from_url(
                url or settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50
            )
            await self.redis.ping()
            logger.info("Redis connected successfully")
        except (RedisError, OSError) as e:
            logger.error(f"Redis connection failed: {e}")
            self.redis = None

    async def close(self):
        """Close Redis connection"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis connection closed")

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not self.redis:
            return None

        try:
            value = await self.redis.get(key)
            if value:
                return json.loads(value)
            return None
        except RedisError as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with optional TTL"""
        if not self.redis:
            return False

        try:
            ttl = ttl or settings.REDIS_CACHE_TTL
            serialized = json.dumps(value, cls=EnumEncoder, default=str)
            await self.redis.setex(key, ttl, serialized)
            return True
        except RedisError as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern"""
        if not self.redis:
            return 0

        try:
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            if keys:
                return await self.redis.delete(*keys)
            return 0
        except RedisError as e:
            logger.error(f"Redis DELETE_PATTERN error: {e}")
            return 0


# Global Redis client instance
redis_client = RedisClient()


