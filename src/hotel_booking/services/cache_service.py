"""
Cache service for room calendars
"""
from datetime import date
from typing import Optional, List, Dict, Any
from hotel_booking.core.redis import redis_client
from hotel_booking.core.config import settings
import logging

logger = logging.getLogger(__name__)


class CacheService:
    """Service for managing calendar cache keys and invalidation"""

    # Cache key patterns
    ROOM_CALENDAR_KEY = "room:{room_id}:calendar:{start}:{end}"
    ROOM_CALENDAR_PATTERN = "room:{room_id}:calendar:*"

    @staticmethod
    async def get_room_calendar(room_id: int, start: date, end: date) -> Optional[List[Dict[str, Any]]]:
        """Get cached calendar window"""
        key = CacheService.ROOM_CALENDAR_KEY.format(
            room_id=room_id, start=start.isoformat(), end=end.isoformat()
        )
        cached = await redis_client.get(key)
        if cached is not None:
            logger.debug(f"Cache HIT: {key}")
        else:
            logger.debug(f"Cache MISS: {key}")
        return cached

    @staticmethod
    async def set_room_calendar(room_id: int, start: date, end: date, days: List[Dict[str, Any]]) -> bool:
        """Cache a calendar window (short TTL, invalidated on every ledger write)"""
        key = CacheService.ROOM_CALENDAR_KEY.format(
            room_id=room_id, start=start.isoformat(), end=end.isoformat()
        )
        return await redis_client.set(key, days, ttl=settings.CALENDAR_CACHE_TTL)

    @staticmethod
    async def invalidate_room_calendar(room_id: int) -> int:
        """Drop every cached calendar window of a room"""
        pattern = CacheService.ROOM_CALENDAR_PATTERN.format(room_id=room_id)
        deleted = await redis_client.delete_pattern(pattern)
        logger.info(
            f"Invalidated {deleted} calendar cache entries",
            extra={'room_id': room_id},
        )
        return deleted
