"""
Redis Cache Service for read-mostly reference data.
Currently holds the platform delivery-slot catalog.
"""
import json
from typing import Optional, Any, List
from redis.asyncio import Redis

from backend.app.core.settings import get_settings


class CacheService:
    """Service for caching operations using Redis."""

    _redis: Optional[Redis] = None

    # Default TTL values (in seconds)
    TTL_DELIVERY_SLOTS = 3600  # 1 hour - slot catalog rarely changes
    TTL_DEFAULT = 300          # 5 minutes - default for other data

    # Cache key prefixes
    KEY_DELIVERY_SLOTS = "delivery:slots:active"

    @classmethod
    async def get_redis(cls) -> Redis:
        """Get or create Redis connection."""
        if cls._redis is None:
            settings = get_settings()
            cls._redis = Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB,
                decode_responses=True
            )
        return cls._redis

    @classmethod
    async def close(cls):
        """Close Redis connection."""
        if cls._redis:
            await cls._redis.aclose()
            cls._redis = None

    def __init__(self, redis: Redis):
        self.redis = redis

    async def get(self, key: str) -> Optional[Any]:
        data = await self.redis.get(key)
        if data:
            return json.loads(data)
        return None

    async def set(self, key: str, value: Any, ttl: int = TTL_DEFAULT):
        await self.redis.set(key, json.dumps(value, ensure_ascii=False, default=str), ex=ttl)

    async def delete(self, key: str):
        await self.redis.delete(key)

    # ----- Delivery slot catalog -----

    async def get_delivery_slots(self) -> Optional[List[dict]]:
        """Get cached active delivery slots."""
        return await self.get(self.KEY_DELIVERY_SLOTS)

    async def set_delivery_slots(self, slots: List[dict]):
        await self.set(self.KEY_DELIVERY_SLOTS, slots, self.TTL_DELIVERY_SLOTS)

    async def invalidate_delivery_slots(self):
        await self.delete(self.KEY_DELIVERY_SLOTS)
