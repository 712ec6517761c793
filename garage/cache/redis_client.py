"""
Redis client - car detail caching.
Fails gracefully when Redis is down: a cache error is a cache miss.
Keys include the owner id, so a cached car is only ever served to its owner.
"""

import json
import logging
import uuid
from typing import Any

from redis.asyncio import Redis

from garage.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Shared async Redis client (connection pool managed by redis-py)
_redis: Redis | None = None


def car_cache_key(owner_id: uuid.UUID, car_id: uuid.UUID) -> str:
    return f"car:{owner_id}:{car_id}"


async def get_redis() -> Redis:
    """Get Redis connection, created on first use."""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def cache_get(key: str) -> dict[str, Any] | None:
    """Get a JSON value from cache. Returns None on miss or error."""
    if not settings.cache_enabled:
        return None
    try:
        client = await get_redis()
        raw = await client.get(key)
    except Exception as e:
        logger.warning("cache_get failed: key=%s error=%s", key, e)
        return None
    return json.loads(raw) if raw else None


async def cache_set(key: str, value: dict[str, Any], ttl_seconds: int | None = None) -> bool:
    """Set a JSON value in cache with TTL."""
    if not settings.cache_enabled:
        return False
    try:
        client = await get_redis()
        await client.setex(key, ttl_seconds or settings.cache_ttl_seconds, json.dumps(value))
        return True
    except Exception as e:
        logger.warning("cache_set failed: key=%s error=%s", key, e)
        return False


async def cache_delete(key: str) -> bool:
    """Invalidate cache key (after car update or delete)."""
    if not settings.cache_enabled:
        return False
    try:
        client = await get_redis()
        await client.delete(key)
        return True
    except Exception as e:
        logger.warning("cache_delete failed: key=%s error=%s", key, e)
        return False
