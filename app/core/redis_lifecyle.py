# app/core/redis_lifecycle.py
import redis.asyncio as redis
from app.core.config import settings
from app.core.logger import logger
from typing import Optional

_redis_client: Optional[redis.Redis] = None


async def init_redis_client() -> redis.Redis:
    """Initialize and return a Redis client (for startup)."""
    global _redis_client

    if _redis_client is None:
        client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        try:
            await client.ping()
        except redis.ConnectionError:
            await client.aclose()
            raise Exception("Could not connect to Redis server") from None
        _redis_client = client
        logger.info("Redis client connected")

    return _redis_client


async def close_redis():
    """Close the Redis connection on application shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
