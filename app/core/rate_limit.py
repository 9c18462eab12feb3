import time
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request

from app.core.config import settings
from app.core.exceptions import AppError
from app.core.logger import logger
from app.core.redis_lifecyle import init_redis_client


class RateLimitError(AppError):
    status_code = 429
    error = "Too many requests"


class RateLimiter:
    """Fixed window request counter keyed by client identity."""

    def __init__(self, redis_client, limit: int, window_seconds: int):
        self.redis = redis_client
        self.limit = limit
        self.window_seconds = window_seconds

    def _key(self, identity: str, now: Optional[float] = None) -> str:
        window = int((now if now is not None else time.time()) // self.window_seconds)
        return f"ratelimit:{identity}:{window}"

    async def hit(self, identity: str) -> bool:
        key = self._key(identity)
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, self.window_seconds)
        return count <= self.limit


async def get_rate_limiter() -> Optional[RateLimiter]:
    if not settings.RATE_LIMIT_ENABLED:
        return None
    try:
        client = await init_redis_client()
    except Exception as e:
        logger.warning(f"Rate limiting skipped, redis unavailable: {e}")
        return None
    return RateLimiter(client, settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)


async def enforce_rate_limit(
    request: Request,
    limiter: Optional[RateLimiter] = Depends(get_rate_limiter)
):
    if limiter is None:
        return
    identity = request.client.host if request.client else "anonymous"
    try:
        allowed = await limiter.hit(identity)
    except redis.RedisError as e:
        logger.warning(f"Rate limiting skipped for {identity}, redis error: {e}")
        return
    if not allowed:
        logger.warning(f"Rate limit exceeded for {identity}")
        raise RateLimitError("Too many requests from this IP, please try again later.")
