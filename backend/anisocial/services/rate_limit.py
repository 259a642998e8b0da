"""
rate_limit.py

Redis-based AsyncLimiter for AniList quota protection with exponential backoff.
AniList allows 90 requests per minute per client; exceeding it returns 429 with Retry-After.
"""
import time
import uuid
import asyncio
import logging
from typing import Optional, Dict, Any
from redis.exceptions import RedisError
from anisocial.core.redis_client import get_redis

logger = logging.getLogger(__name__)

# Rate limit configurations
RATE_LIMITS = {
    "anilist_api": {"limit": 90, "window": 60},  # 90 requests per minute
}

MAX_BACKOFF_SECONDS = 60


class RateLimitExceeded(Exception):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, message: str, service: str = None, user_id: str = None, status: Dict = None):
        super().__init__(message)
        self.service = service
        self.user_id = user_id
        self.status = status or {}


class AsyncLimiter:
    """Redis-based rate limiter with sliding window."""

    def __init__(self, service: str, user_id: str = "global"):
        self.service = service
        self.user_id = user_id
        self.redis = get_redis()
        self.config = RATE_LIMITS.get(service, {"limit": 10, "window": 60})

    @property
    def key(self) -> str:
        return f"rate_limit:{self.service}:{self.user_id}"

    async def acquire(self) -> bool:
        """Attempt to acquire a token. Returns True if allowed, False if rate limited."""
        now = time.time()
        window = self.config["window"]
        limit = self.config["limit"]

        pipe = self.redis.pipeline()
        # Remove expired entries
        pipe.zremrangebyscore(self.key, 0, now - window)
        # Members must be unique, several requests can share a timestamp
        pipe.zadd(self.key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
        pipe.zcard(self.key)
        pipe.expire(self.key, window)

        results = await pipe.execute()
        current_count = results[2]

        if current_count > limit:
            logger.warning(f"Rate limit exceeded for {self.service} (user: {self.user_id}): {current_count}/{limit}")
            return False

        return True

    async def get_status(self) -> Dict[str, Any]:
        """Get current quota status."""
        now = int(time.time())
        window = self.config["window"]
        limit = self.config["limit"]

        current_count = await self.redis.zcard(self.key)
        return {
            "service": self.service,
            "user_id": self.user_id,
            "limit": limit,
            "remaining": max(0, limit - current_count),
            "reset_time": now + window,
            "current_count": current_count,
        }


async def check_rate_limit(user_id: str, service: str) -> None:
    """Check rate limit and raise exception if exceeded."""
    limiter = AsyncLimiter(service, user_id)
    try:
        allowed = await limiter.acquire()
    except RedisError as e:
        # Fail open: AniList still answers 429 if we overshoot
        logger.warning(f"Rate limiter unavailable for {service}, allowing request: {e}")
        return
    if not allowed:
        status = await limiter.get_status()
        raise RateLimitExceeded(
            f"Rate limit exceeded for {service}",
            service=service,
            user_id=user_id,
            status=status
        )


def _is_rate_limit_error(exc: Exception) -> bool:
    return "429" in str(exc) or "rate limit" in str(exc).lower()


async def with_backoff(func, *args, max_retries: int = 5, service: Optional[str] = None, user_id: Optional[str] = None, **kwargs):
    """Execute function with exponential backoff on rate limit errors.

    Errors exposing a `retry_after` attribute (seconds) stretch the delay to at least that value.
    Any other error is raised immediately.
    """
    delay = 1
    last_exception = None

    for attempt in range(max_retries):
        try:
            if service and user_id:
                await check_rate_limit(user_id, service)

            return await func(*args, **kwargs)

        except RateLimitExceeded as e:
            last_exception = e
            logger.warning(f"Rate limited on attempt {attempt + 1}/{max_retries}, sleeping {delay}s")
            await asyncio.sleep(delay)
            delay = min(delay * 2, 30)

        except Exception as e:
            if not _is_rate_limit_error(e):
                raise
            last_exception = e
            wait = min(max(delay, getattr(e, "retry_after", None) or 0), MAX_BACKOFF_SECONDS)
            logger.warning(f"API rate limit response on attempt {attempt + 1}/{max_retries}, sleeping {wait}s")
            await asyncio.sleep(wait)
            delay = min(delay * 2, 30)

    if service and user_id:
        await mark_fetch_delayed(user_id, service, str(last_exception))

    raise last_exception or Exception(f"Max retries ({max_retries}) exceeded")


async def mark_fetch_delayed(user_id: str, service: str, reason: str):
    """Record that a fetch gave up because of rate limiting (expires after an hour)."""
    redis = get_redis()
    key = f"fetch_delayed:{user_id}:{service}"
    data = {
        "reason": reason,
        "timestamp": int(time.time()),
        "service": service
    }
    try:
        await redis.hset(key, mapping=data)
        await redis.expire(key, 3600)
    except Exception as e:
        logger.warning(f"Could not record fetch delay for {service}: {e}")

    logger.error(f"Marked fetch delayed for {user_id} on {service}: {reason}")
