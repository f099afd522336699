import time
from typing import Callable, Optional
from collections import defaultdict, deque
import asyncio

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi.util import get_remote_address
from redis.asyncio import Redis
from redis.exceptions import RedisError

from beanstalk.core.config import settings
from beanstalk.core.logging import security_logger


GENERATION_PREFIXES = ("/api/prds", "/api/epics", "/api/conversation")
EXEMPT_PATHS = {"/health", "/", "/docs", "/redoc", "/openapi.json", "/metrics"}


# In-memory rate limiter for development (fallback)
class InMemoryRateLimiter:
    def __init__(self):
        self.clients = defaultdict(deque)
        self.lock = asyncio.Lock()

    async def is_allowed(self, key: str, limit: int, window: int) -> bool:
        async with self.lock:
            now = time.time()
            client_requests = self.clients[key]

            # Remove old requests outside the window
            while client_requests and client_requests[0] <= now - window:
                client_requests.popleft()

            if len(client_requests) >= limit:
                return False

            client_requests.append(now)
            return True


# Redis-based rate limiter for production
class RedisRateLimiter:
    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def is_allowed(self, key: str, limit: int, window: int) -> bool:
        try:
            pipe = self.redis.pipeline()
            now = time.time()

            pipe.zremrangebyscore(key, 0, now - window)
            pipe.zcard(key)
            pipe.zadd(key, {str(now): now})
            pipe.expire(key, window)

            results = await pipe.execute()
            current_count = results[1]

            return current_count < limit

        except RedisError as e:
            security_logger.error("Redis rate limiter error", error=str(e))
            # Fallback to allowing the request if Redis fails
            return True


_rate_limiter_instance: Optional[InMemoryRateLimiter] = None
_redis_rate_limiter: Optional[RedisRateLimiter] = None


def get_rate_limiter() -> InMemoryRateLimiter:
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        _rate_limiter_instance = InMemoryRateLimiter()
    return _rate_limiter_instance


async def setup_redis_rate_limiter(redis_url: str) -> bool:
    global _redis_rate_limiter
    try:
        # from_url raises ValueError for a malformed URL
        redis_client = Redis.from_url(redis_url, decode_responses=True)
        await redis_client.ping()
        _redis_rate_limiter = RedisRateLimiter(redis_client)
        security_logger.info("Redis rate limiter configured")
        return True
    except (RedisError, ValueError) as e:
        security_logger.warning("Failed to setup Redis rate limiter, using in-memory fallback", error=str(e))
        return False


def get_active_rate_limiter():
    return _redis_rate_limiter if _redis_rate_limiter else get_rate_limiter()


def rate_limit_key_func(request: Request) -> str:
    """Generate rate limit key from request"""
    return get_remote_address(request)


def limit_for(request: Request) -> tuple[int, int]:
    """Pick (limit, window) for a request; model-backed POSTs are stricter"""
    window = settings.rate_limit_window
    if request.method == "POST" and request.url.path.startswith(GENERATION_PREFIXES):
        return settings.generation_rate_limit, window
    return settings.general_rate_limit, window


async def rate_limit_middleware(request: Request, call_next: Callable):
    """Custom rate limiting middleware"""

    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    rate_limiter = get_active_rate_limiter()
    limit, window = limit_for(request)
    client_key = f"{rate_limit_key_func(request)}:{limit}"

    is_allowed = await rate_limiter.is_allowed(client_key, limit, window)

    if not is_allowed:
        security_logger.warning(
            "Rate limit exceeded",
            client=client_key,
            path=request.url.path,
            method=request.method
        )
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate limit exceeded",
                "detail": f"Maximum {limit} requests per {window} seconds.",
            },
        )

    return await call_next(request)
