# app/middlewares/rate_limit.py
import time

from fastapi import Request, status
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware

from app.platform.config import settings
from app.platform.response import api_response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window limiter keyed by client IP.

    Every path under ``RATE_LIMIT_PATH_PREFIX`` shares one budget of
    ``RATE_LIMIT_MAX_REQUESTS`` per ``RATE_LIMIT_WINDOW_SECONDS``.
    """

    def __init__(self, app):
        super().__init__(app)
        self.redis = None
        self.memory_store = {}
        self._next_prune = 0.0

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "testclient"

        # Skip limit if whitelisted
        if client_ip in settings.WHITELIST_IPS:
            return await call_next(request)

        # Only the API surface is rate-limited
        if not request.url.path.startswith(settings.RATE_LIMIT_PATH_PREFIX):
            return await call_next(request)

        limit = settings.RATE_LIMIT_MAX_REQUESTS
        window = settings.RATE_LIMIT_WINDOW_SECONDS

        if settings.FORCE_IN_MEMORY_RATE_LIMITER:
            count, retry_after = self._hit_memory(client_ip, window)
        else:
            count, retry_after = await self._hit_redis(client_ip, window)

        if count > limit:
            return api_response(
                message="Too many requests, please try again later.",
                error="RateLimitExceeded",
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={
                    "Retry-After": str(retry_after),
                    "RateLimit-Limit": str(limit),
                    "RateLimit-Remaining": "0",
                    "RateLimit-Reset": str(retry_after),
                },
            )

        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(limit)
        response.headers["RateLimit-Remaining"] = str(max(limit - count, 0))
        response.headers["RateLimit-Reset"] = str(retry_after)
        return response

    def _hit_memory(self, client_ip: str, window: int) -> tuple[int, int]:
        now = time.time()
        self._prune_memory(now, window)

        count, expiry = self.memory_store.get(client_ip, (0, now + window))
        if now > expiry:
            count = 0
            expiry = now + window

        count += 1
        self.memory_store[client_ip] = (count, expiry)
        return count, max(int(expiry - now), 0)

    def _prune_memory(self, now: float, window: int):
        """Drop expired windows, at most once per window length."""
        if now < self._next_prune:
            return
        self._next_prune = now + window

        expired = [ip for ip, (_, expiry) in self.memory_store.items() if now > expiry]
        for ip in expired:
            del self.memory_store[ip]

    async def _hit_redis(self, client_ip: str, window: int) -> tuple[int, int]:
        if self.redis is None:
            self.redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)

        key = f"rl:{client_ip}"
        # The key is created with its TTL in the same transaction that counts the hit
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(key, 0, ex=window, nx=True)
            pipe.incr(key)
            pipe.ttl(key)
            _, count, ttl = await pipe.execute()
        return int(count), max(int(ttl), 0)
