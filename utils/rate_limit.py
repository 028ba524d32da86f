import json
from time import time
from typing import Dict, Tuple, Optional, Sequence
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import logging

import redis
from redis import asyncio as aioredis

from config import settings

logger = logging.getLogger(__name__)

# Public endpoints that accept unauthenticated writes
RATE_LIMITED_PREFIXES = ("/api/contact", "/api/auth")


def connect_redis(redis_url: Optional[str]) -> Optional[aioredis.Redis]:
    """
    Asyncio Redis client, or None when unset.
    Connections are opened lazily, so an unreachable server only shows up
    as a failed check that falls back to memory.
    """
    if not redis_url:
        logger.info("REDIS_URL not set. Using in-memory rate limiting.")
        return None
    logger.info("Using Redis for rate limiting")
    return aioredis.from_url(redis_url, decode_responses=True)


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    Per-IP token bucket limiter for the public form endpoints.
    Buckets live in Redis when available, in process memory otherwise.
    """

    def __init__(self, app, requests_per_minute: Optional[int] = None,
                 prefixes: Sequence[str] = RATE_LIMITED_PREFIXES,
                 redis_client: Optional[aioredis.Redis] = None):
        super().__init__(app)
        self.capacity = requests_per_minute or settings.rate_limit_per_minute
        self.refill_time_window = 60.0
        self.prefixes = tuple(prefixes)
        self._redis = redis_client
        # Fallback: in-memory storage (ip -> (tokens, last_refill_ts))
        self._buckets: Dict[str, Tuple[float, float]] = {}

    def _get_client_ip(self, request: Request) -> str:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            # Take first IP in the list
            return xff.split(",")[0].strip()
        client = request.client
        return client.host if client else "unknown"

    def _is_limited_path(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.prefixes)

    def _refill(self, tokens: float, last_refill: float, now: float) -> float:
        elapsed = max(0.0, now - last_refill)
        refill = (elapsed / self.refill_time_window) * self.capacity
        return min(self.capacity, tokens + refill)

    async def _check_rate_limit_redis(self, ip: str) -> Optional[bool]:
        """
        Token bucket stored in Redis as {"tokens", "last_refill"}.
        Returns None when Redis fails so the caller can fall back.
        """
        try:
            key = f"rate_limit:{ip}"
            now = time()

            bucket_data = await self._redis.get(key)
            if bucket_data:
                data = json.loads(bucket_data)
                tokens = float(data.get("tokens", 0))
                last_refill = float(data.get("last_refill", now))
            else:
                tokens = float(self.capacity)
                last_refill = now

            tokens = self._refill(tokens, last_refill, now)
            if tokens < 1.0:
                return False

            # Expire after refill window
            await self._redis.setex(
                key,
                int(self.refill_time_window) + 10,
                json.dumps({"tokens": tokens - 1.0, "last_refill": now}),
            )
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis rate limit check failed: {e}. Falling back to in-memory.")
            return None

    def _check_rate_limit_memory(self, ip: str) -> bool:
        now = time()
        tokens, last_refill = self._buckets.get(ip, (self.capacity, now))
        tokens = self._refill(tokens, last_refill, now)

        if tokens < 1.0:
            return False

        self._buckets[ip] = (tokens - 1.0, now)
        return True

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS" or not self._is_limited_path(request.url.path):
            return await call_next(request)

        ip = self._get_client_ip(request)

        allowed = None
        if self._redis is not None:
            allowed = await self._check_rate_limit_redis(ip)
        if allowed is None:
            allowed = self._check_rate_limit_memory(ip)

        if not allowed:
            logger.warning(f"Rate limit exceeded for {ip} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "code": "RATE_LIMITED",
                    "message": "Rate limit exceeded. Try again shortly.",
                },
            )

        return await call_next(request)
