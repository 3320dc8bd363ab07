# wedding_signup/utils/rate_limit.py
"""
Per-client-IP fixed-window rate limiting for the public signup endpoints.

Applied as a FastAPI dependency so it runs before any request validation.
"""
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as aioredis
from fastapi import Request

from ..settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    limit: int
    window_seconds: int
    prefix: str


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after_seconds: Optional[int] = None

    @property
    def reset_at_iso(self) -> str:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()


class RateLimits:
    """Presets for the signup surface."""
    SIGNUP = RateLimitConfig(limit=5, window_seconds=3600, prefix="signup")
    CREATE_ACCOUNT = RateLimitConfig(limit=5, window_seconds=3600, prefix="create-account")
    SLUG_CHECK = RateLimitConfig(limit=30, window_seconds=60, prefix="slug-check")
    VERIFY_PAYMENT = RateLimitConfig(limit=10, window_seconds=3600, prefix="verify-payment")


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # First entry is the original client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    cf_connecting = request.headers.get("cf-connecting-ip")
    if cf_connecting:
        return cf_connecting

    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


class AbstractRateLimiter(ABC):

    @abstractmethod
    async def hit(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one attempt for identifier and report whether it is allowed."""
        pass

    async def initialize(self) -> None:
        pass

    async def teardown(self) -> None:
        pass


class InMemoryRateLimiter(AbstractRateLimiter):
    """Single-process limiter. Counters are lost on restart."""

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval_seconds: float = 60.0):
        self._clock = clock
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._sweep_interval_seconds = sweep_interval_seconds
        self._next_sweep_at = 0.0

    @property
    def tracked_windows(self) -> int:
        return len(self._windows)

    def _sweep_expired(self, now: float) -> None:
        if now < self._next_sweep_at:
            return
        expired = [key for key, (_, reset_at) in self._windows.items() if reset_at <= now]
        for key in expired:
            del self._windows[key]
        self._next_sweep_at = now + self._sweep_interval_seconds

    async def hit(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        key = f"{config.prefix}:{identifier}"
        now = self._clock()
        self._sweep_expired(now)
        count, reset_at = self._windows.get(key, (0, 0.0))
        if reset_at <= now:
            count, reset_at = 0, now + config.window_seconds

        if count >= config.limit:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=reset_at,
                retry_after_seconds=max(1, math.ceil(reset_at - now)),
            )

        count += 1
        self._windows[key] = (count, reset_at)
        return RateLimitResult(allowed=True, remaining=config.limit - count, reset_at=reset_at)

    def reset(self) -> None:
        self._windows.clear()


class RedisRateLimiter(AbstractRateLimiter):
    """Shared limiter for multi-instance deployments (INCR + EXPIRE per window)."""

    def __init__(self, redis_client: Optional[aioredis.Redis] = None):
        self._redis_client = redis_client

    async def initialize(self) -> None:
        if self._redis_client is None:
            self._redis_client = aioredis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                db=settings.redis_db,
                password=settings.redis_password,
                ssl=settings.redis_ssl,
                decode_responses=True,
            )
        await self._redis_client.ping()
        logger.info(f"RedisRateLimiter connected to {settings.redis_host}:{settings.redis_port}")

    async def teardown(self) -> None:
        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None
            logger.info("RedisRateLimiter connection closed.")

    async def ping(self) -> bool:
        if self._redis_client is None:
            await self.initialize()
        return await self._redis_client.ping()

    async def hit(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        if self._redis_client is None:
            await self.initialize()
        key = f"ratelimit:{config.prefix}:{identifier}"
        pipe = self._redis_client.pipeline()
        pipe.incr(key, 1)
        pipe.ttl(key)
        count, ttl = await pipe.execute()
        count = int(count)

        # The window is fixed from the first hit
        if count == 1 or int(ttl) < 0:
            await self._redis_client.expire(key, config.window_seconds)
            ttl = config.window_seconds
        ttl = int(ttl)
        reset_at = time.time() + ttl
        if count > config.limit:
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at, retry_after_seconds=ttl)
        return RateLimitResult(allowed=True, remaining=config.limit - count, reset_at=reset_at)


# Singleton instance management
_rate_limiter_instance: Optional[AbstractRateLimiter] = None


def build_rate_limiter() -> AbstractRateLimiter:
    if settings.rate_limit_backend.lower() == "redis":
        return RedisRateLimiter()
    return InMemoryRateLimiter()


async def get_rate_limiter() -> AbstractRateLimiter:
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        _rate_limiter_instance = build_rate_limiter()
        await _rate_limiter_instance.initialize()
    return _rate_limiter_instance


async def close_rate_limiter() -> None:
    global _rate_limiter_instance
    if _rate_limiter_instance is not None:
        await _rate_limiter_instance.teardown()
        _rate_limiter_instance = None
