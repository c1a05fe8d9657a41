"""Per-user request quotas backed by Redis, with an in-process fallback."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from fastapi import Depends, HTTPException, Request, Response
import redis.asyncio as redis

from config import settings
from routers.auth_scope import AuthContext, get_auth_context


_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


@dataclass
class QuotaStatus:
    allowed: bool
    remaining: int
    reset_at: float


async def _consume_local_quota(key: str, limit: int, window_seconds: int) -> QuotaStatus:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count = 0
            reset_at = now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
    return QuotaStatus(allowed=count <= limit, remaining=max(limit - count, 0), reset_at=reset_at)


async def _consume_redis_quota(key: str, limit: int, window_seconds: int) -> QuotaStatus:
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        current = await redis_client.incr(key)
        if current == 1:
            await redis_client.expire(key, window_seconds)
        ttl = await redis_client.ttl(key)
    finally:
        await redis_client.aclose()
    reset_at = time.time() + (ttl if ttl and ttl > 0 else window_seconds)
    return QuotaStatus(allowed=current <= limit, remaining=max(limit - current, 0), reset_at=reset_at)


async def consume_quota(key: str, limit: int, window_seconds: int) -> QuotaStatus:
    try:
        return await _consume_redis_quota(key, limit, window_seconds)
    except Exception:
        return await _consume_local_quota(key, limit, window_seconds)


def rate_limit(action: str, limit: int, window_seconds: int) -> Callable[..., None]:
    """Return a FastAPI dependency enforcing ``limit`` calls per user per window."""

    async def _dependency(
        request: Request,
        response: Response,
        auth: AuthContext = Depends(get_auth_context),
    ):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        key = f"cpa:rate:{action}:{auth.user_id}"
        quota = await consume_quota(key, limit, window_seconds)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(quota.remaining)
        response.headers["X-RateLimit-Reset"] = str(int(quota.reset_at))

        if not quota.allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded for {action}. Try again later.",
                headers={"Retry-After": str(max(int(quota.reset_at - time.time()), 1))},
            )

    return _dependency


def scrape_rate_limit() -> Callable[..., None]:
    return rate_limit("scrape", settings.SCRAPE_RATE_LIMIT, settings.SCRAPE_RATE_WINDOW_SECONDS)
