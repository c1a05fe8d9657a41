"""Freshness gate deciding whether stored videos can answer a request."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Protocol

from config import settings


class CachedVideoSource(Protocol):
    async def count_profile_videos(self, profile_id: str) -> int:
        ...

    async def get_profile_videos(self, profile_id: str, limit: Optional[int] = None) -> List[Any]:
        ...


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_fresh(
    profile: Any,
    freshness_window_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> bool:
    """A profile is fresh when it was scraped inside the freshness window."""
    if profile is None or getattr(profile, "last_scraped_at", None) is None:
        return False
    if freshness_window_hours is None:
        freshness_window_hours = settings.SCRAPE_CACHE_TTL_HOURS
    current = _as_utc(now or datetime.now(timezone.utc))
    age = current - _as_utc(profile.last_scraped_at)
    return age < timedelta(hours=freshness_window_hours)


async def usable_cached_videos(
    store: CachedVideoSource,
    profile: Any,
    limit: Optional[int] = None,
    freshness_window_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Optional[List[Any]]:
    """Stored videos when the cache may serve the request, else None.

    A fresh profile with zero stored videos is not a hit: an earlier scrape
    found nothing and a new one should be allowed.
    """
    if not is_fresh(profile, freshness_window_hours=freshness_window_hours, now=now):
        return None
    if await store.count_profile_videos(profile.id) == 0:
        return None
    return await store.get_profile_videos(profile.id, limit=limit)
