"""Cached creator analytics router."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from config import settings
from services.scrape_store import SqlScrapeStore, get_scrape_store
from services.scraping.cache import is_fresh
from services.scraping.launcher import profile_username
from services.scraping.mappers import PLATFORMS
from services.video_stats import summarize_videos

router = APIRouter()


class ProfileResponse(BaseModel):
    id: str
    username: str
    platform: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    follower_count: Optional[int] = None
    last_scraped_at: Optional[str] = None


class VideoResponse(BaseModel):
    video_id: str
    video_url: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    engagement_rate: float = 0.0
    posted_at: Optional[str] = None
    duration_seconds: Optional[int] = None


class PostingFrequencyResponse(BaseModel):
    per_week: float = 0.0
    per_month: float = 0.0


class VideoStatsResponse(BaseModel):
    total_videos: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0
    average_views: int = 0
    average_likes: int = 0
    average_engagement_rate: float = 0.0
    best_video: Optional[VideoResponse] = None
    posting_frequency: PostingFrequencyResponse = PostingFrequencyResponse()


class CreatorResponse(BaseModel):
    profile: ProfileResponse
    videos: List[VideoResponse]
    stats: VideoStatsResponse
    cache_timestamp: Optional[str] = None
    is_fresh: bool = False


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def validate_platform(platform: str) -> str:
    normalized = str(platform or "").strip().lower()
    if normalized not in PLATFORMS:
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported platform '{platform}'. Use one of: {', '.join(PLATFORMS)}.",
        )
    return normalized


def serialize_profile(profile: Any) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        username=profile.username,
        platform=profile.platform,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        follower_count=profile.follower_count,
        last_scraped_at=_isoformat(profile.last_scraped_at),
    )


def serialize_video(video: Any) -> VideoResponse:
    return VideoResponse(
        video_id=video.video_id,
        video_url=video.video_url,
        description=video.description,
        thumbnail_url=video.thumbnail_url,
        views=int(video.views or 0),
        likes=int(video.likes or 0),
        comments=int(video.comments or 0),
        shares=int(video.shares or 0),
        engagement_rate=float(video.engagement_rate or 0),
        posted_at=_isoformat(video.posted_at),
        duration_seconds=video.duration_seconds,
    )


def serialize_stats(stats: Dict[str, Any]) -> VideoStatsResponse:
    best_video = stats.get("best_video")
    return VideoStatsResponse(
        **{key: value for key, value in stats.items() if key not in {"best_video", "posting_frequency"}},
        best_video=serialize_video(best_video) if best_video is not None else None,
        posting_frequency=PostingFrequencyResponse(**stats.get("posting_frequency", {})),
    )


async def build_creator_payload(
    store: SqlScrapeStore,
    profile: Any,
    limit: int,
) -> CreatorResponse:
    """Profile, top videos by engagement and stats over every stored video."""
    videos = await store.get_profile_videos(profile.id, limit=limit, order_by="engagement")
    all_videos = await store.get_profile_videos(profile.id)
    return CreatorResponse(
        profile=serialize_profile(profile),
        videos=[serialize_video(video) for video in videos],
        stats=serialize_stats(summarize_videos(all_videos)),
        cache_timestamp=_isoformat(profile.last_scraped_at),
        is_fresh=is_fresh(profile),
    )


@router.get("/{platform}/{username}", response_model=CreatorResponse)
async def get_creator(
    platform: str,
    username: str,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    store: SqlScrapeStore = Depends(get_scrape_store),
):
    """Stored analytics for a creator, regardless of freshness."""
    platform = validate_platform(platform)
    normalized = profile_username(username)
    profile = await store.get_profile_by_username(normalized, platform)
    if not profile:
        raise HTTPException(status_code=404, detail="Creator not found")

    return await build_creator_payload(store, profile, limit or settings.DEFAULT_RESULT_LIMIT)
