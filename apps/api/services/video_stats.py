"""Aggregate statistics over a creator's stored videos."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def posting_frequency(videos: Sequence[Any]) -> Dict[str, float]:
    """Posts per week and per month across the span of dated videos."""
    dates = sorted(_as_utc(video.posted_at) for video in videos if getattr(video, "posted_at", None))
    if len(dates) < 2:
        return {"per_week": 0.0, "per_month": 0.0}
    days = (dates[-1] - dates[0]).total_seconds() / 86400
    if days <= 0:
        return {"per_week": 0.0, "per_month": 0.0}
    return {
        "per_week": round(len(dates) / days * 7, 1),
        "per_month": round(len(dates) / days * 30, 1),
    }


def summarize_videos(videos: Sequence[Any]) -> Dict[str, Any]:
    total_videos = len(videos)
    if total_videos == 0:
        return {
            "total_videos": 0,
            "total_views": 0,
            "total_likes": 0,
            "total_comments": 0,
            "average_views": 0,
            "average_likes": 0,
            "average_engagement_rate": 0.0,
            "best_video": None,
            "posting_frequency": {"per_week": 0.0, "per_month": 0.0},
        }

    total_views = sum(int(video.views or 0) for video in videos)
    total_likes = sum(int(video.likes or 0) for video in videos)
    total_comments = sum(int(video.comments or 0) for video in videos)
    average_engagement = sum(float(video.engagement_rate or 0) for video in videos) / total_videos

    best_video: Optional[Any] = None
    for video in videos:
        # Ties keep the earlier video.
        if best_video is None or float(video.engagement_rate or 0) > float(best_video.engagement_rate or 0):
            best_video = video

    return {
        "total_videos": total_videos,
        "total_views": total_views,
        "total_likes": total_likes,
        "total_comments": total_comments,
        "average_views": round(total_views / total_videos),
        "average_likes": round(total_likes / total_videos),
        "average_engagement_rate": round(average_engagement, 4),
        "best_video": best_video,
        "posting_frequency": posting_frequency(videos),
    }
