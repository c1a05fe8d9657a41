"""Canonical record contracts produced by the platform mappers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional


Platform = Literal["tiktok", "instagram", "youtube"]
PLATFORMS = ("tiktok", "instagram", "youtube")


@dataclass(frozen=True)
class CanonicalVideo:
    video_id: str
    video_url: str
    description: Optional[str]
    thumbnail_url: Optional[str]
    views: int
    likes: int
    comments: int
    shares: int
    posted_at: Optional[datetime]
    duration_seconds: Optional[int]
    engagement_rate: float

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PartialProfile:
    """Creator metadata gleaned from a dataset. Any field may be missing."""

    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    follower_count: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.display_name is None and self.avatar_url is None and self.follower_count is None

    def updates(self) -> Dict[str, Any]:
        """Only the populated fields, so stored values are never nulled out."""
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class MappedDataset:
    videos: List[CanonicalVideo] = field(default_factory=list)
    profile: PartialProfile = field(default_factory=PartialProfile)
    raw_count: int = 0
    skipped_count: int = 0
