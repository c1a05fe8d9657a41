"""Platform mappers turning raw actor datasets into canonical videos."""

from services.scraping.mappers.base import BaseVideoMapper
from services.scraping.mappers.instagram import InstagramReelMapper
from services.scraping.mappers.tiktok import TikTokVideoMapper
from services.scraping.mappers.types import (
    PLATFORMS,
    CanonicalVideo,
    MappedDataset,
    PartialProfile,
    Platform,
)
from services.scraping.mappers.youtube import YouTubeShortsMapper

_MAPPERS = {
    "tiktok": TikTokVideoMapper,
    "instagram": InstagramReelMapper,
    "youtube": YouTubeShortsMapper,
}


def get_mapper(platform: str) -> BaseVideoMapper:
    try:
        return _MAPPERS[platform]()
    except KeyError:
        raise ValueError(f"Unsupported platform: {platform}") from None


__all__ = [
    "PLATFORMS",
    "BaseVideoMapper",
    "CanonicalVideo",
    "InstagramReelMapper",
    "MappedDataset",
    "PartialProfile",
    "Platform",
    "TikTokVideoMapper",
    "YouTubeShortsMapper",
    "get_mapper",
]
