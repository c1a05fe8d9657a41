"""Shared canonical mapping algorithm for scraper datasets."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Pattern, Sequence, Tuple

from services.scraping.errors import MappingSkip
from services.scraping.extract import (
    absolutize_url,
    clean_text,
    compute_engagement_rate,
    extract,
    extract_first_list_item,
    extract_parsed,
    parse_duration,
    parse_timestamp,
    resolve_path,
    to_count,
)
from services.scraping.mappers.types import CanonicalVideo, MappedDataset, PartialProfile, Platform

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 500


class BaseVideoMapper(ABC):
    """Maps raw actor output into canonical videos plus partial profile metadata.

    Subclasses only declare candidate tables; the algorithm lives here.
    """

    platform: Platform
    origin: str
    content_label: str = "videos"

    video_id_fields: Sequence[str] = ()
    video_url_fields: Sequence[str] = ()
    video_url_id_pattern: Optional[Pattern[str]] = None
    video_type_markers: Mapping[str, Tuple[str, ...]] = {}
    profile_marker_fields: Sequence[str] = ()
    nested_video_fields: Sequence[str] = ()

    description_fields: Sequence[str] = ()
    thumbnail_list_fields: Sequence[str] = ()
    thumbnail_fields: Sequence[str] = ()
    views_fields: Sequence[str] = ()
    likes_fields: Sequence[str] = ()
    comments_fields: Sequence[str] = ()
    shares_fields: Sequence[str] = ()
    posted_at_fields: Sequence[str] = ()
    duration_fields: Sequence[str] = ()

    display_name_fields: Sequence[str] = ()
    avatar_fields: Sequence[str] = ()
    follower_fields: Sequence[str] = ()

    @abstractmethod
    def video_url_for(self, video_id: str) -> str:
        raise NotImplementedError

    def parse_duration(self, value: Any) -> Optional[int]:
        return parse_duration(value)

    # ------------------------------------------------------------------
    # Partitioning
    # ------------------------------------------------------------------

    def _has_any(self, item: Mapping[str, Any], fields: Sequence[str]) -> bool:
        for field in fields:
            value = resolve_path(item, field)
            if value not in (None, "", [], {}):
                return True
        return False

    def is_video_item(self, item: Mapping[str, Any]) -> bool:
        if self._has_any(item, self.video_id_fields) or self._has_any(item, self.video_url_fields):
            return True
        for field, accepted in self.video_type_markers.items():
            if extract(item, (field,)) in accepted:
                return True
        return False

    def has_nested_videos(self, item: Mapping[str, Any]) -> bool:
        return any(isinstance(item.get(field), list) and item.get(field) for field in self.nested_video_fields)

    def is_profile_only(self, item: Mapping[str, Any]) -> bool:
        if self.is_video_item(item) or self.has_nested_videos(item):
            return False
        return self._has_any(item, self.profile_marker_fields)

    def partition(self, items: Sequence[Any]) -> Tuple[List[Mapping[str, Any]], List[Mapping[str, Any]]]:
        """Split items into (profile-only, video) groups. Unknown shapes count as videos."""
        profile_items: List[Mapping[str, Any]] = []
        video_items: List[Mapping[str, Any]] = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            if self.is_profile_only(item):
                profile_items.append(item)
            else:
                video_items.append(item)
        return profile_items, video_items

    def _expand_nested(self, items: List[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
        """Flatten container records that carry their posts in a nested list."""
        if not self.nested_video_fields:
            return items
        expanded: List[Mapping[str, Any]] = []
        for item in items:
            children: List[Mapping[str, Any]] = []
            if self.has_nested_videos(item) and not self.is_video_item(item):
                for field in self.nested_video_fields:
                    nested = item.get(field)
                    if isinstance(nested, list):
                        children.extend(child for child in nested if isinstance(child, Mapping))
            if children:
                logger.debug("Expanded %s nested %s from container item", len(children), self.content_label)
                expanded.extend(children)
            else:
                expanded.append(item)
        return expanded

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def _merge_profile(self, profile: PartialProfile, item: Mapping[str, Any]) -> None:
        if profile.display_name is None:
            profile.display_name = extract_parsed(item, self.display_name_fields, clean_text)
        if profile.avatar_url is None:
            profile.avatar_url = extract_parsed(
                item, self.avatar_fields, lambda value: absolutize_url(value, self.origin)
            )
        if profile.follower_count is None:
            profile.follower_count = extract_parsed(item, self.follower_fields, to_count)

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    def resolve_identity(self, item: Mapping[str, Any]) -> Tuple[str, str]:
        raw_url = extract_parsed(item, self.video_url_fields, clean_text)
        video_id = extract_parsed(item, self.video_id_fields, clean_text)
        if not video_id and raw_url and self.video_url_id_pattern is not None:
            match = self.video_url_id_pattern.search(raw_url)
            if match:
                video_id = match.group(1)
        if raw_url:
            video_url = absolutize_url(raw_url, self.origin)
        else:
            video_url = self.video_url_for(video_id) if video_id else None
        if not video_id or not video_url:
            raise MappingSkip(f"missing video id or url (keys: {sorted(item.keys())[:12]})")
        return video_id, video_url

    def _thumbnail(self, item: Mapping[str, Any]) -> Optional[str]:
        first_image = extract_first_list_item(item, self.thumbnail_list_fields)
        if isinstance(first_image, Mapping):
            first_image = first_image.get("url")
        thumbnail = absolutize_url(first_image, self.origin)
        if thumbnail:
            return thumbnail
        return extract_parsed(item, self.thumbnail_fields, lambda value: absolutize_url(value, self.origin))

    def _count(self, item: Mapping[str, Any], fields: Sequence[str]) -> int:
        return extract_parsed(item, fields, to_count) or 0

    def map_video(self, item: Mapping[str, Any]) -> CanonicalVideo:
        video_id, video_url = self.resolve_identity(item)

        description = extract_parsed(item, self.description_fields, clean_text)
        if description is not None:
            description = description[:DESCRIPTION_MAX_LENGTH]

        views = self._count(item, self.views_fields)
        likes = self._count(item, self.likes_fields)
        comments = self._count(item, self.comments_fields)
        shares = self._count(item, self.shares_fields)

        return CanonicalVideo(
            video_id=video_id,
            video_url=video_url,
            description=description,
            thumbnail_url=self._thumbnail(item),
            views=views,
            likes=likes,
            comments=comments,
            shares=shares,
            posted_at=extract_parsed(item, self.posted_at_fields, parse_timestamp),
            duration_seconds=extract_parsed(item, self.duration_fields, self.parse_duration),
            engagement_rate=compute_engagement_rate(views, likes, comments, shares),
        )

    def map_items(self, items: Optional[Sequence[Any]]) -> MappedDataset:
        """Map one dataset. Bad items are skipped; the batch never fails as a whole."""
        items = list(items or [])
        if not items:
            logger.warning("No %s items to map", self.platform)
            return MappedDataset()

        profile_items, video_items = self.partition(items)
        candidates = self._expand_nested(video_items)
        logger.info(
            "Mapping %s %s items: %s profile-only, %s candidate %s",
            len(items),
            self.platform,
            len(profile_items),
            len(candidates),
            self.content_label,
        )

        profile = PartialProfile()
        profile_sources = profile_items + video_items
        if candidates is not video_items:
            profile_sources = profile_sources + candidates
        for source in profile_sources:
            try:
                self._merge_profile(profile, source)
            except Exception:
                logger.warning("Could not read %s profile fields from item", self.platform, exc_info=True)

        videos: List[CanonicalVideo] = []
        seen = set()
        skipped = len(items) - len(profile_items) - len(video_items)
        for item in candidates:
            try:
                video = self.map_video(item)
            except MappingSkip as skip:
                skipped += 1
                logger.debug("Skipping %s item: %s", self.platform, skip)
                continue
            except Exception:
                skipped += 1
                logger.warning("Skipping malformed %s item", self.platform, exc_info=True)
                continue
            if video.video_id in seen:
                skipped += 1
                logger.debug("Skipping duplicate %s video %s", self.platform, video.video_id)
                continue
            seen.add(video.video_id)
            videos.append(video)

        logger.info(
            "Mapped %s %s from %s items (%s skipped)",
            len(videos),
            self.content_label,
            len(items),
            skipped,
        )
        return MappedDataset(videos=videos, profile=profile, raw_count=len(items), skipped_count=skipped)
