"""YouTube Shorts scraper output mapping."""

from __future__ import annotations

import re

from services.scraping.mappers.base import BaseVideoMapper


class YouTubeShortsMapper(BaseVideoMapper):
    platform = "youtube"
    origin = "https://www.youtube.com"
    content_label = "shorts"

    video_id_fields = ("id", "videoId", "video_id")
    video_url_fields = ("url", "videoUrl", "video_url")
    video_url_id_pattern = re.compile(r"(?:/shorts/|[?&]v=|youtu\.be/)([\w-]{6,})")
    profile_marker_fields = ("channelName", "channelUrl", "channelId", "numberOfSubscribers")

    # Shorts have no caption in the actor output; the title stands in for it.
    description_fields = ("title", "text", "description")
    thumbnail_list_fields = ("thumbnails",)
    thumbnail_fields = ("thumbnailUrl", "thumbnail", "thumbnail_url")
    views_fields = ("viewCount", "view_count", "views")
    likes_fields = ("likes", "likeCount", "like_count")
    comments_fields = ("commentsCount", "comments", "commentCount", "comment_count")
    # Share counts are not exposed for Shorts.
    shares_fields = ()
    posted_at_fields = ("date", "uploadDate", "publishedAt", "postedAt", "createdAt")
    duration_fields = ("duration", "durationSeconds", "lengthSeconds")

    display_name_fields = ("channelName", "channel.name", "channelTitle")
    avatar_fields = ("channelAvatarUrl", "channelThumbnail", "channel.avatarUrl")
    follower_fields = ("numberOfSubscribers", "channelSubscribers", "subscriberCount")

    def video_url_for(self, video_id: str) -> str:
        return f"{self.origin}/shorts/{video_id}"
