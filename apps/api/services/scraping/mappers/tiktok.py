"""TikTok profile scraper output mapping."""

from __future__ import annotations

import re

from services.scraping.mappers.base import BaseVideoMapper


class TikTokVideoMapper(BaseVideoMapper):
    platform = "tiktok"
    origin = "https://www.tiktok.com"
    content_label = "videos"

    video_id_fields = (
        "id",
        "videoId",
        "video_id",
        "aweme_id",
        "awemeId",
        "aweme.id",
        "video.id",
        "data.id",
    )
    video_url_fields = (
        "webVideoUrl",
        "url",
        "videoUrl",
        "video_url",
        "video.url",
        "data.url",
    )
    video_url_id_pattern = re.compile(r"/video/(\d+)")
    profile_marker_fields = ("author", "authorMeta", "profile", "user", "uniqueId")
    nested_video_fields = ("videos", "items", "posts")

    description_fields = ("text", "description", "caption", "desc", "video.description", "data.description")
    thumbnail_fields = (
        "videoMeta.coverUrl",
        "cover",
        "thumbnailUrl",
        "thumbnail_url",
        "dynamicCover",
        "coverUrl",
        "video.cover",
        "data.cover",
        "video.coverUrl",
        "videoMeta.cover",
    )
    views_fields = (
        "playCount",
        "views",
        "viewCount",
        "play_count",
        "statistics.playCount",
        "stats.playCount",
        "video.playCount",
        "data.playCount",
    )
    likes_fields = (
        "diggCount",
        "likes",
        "likeCount",
        "digg_count",
        "statistics.diggCount",
        "stats.diggCount",
        "video.diggCount",
        "data.diggCount",
    )
    comments_fields = (
        "commentCount",
        "comments",
        "comment_count",
        "statistics.commentCount",
        "stats.commentCount",
        "video.commentCount",
        "data.commentCount",
    )
    shares_fields = (
        "shareCount",
        "shares",
        "share_count",
        "statistics.shareCount",
        "stats.shareCount",
        "video.shareCount",
        "data.shareCount",
    )
    posted_at_fields = ("createTimeISO", "createTime", "postedAt", "createdAt")
    duration_fields = ("videoMeta.duration", "videoDuration", "duration", "video.duration", "data.duration")

    display_name_fields = (
        "authorMeta.name",
        "author.nickname",
        "author.uniqueId",
        "author.name",
        "authorMeta.nickName",
        "uniqueId",
    )
    avatar_fields = (
        "authorMeta.avatar",
        "authorMeta.avatarUrl",
        "author.avatar",
        "author.avatarUrl",
        "author.avatarThumb",
        "avatar",
    )
    follower_fields = (
        "authorMeta.followerCount",
        "authorMeta.fans",
        "author.followerCount",
        "author.fans",
        "authorStats.followerCount",
        "followerCount",
        "fans",
    )

    def video_url_for(self, video_id: str) -> str:
        return f"{self.origin}/video/{video_id}"
