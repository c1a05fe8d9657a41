"""Instagram reel scraper output mapping.

Reels frequently come back without a view count, in which case the engagement
rate is taken against likes + comments instead.
"""

from __future__ import annotations

import re

from services.scraping.mappers.base import BaseVideoMapper


class InstagramReelMapper(BaseVideoMapper):
    platform = "instagram"
    origin = "https://www.instagram.com"
    content_label = "reels"

    video_id_fields = ("shortCode", "shortcode", "code", "reelId", "videoId", "postId", "id", "media.id")
    video_url_fields = ("url", "shortUrl", "webUrl", "link", "videoUrl", "video_url", "media.url")
    video_url_id_pattern = re.compile(r"/(?:p|reel|reels|tv)/([^/?#]+)")
    video_type_markers = {"type": ("Video",), "productType": ("clips",)}
    profile_marker_fields = ("ownerFullName", "ownerUsername", "username", "fullName")

    description_fields = ("caption", "text", "description", "caption.text", "media.caption")
    thumbnail_list_fields = ("images", "imageUrls")
    thumbnail_fields = (
        "displayUrl",
        "display_url",
        "thumbnailUrl",
        "thumbnail_url",
        "thumbnail",
        "imageUrl",
        "image_url",
        "image",
        "coverUrl",
        "cover_url",
        "cover",
        "mediaUrl",
        "previewUrl",
        "media.displayUrl",
        "media.display_url",
        "media.thumbnailUrl",
        "media.imageUrl",
        "media.coverUrl",
        "video.displayUrl",
        "video.thumbnailUrl",
    )
    views_fields = (
        "playCount",
        "views",
        "viewCount",
        "plays",
        "videoViewCount",
        "videoPlayCount",
        "media.playCount",
        "media.views",
    )
    likes_fields = ("likesCount", "likes", "likeCount", "media.likesCount", "media.likes")
    comments_fields = ("commentsCount", "comments", "commentCount", "media.commentsCount", "media.comments")
    shares_fields = ("sharesCount", "shares", "shareCount", "media.sharesCount", "media.shares")
    posted_at_fields = ("timestamp", "takenAt", "takenAtTimestamp", "createdAt", "postedAt")
    duration_fields = ("videoDuration", "duration", "durationSeconds", "media.videoDuration")

    display_name_fields = (
        "ownerFullName",
        "fullName",
        "name",
        "displayName",
        "owner.fullName",
        "user.fullName",
        "ownerUsername",
        "username",
    )
    avatar_fields = (
        "ownerProfilePicUrl",
        "owner_profile_pic_url",
        "ownerProfilePictureUrl",
        "profilePicUrlHD",
        "profilePicUrl",
        "profile_pic_url",
        "profilePictureUrl",
        "profile_picture_url",
        "avatar",
        "avatarUrl",
        "avatar_url",
        "owner.profilePicUrl",
        "owner.profile_pic_url",
        "owner.avatarUrl",
        "user.profilePicUrl",
        "user.profile_pic_url",
        "user.avatarUrl",
        "author.profilePicUrl",
        "author.avatar",
    )
    follower_fields = (
        "followersCount",
        "followerCount",
        "followers",
        "owner.followersCount",
        "owner.followerCount",
        "user.followerCount",
    )

    def video_url_for(self, video_id: str) -> str:
        return f"{self.origin}/reel/{video_id}/"
