from services.scraping.mappers import InstagramReelMapper


def _reel(short_code: str, **overrides):
    item = {
        "id": "3312345678901234567",
        "shortCode": short_code,
        "url": f"https://www.instagram.com/reel/{short_code}/",
        "type": "Video",
        "productType": "clips",
        "caption": "reel caption",
        "displayUrl": "https://scontent.cdninstagram.com/reel.jpg",
        "videoPlayCount": 2000,
        "likesCount": 150,
        "commentsCount": 50,
        "timestamp": "2024-05-01T10:00:00.000Z",
        "videoDuration": 14.6,
        "ownerFullName": "Reel Maker",
        "ownerUsername": "reelmaker",
    }
    item.update(overrides)
    return item


def test_maps_reel_with_short_code_identity():
    dataset = InstagramReelMapper().map_items([_reel("C1abc")])

    video = dataset.videos[0]
    assert video.video_id == "C1abc"
    assert video.video_url == "https://www.instagram.com/reel/C1abc/"
    assert video.thumbnail_url == "https://scontent.cdninstagram.com/reel.jpg"
    assert video.views == 2000
    assert video.duration_seconds == 15
    assert video.engagement_rate == 10.0
    assert dataset.profile.display_name == "Reel Maker"


def test_missing_views_uses_likes_and_comments_as_base():
    item = _reel("C2def", videoPlayCount=None, likesCount=30, commentsCount=10)

    video = InstagramReelMapper().map_items([item]).videos[0]

    assert video.views == 0
    assert video.engagement_rate == 100.0


def test_short_code_is_recovered_from_url():
    item = {"url": "https://www.instagram.com/p/C3ghi/?utm_source=ig", "likesCount": 1}

    video = InstagramReelMapper().map_items([item]).videos[0]

    assert video.video_id == "C3ghi"


def test_image_list_thumbnail_takes_priority():
    item = _reel("C4jkl", images=[{"url": "https://cdn/first.jpg"}, "https://cdn/second.jpg"])

    video = InstagramReelMapper().map_items([item]).videos[0]

    assert video.thumbnail_url == "https://cdn/first.jpg"


def test_comment_lists_fall_through_to_counts():
    item = _reel("C5mno", commentsCount=None, comments=[{"text": "hi"}], commentCount=4)

    video = InstagramReelMapper().map_items([item]).videos[0]

    assert video.comments == 4


def test_profile_details_record_survives_empty_result():
    profile_record = {
        "username": "private.account",
        "fullName": "Private Account",
        "profilePicUrlHD": "https://cdn/private.jpg",
        "followersCount": 321,
    }

    dataset = InstagramReelMapper().map_items([profile_record])

    assert dataset.videos == []
    assert dataset.raw_count == 1
    assert dataset.profile.display_name == "Private Account"
    assert dataset.profile.avatar_url == "https://cdn/private.jpg"
    assert dataset.profile.follower_count == 321


def test_relative_thumbnail_is_made_absolute():
    item = _reel("C6pqr", displayUrl="/media/cover.jpg")

    video = InstagramReelMapper().map_items([item]).videos[0]

    assert video.thumbnail_url == "https://www.instagram.com/media/cover.jpg"
