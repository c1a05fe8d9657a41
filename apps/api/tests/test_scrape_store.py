from datetime import datetime, timezone

import pytest

from services.scraping.mappers import CanonicalVideo, PartialProfile


def _video(video_id: str, views: int = 100, engagement_rate: float = 5.0, day: int = 1) -> CanonicalVideo:
    return CanonicalVideo(
        video_id=video_id,
        video_url=f"https://www.tiktok.com/video/{video_id}",
        description=f"video {video_id}",
        thumbnail_url=None,
        views=views,
        likes=5,
        comments=0,
        shares=0,
        posted_at=datetime(2024, 1, day, tzinfo=timezone.utc),
        duration_seconds=30,
        engagement_rate=engagement_rate,
    )


async def _seed_job(store, username="creator", platform="tiktok"):
    await store.ensure_user("user-1")
    profile = await store.upsert_profile(username, platform)
    job = await store.create_scrape_job("user-1", profile.id, platform, requested_result_limit=20)
    return profile, job


@pytest.mark.asyncio
async def test_upsert_profile_is_keyed_on_username_and_platform(scrape_store):
    first = await scrape_store.upsert_profile("creator", "tiktok", display_name="Creator")
    second = await scrape_store.upsert_profile("creator", "tiktok", follower_count=50)
    other = await scrape_store.upsert_profile("creator", "instagram")

    assert first.id == second.id
    assert other.id != first.id
    assert second.display_name == "Creator"
    assert second.follower_count == 50


@pytest.mark.asyncio
async def test_refresh_profile_never_nulls_existing_fields(scrape_store):
    profile = await scrape_store.upsert_profile("creator", "tiktok", display_name="Creator", avatar_url="https://a")
    scraped_at = datetime(2024, 6, 1, tzinfo=timezone.utc)

    refreshed = await scrape_store.refresh_profile(
        profile.id, PartialProfile(follower_count=99), scraped_at
    )

    assert refreshed.display_name == "Creator"
    assert refreshed.avatar_url == "https://a"
    assert refreshed.follower_count == 99
    assert refreshed.last_scraped_at.replace(tzinfo=timezone.utc) == scraped_at


@pytest.mark.asyncio
async def test_upserting_the_same_videos_twice_does_not_duplicate(scrape_store):
    profile, job = await _seed_job(scrape_store)

    await scrape_store.upsert_videos(profile.id, job.id, "tiktok", [_video("1"), _video("2")])
    await scrape_store.upsert_videos(profile.id, job.id, "tiktok", [_video("1", views=500), _video("2")])

    assert await scrape_store.count_profile_videos(profile.id) == 2
    videos = await scrape_store.get_profile_videos(profile.id)
    assert {video.video_id: video.views for video in videos} == {"1": 500, "2": 100}


@pytest.mark.asyncio
async def test_profile_videos_can_be_ordered_by_engagement(scrape_store):
    profile, job = await _seed_job(scrape_store)
    await scrape_store.upsert_videos(
        profile.id,
        job.id,
        "tiktok",
        [_video("low", engagement_rate=1.0, day=3), _video("high", engagement_rate=9.0, day=1)],
    )

    recent = await scrape_store.get_profile_videos(profile.id)
    top = await scrape_store.get_profile_videos(profile.id, limit=1, order_by="engagement")

    assert [video.video_id for video in recent] == ["low", "high"]
    assert [video.video_id for video in top] == ["high"]


@pytest.mark.asyncio
async def test_scrape_job_lifecycle_writes(scrape_store):
    profile, job = await _seed_job(scrape_store)
    assert job.status == "pending"
    assert job.result_count == 0

    await scrape_store.update_scrape_job(job.id, remote_job_id="run-1", status="running")
    found = await scrape_store.get_scrape_job_by_remote_id("run-1", platform="tiktok", user_id="user-1")
    assert found.id == job.id
    assert found.status == "running"

    assert await scrape_store.get_scrape_job_by_remote_id("run-1", user_id="someone-else") is None
    assert await scrape_store.get_scrape_job_by_remote_id("run-1", platform="youtube") is None

    done = await scrape_store.update_scrape_job(job.id, status="completed", result_count=3)
    assert done.status == "completed"
    assert done.result_count == 3


@pytest.mark.asyncio
async def test_update_scrape_job_rejects_unknown_fields(scrape_store):
    _, job = await _seed_job(scrape_store)

    with pytest.raises(ValueError):
        await scrape_store.update_scrape_job(job.id, user_id="hijack")


@pytest.mark.asyncio
async def test_ensure_user_is_idempotent(scrape_store):
    first = await scrape_store.ensure_user("user-1")
    second = await scrape_store.ensure_user("user-1")

    assert first.id == second.id == "user-1"
