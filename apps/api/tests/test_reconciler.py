from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from services.scraping.client import ApifyApiError, RemoteRun
from services.scraping.errors import RemoteFatalError, RemoteRunNotFoundError
from services.scraping.reconciler import reconcile_scrape_job


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class _FakeStore:
    """In-memory stand-in recording every write the reconciler makes."""

    def __init__(self, job):
        self.job = job
        self.profile_refreshes = []
        self.video_upserts = []
        self.job_updates = []
        self.fail_job_updates = False

    async def refresh_profile(self, profile_id, profile, scraped_at):
        self.profile_refreshes.append((profile_id, profile, scraped_at))

    async def upsert_videos(self, profile_id, scrape_job_id, platform, videos):
        self.video_upserts.append((profile_id, scrape_job_id, platform, list(videos)))
        return len(videos)

    async def update_scrape_job(self, job_id, **fields):
        if self.fail_job_updates:
            raise RuntimeError("database unavailable")
        self.job_updates.append(fields)
        for key, value in fields.items():
            setattr(self.job, key, value)
        return self.job


def _job(status="running", platform="tiktok"):
    return SimpleNamespace(
        id="job-1",
        profile_id="profile-1",
        platform=platform,
        remote_job_id="run-1",
        status=status,
        result_count=0,
        error_message=None,
        completed_at=None,
    )


def _client(remote_status="SUCCEEDED", items=None):
    client = SimpleNamespace()
    client.get_run = AsyncMock(return_value=RemoteRun(id="run-1", status=remote_status))
    client.list_run_dataset_items = AsyncMock(return_value=items or [])
    return client


def _tiktok_item(video_id: str):
    return {
        "id": video_id,
        "webVideoUrl": f"https://www.tiktok.com/@c/video/{video_id}",
        "playCount": 100,
        "diggCount": 10,
        "commentCount": 2,
        "shareCount": 1,
        "authorMeta": {"name": "c", "fans": 10},
    }


async def _fetch_passthrough(client, remote_job_id):
    return await client.list_run_dataset_items(remote_job_id)


@pytest.mark.asyncio
async def test_successful_run_persists_videos_and_completes_job():
    job = _job()
    store = _FakeStore(job)
    client = _client(items=[_tiktok_item("1"), _tiktok_item("2")])

    result = await reconcile_scrape_job(job, client=client, store=store, fetch=_fetch_passthrough, now=NOW)

    assert result.changed
    assert result.video_count == 2
    assert job.status == "completed"
    assert job.result_count == 2
    assert job.error_message is None
    assert job.completed_at == NOW
    assert store.profile_refreshes[0][1].display_name == "c"
    assert store.profile_refreshes[0][2] == NOW
    assert [video.video_id for video in store.video_upserts[0][3]] == ["1", "2"]


@pytest.mark.asyncio
async def test_second_reconciliation_of_completed_job_is_a_no_op():
    job = _job()
    store = _FakeStore(job)
    client = _client(items=[_tiktok_item("1")])

    await reconcile_scrape_job(job, client=client, store=store, fetch=_fetch_passthrough, now=NOW)
    writes_after_first = (len(store.job_updates), len(store.video_upserts), len(store.profile_refreshes))

    result = await reconcile_scrape_job(job, client=client, store=store, fetch=_fetch_passthrough, now=NOW)

    assert not result.changed
    assert result.remote is None
    assert (len(store.job_updates), len(store.video_upserts), len(store.profile_refreshes)) == writes_after_first
    assert client.list_run_dataset_items.await_count == 1
    assert client.get_run.await_count == 1
    assert job.result_count == 1


@pytest.mark.asyncio
async def test_profile_only_dataset_completes_with_zero_and_no_video_upsert():
    job = _job()
    store = _FakeStore(job)
    items = [{"authorMeta": {"name": "quiet", "fans": 3}} for _ in range(5)]
    client = _client(items=items)

    await reconcile_scrape_job(job, client=client, store=store, fetch=_fetch_passthrough, now=NOW)

    assert job.status == "completed"
    assert job.result_count == 0
    assert "found no videos" in job.error_message
    assert store.video_upserts == []
    assert store.profile_refreshes[0][1].display_name == "quiet"


@pytest.mark.asyncio
async def test_remote_failure_marks_job_failed_without_fetching():
    job = _job()
    store = _FakeStore(job)
    client = _client(remote_status="TIMED-OUT")
    fetch = AsyncMock()

    result = await reconcile_scrape_job(job, client=client, store=store, fetch=fetch, now=NOW)

    assert result.changed
    assert job.status == "failed"
    assert job.error_message == "Remote scrape run timed out"
    fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_running_remote_leaves_running_job_untouched():
    job = _job()
    store = _FakeStore(job)

    result = await reconcile_scrape_job(job, client=_client(remote_status="RUNNING"), store=store, now=NOW)

    assert not result.changed
    assert store.job_updates == []
    assert result.remote.status == "RUNNING"


@pytest.mark.asyncio
async def test_pending_job_moves_to_running_when_remote_started():
    job = _job(status="pending")
    store = _FakeStore(job)

    result = await reconcile_scrape_job(job, client=_client(remote_status="READY"), store=store, now=NOW)

    assert result.changed
    assert job.status == "running"
    assert job.completed_at is None


@pytest.mark.asyncio
async def test_fetch_failure_marks_job_failed():
    job = _job()
    store = _FakeStore(job)
    fetch = AsyncMock(side_effect=RemoteFatalError("Failed to retrieve dataset items: gone (status: 410)"))

    result = await reconcile_scrape_job(job, client=_client(), store=store, fetch=fetch, now=NOW)

    assert result.changed
    assert job.status == "failed"
    assert job.error_message.startswith("Failed to retrieve dataset items")
    assert job.completed_at == NOW


@pytest.mark.asyncio
async def test_failure_write_errors_are_swallowed_and_logged():
    job = _job()
    store = _FakeStore(job)
    store.fail_job_updates = True
    fetch = AsyncMock(side_effect=RemoteFatalError("dataset gone"))

    result = await reconcile_scrape_job(job, client=_client(), store=store, fetch=fetch, now=NOW)

    assert result.job is job
    assert job.status == "running"


@pytest.mark.asyncio
async def test_unknown_remote_run_raises_not_found():
    job = _job()
    client = _client()
    client.get_run = AsyncMock(return_value=None)

    with pytest.raises(RemoteRunNotFoundError):
        await reconcile_scrape_job(job, client=client, store=_FakeStore(job), now=NOW)


@pytest.mark.asyncio
async def test_status_lookup_errors_propagate():
    job = _job()
    client = _client()
    client.get_run = AsyncMock(side_effect=ApifyApiError("boom", status_code=500))

    with pytest.raises(ApifyApiError):
        await reconcile_scrape_job(job, client=client, store=_FakeStore(job), now=NOW)


@pytest.mark.asyncio
async def test_overlapping_polls_of_running_job_do_not_duplicate_videos(scrape_store):
    await scrape_store.ensure_user("user-1")
    profile = await scrape_store.upsert_profile("c", "tiktok")
    created = await scrape_store.create_scrape_job("user-1", profile.id, "tiktok", requested_result_limit=20)
    await scrape_store.update_scrape_job(created.id, remote_job_id="run-1", status="running")

    # Both polls read the job before either one writes it back.
    first_snapshot = await scrape_store.get_scrape_job_by_remote_id("run-1", platform="tiktok")
    second_snapshot = await scrape_store.get_scrape_job_by_remote_id("run-1", platform="tiktok")
    client = _client(items=[_tiktok_item("1"), _tiktok_item("2")])

    await reconcile_scrape_job(first_snapshot, client=client, store=scrape_store, fetch=_fetch_passthrough, now=NOW)
    await reconcile_scrape_job(second_snapshot, client=client, store=scrape_store, fetch=_fetch_passthrough, now=NOW)

    assert await scrape_store.count_profile_videos(profile.id) == 2
    job = await scrape_store.get_scrape_job_by_remote_id("run-1", platform="tiktok")
    assert job.id == created.id
    assert job.status == "completed"
    assert job.result_count == 2
    assert job.error_message is None
