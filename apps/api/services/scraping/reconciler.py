"""Poll-driven reconciliation of local scrape jobs against remote runs.

Each status poll calls ``reconcile_scrape_job``. A job that is already
terminal is only reported back and the remote scraper is not consulted. A job
whose remote run has just finished is driven through fetch, mapping and
persistence, then written terminal exactly once. Any failure along the way lands the job in ``failed`` instead of leaving
it stuck in ``running``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence

from services.scraping.client import RemoteRun
from services.scraping.dataset import fetch_dataset_items
from services.scraping.errors import RemoteRunNotFoundError
from services.scraping.mappers import CanonicalVideo, PartialProfile, get_mapper
from services.scraping.state import (
    DatasetOutcome,
    JobState,
    JobStatus,
    map_remote_status,
    next_job_state,
    requires_dataset,
)

logger = logging.getLogger(__name__)


class RunSource(Protocol):
    async def get_run(self, run_id: str) -> Optional[RemoteRun]:
        ...

    async def list_run_dataset_items(self, run_id: str) -> List[Any]:
        ...


class ReconcileStore(Protocol):
    async def refresh_profile(
        self,
        profile_id: str,
        profile: PartialProfile,
        scraped_at: datetime,
    ) -> None:
        ...

    async def upsert_videos(
        self,
        profile_id: str,
        scrape_job_id: str,
        platform: str,
        videos: Sequence[CanonicalVideo],
    ) -> int:
        ...

    async def update_scrape_job(self, job_id: str, **fields: Any) -> Any:
        ...


DatasetFetcher = Callable[..., Awaitable[List[Any]]]


@dataclass
class ReconcileResult:
    job: Any
    remote: Optional[RemoteRun]
    changed: bool = False
    video_count: int = 0
    skipped_count: int = 0


def _job_state(job: Any) -> JobState:
    return JobState(
        status=JobStatus(job.status),
        platform=job.platform,
        result_count=job.result_count or 0,
        error_message=job.error_message,
    )


async def _write_state(
    store: ReconcileStore,
    job: Any,
    state: JobState,
    completed_at: datetime,
) -> Any:
    updated = await store.update_scrape_job(
        job.id,
        status=state.status.value,
        result_count=state.result_count,
        error_message=state.error_message,
        completed_at=completed_at if state.status.is_terminal else None,
    )
    return updated if updated is not None else job


async def _mark_failed(store: ReconcileStore, job: Any, message: str, completed_at: datetime) -> Any:
    """Best-effort failure write. A second error here is logged, never raised."""
    try:
        return await _write_state(
            store,
            job,
            JobState(status=JobStatus.FAILED, platform=job.platform, error_message=message),
            completed_at,
        )
    except Exception:
        logger.exception("Could not mark scrape job %s as failed", job.id)
        return job


async def reconcile_scrape_job(
    job: Any,
    *,
    client: RunSource,
    store: ReconcileStore,
    fetch: DatasetFetcher = fetch_dataset_items,
    now: Optional[datetime] = None,
) -> ReconcileResult:
    """Bring a local job in line with its remote run.

    Raises RemoteRunNotFoundError when the remote scraper has no record of
    the run. Other remote failures are absorbed into the job state.
    """
    current = _job_state(job)
    if current.status.is_terminal:
        return ReconcileResult(job=job, remote=None)

    run = await client.get_run(job.remote_job_id)
    if run is None:
        raise RemoteRunNotFoundError(f"Remote run {job.remote_job_id} not found")

    timestamp = now or datetime.now(timezone.utc)

    if not requires_dataset(current, run.status):
        if map_remote_status(run.status) is JobStatus.FAILED:
            target = next_job_state(current, run.status)
            logger.warning("Scrape job %s remote run %s ended as %s", job.id, run.id, run.status)
            job = await _write_state(store, job, target, timestamp)
            return ReconcileResult(job=job, remote=run, changed=True)
        if current.status is JobStatus.PENDING:
            job = await _write_state(
                store, job, JobState(status=JobStatus.RUNNING, platform=job.platform), timestamp
            )
            return ReconcileResult(job=job, remote=run, changed=True)
        return ReconcileResult(job=job, remote=run)

    try:
        items = await fetch(client, job.remote_job_id)
        dataset = get_mapper(job.platform).map_items(items)

        # Profile first so metadata survives even when no videos were mapped.
        await store.refresh_profile(job.profile_id, dataset.profile, timestamp)
        if dataset.videos:
            await store.upsert_videos(job.profile_id, job.id, job.platform, dataset.videos)

        outcome = DatasetOutcome(raw_count=dataset.raw_count, video_count=len(dataset.videos))
        target = next_job_state(current, run.status, outcome)
        job = await _write_state(store, job, target, timestamp)
    except Exception as exc:
        logger.exception("Processing dataset for scrape job %s failed", job.id)
        job = await _mark_failed(store, job, str(exc) or exc.__class__.__name__, timestamp)
        return ReconcileResult(job=job, remote=run, changed=True)

    logger.info(
        "Scrape job %s completed with %s videos (%s raw items, %s skipped)",
        job.id,
        len(dataset.videos),
        dataset.raw_count,
        dataset.skipped_count,
    )
    return ReconcileResult(
        job=job,
        remote=run,
        changed=True,
        video_count=len(dataset.videos),
        skipped_count=dataset.skipped_count,
    )
