"""Scrape job router: start remote scrapes and poll them to completion."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from config import settings
from routers.auth_scope import AuthContext, get_auth_context
from routers.creators import (
    ProfileResponse,
    VideoResponse,
    VideoStatsResponse,
    build_creator_payload,
    serialize_profile,
    serialize_stats,
    serialize_video,
    validate_platform,
)
from routers.rate_limit import scrape_rate_limit
from services.scrape_store import SqlScrapeStore, get_scrape_store
from services.scraping.cache import usable_cached_videos
from services.scraping.client import ApifyApiError, ApifyClient, create_apify_client
from services.scraping.errors import InvalidInputError, RemoteLaunchError, RemoteRunNotFoundError
from services.scraping.launcher import launch_scrape, profile_username, validate_result_limit
from services.scraping.reconciler import ReconcileResult, reconcile_scrape_job
from services.scraping.state import JobState, JobStatus, mark_launch_failed, mark_launched
from services.video_stats import summarize_videos

logger = logging.getLogger(__name__)

router = APIRouter()


class ScrapeRequest(BaseModel):
    username: str = Field(min_length=1, max_length=200)
    video_count: Optional[int] = None


class ScrapeJobResponse(BaseModel):
    id: str
    status: str
    platform: str
    remote_job_id: Optional[str] = None
    requested_result_limit: Optional[int] = None
    result_count: int = 0
    error_message: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class RemoteRunResponse(BaseModel):
    id: str
    status: str
    started_at: Optional[str] = None
    finished_at: Optional[str] = None


class ScrapeStartResponse(BaseModel):
    message: str
    cached: bool = False
    scrape: Optional[ScrapeJobResponse] = None
    profile: ProfileResponse
    videos: List[VideoResponse] = []
    stats: Optional[VideoStatsResponse] = None
    cache_timestamp: Optional[str] = None


class ScrapeStatusResponse(BaseModel):
    status: str
    scrape: ScrapeJobResponse
    remote: Optional[RemoteRunResponse] = None
    profile: Optional[ProfileResponse] = None
    videos: Optional[List[VideoResponse]] = None
    stats: Optional[VideoStatsResponse] = None
    message: Optional[str] = None


def get_scraper_client_factory() -> Callable[[], ApifyClient]:
    """Clients are built lazily so cached answers work without scraper credentials."""
    return create_apify_client


def _scraper_client(factory: Callable[[], Any]) -> Any:
    try:
        return factory()
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _serialize_job(job: Any) -> ScrapeJobResponse:
    return ScrapeJobResponse(
        id=job.id,
        status=job.status,
        platform=job.platform,
        remote_job_id=job.remote_job_id,
        requested_result_limit=job.requested_result_limit,
        result_count=int(job.result_count or 0),
        error_message=job.error_message,
        created_at=_isoformat(job.created_at),
        completed_at=_isoformat(job.completed_at),
    )


@router.post("/{platform}", response_model=ScrapeStartResponse)
async def start_scrape(
    platform: str,
    request: ScrapeRequest,
    _rate_limit: None = Depends(scrape_rate_limit()),
    auth: AuthContext = Depends(get_auth_context),
    store: SqlScrapeStore = Depends(get_scrape_store),
    client_factory: Callable[[], Any] = Depends(get_scraper_client_factory),
):
    """Serve fresh cached analytics or start a remote scrape for the creator."""
    platform = validate_platform(platform)
    username = profile_username(request.username)
    if not username:
        raise HTTPException(status_code=422, detail="Username is required")
    try:
        limit = validate_result_limit(request.video_count or settings.DEFAULT_RESULT_LIMIT)
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    await store.ensure_user(auth.user_id)
    profile = await store.get_profile_by_username(username, platform)

    cached_videos = await usable_cached_videos(store, profile, limit=limit)
    if cached_videos is not None:
        logger.info("Serving cached %s analytics for %s", platform, username)
        payload = await build_creator_payload(store, profile, limit)
        return ScrapeStartResponse(
            message="Using cached data",
            cached=True,
            profile=payload.profile,
            videos=payload.videos,
            stats=payload.stats,
            cache_timestamp=payload.cache_timestamp,
        )

    if profile is None:
        profile = await store.upsert_profile(username, platform)
    job = await store.create_scrape_job(auth.user_id, profile.id, platform, requested_result_limit=limit)
    pending = JobState(status=JobStatus(job.status), platform=platform)

    try:
        client = _scraper_client(client_factory)
        handle = await launch_scrape(client, platform, request.username, limit)
    except (HTTPException, RemoteLaunchError, InvalidInputError) as exc:
        message = exc.detail if isinstance(exc, HTTPException) else str(exc)
        failed = mark_launch_failed(pending, message)
        logger.warning("Scrape job %s failed to launch: %s", job.id, message)
        await store.update_scrape_job(
            job.id,
            status=failed.status.value,
            error_message=failed.error_message,
            completed_at=datetime.now(timezone.utc),
        )
        if isinstance(exc, HTTPException):
            raise
        if isinstance(exc, InvalidInputError):
            raise HTTPException(status_code=422, detail=message) from exc
        raise HTTPException(status_code=502, detail=message) from exc

    job = await store.update_scrape_job(
        job.id,
        remote_job_id=handle.remote_id,
        status=mark_launched(pending).status.value,
    )
    return ScrapeStartResponse(
        message="Scraping started",
        scrape=_serialize_job(job),
        profile=serialize_profile(profile),
    )


@router.get("/{platform}/status/{run_id}", response_model=ScrapeStatusResponse)
async def get_scrape_status(
    platform: str,
    run_id: str,
    auth: AuthContext = Depends(get_auth_context),
    store: SqlScrapeStore = Depends(get_scrape_store),
    client_factory: Callable[[], Any] = Depends(get_scraper_client_factory),
):
    """Reconcile the job with its remote run and report where it stands."""
    platform = validate_platform(platform)
    job = await store.get_scrape_job_by_remote_id(run_id, platform=platform, user_id=auth.user_id)
    if not job:
        raise HTTPException(status_code=404, detail="Scrape job not found")

    if JobStatus(job.status).is_terminal:
        result = ReconcileResult(job=job, remote=None)
    else:
        client = _scraper_client(client_factory)
        try:
            result = await reconcile_scrape_job(job, client=client, store=store)
        except RemoteRunNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Remote scrape run not found") from exc
        except ApifyApiError as exc:
            raise HTTPException(status_code=502, detail=f"Failed to check scrape status: {exc}") from exc

    job = result.job
    response = ScrapeStatusResponse(
        status=job.status,
        scrape=_serialize_job(job),
        remote=RemoteRunResponse(
            id=result.remote.id,
            status=result.remote.status,
            started_at=_isoformat(result.remote.started_at),
            finished_at=_isoformat(result.remote.finished_at),
        )
        if result.remote
        else None,
    )

    if job.status == JobStatus.COMPLETED.value:
        profile = await store.get_profile(job.profile_id)
        limit = job.requested_result_limit or settings.DEFAULT_RESULT_LIMIT
        videos = await store.get_profile_videos(job.profile_id, limit=limit, order_by="engagement")
        all_videos = await store.get_profile_videos(job.profile_id)
        response.profile = serialize_profile(profile) if profile else None
        response.videos = [serialize_video(video) for video in videos]
        response.stats = serialize_stats(summarize_videos(all_videos))
        response.message = job.error_message or "Scrape completed"
    elif job.status == JobStatus.FAILED.value:
        response.message = job.error_message or "Scrape failed"
    else:
        response.message = "Scrape in progress"
    return response
