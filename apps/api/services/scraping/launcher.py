"""Remote scrape job launch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol

from config import settings
from services.scraping.client import ApifyApiError, RemoteRun
from services.scraping.errors import InvalidInputError, RemoteLaunchError

logger = logging.getLogger(__name__)

MIN_RESULT_LIMIT = 1
RESULT_LIMIT_CEILING = 100
# Actors that resolve the channel handle as typed.
CASE_PRESERVING_PLATFORMS = {"youtube"}


class ActorLauncher(Protocol):
    async def start_actor(self, actor_id: str, run_input: Dict[str, Any]) -> RemoteRun:
        ...


@dataclass(frozen=True)
class JobHandle:
    remote_id: str
    status: str
    started_at: Optional[datetime] = None


def _strip_handle(identifier: Optional[str]) -> str:
    handle = str(identifier or "").strip()
    if handle.startswith("@"):
        handle = handle[1:].strip()
    return handle


def normalize_identifier(platform: str, identifier: Optional[str]) -> str:
    """Handle as sent to the platform's actor. YouTube keeps its case."""
    handle = _strip_handle(identifier)
    if platform in CASE_PRESERVING_PLATFORMS:
        return handle
    return handle.lower()


def profile_username(identifier: Optional[str]) -> str:
    """Stored profile key: always lowercase, on every platform."""
    return _strip_handle(identifier).lower()


def validate_result_limit(result_limit: Any) -> int:
    try:
        limit = int(result_limit)
    except (TypeError, ValueError):
        raise InvalidInputError("Result limit must be a whole number") from None
    max_limit = min(settings.MAX_RESULT_LIMIT, RESULT_LIMIT_CEILING)
    if limit < MIN_RESULT_LIMIT or limit > max_limit:
        raise InvalidInputError(f"Result limit must be between {MIN_RESULT_LIMIT} and {max_limit}")
    return limit


def _tiktok_input(username: str, limit: int) -> Dict[str, Any]:
    return {
        "profiles": [f"https://www.tiktok.com/@{username}"],
        "resultsPerPage": limit,
        "profileScrapeSections": ["videos"],
        "profileSorting": "latest",
        "excludePinnedPosts": False,
        "searchSection": "",
        "maxProfilesPerQuery": 10,
        "scrapeRelatedVideos": False,
        "shouldDownloadVideos": False,
        "shouldDownloadCovers": False,
        "shouldDownloadSubtitles": False,
        "shouldDownloadSlideshowImages": False,
        "shouldDownloadAvatars": False,
        "shouldDownloadMusicCovers": False,
        "proxyCountryCode": "None",
    }


def _instagram_input(username: str, limit: int) -> Dict[str, Any]:
    return {
        "username": [username],
        "resultsLimit": limit,
        "includeSharesCount": False,
    }


def _youtube_input(channel: str, limit: int) -> Dict[str, Any]:
    return {
        "channels": [channel],
        "maxResultsShorts": limit,
    }


ACTOR_INPUT_BUILDERS: Dict[str, Callable[[str, int], Dict[str, Any]]] = {
    "tiktok": _tiktok_input,
    "instagram": _instagram_input,
    "youtube": _youtube_input,
}


def actor_id_for(platform: str) -> str:
    actor_ids = {
        "tiktok": settings.TIKTOK_ACTOR_ID,
        "instagram": settings.INSTAGRAM_ACTOR_ID,
        "youtube": settings.YOUTUBE_ACTOR_ID,
    }
    if platform not in actor_ids:
        raise InvalidInputError(f"Unsupported platform: {platform}")
    return actor_ids[platform]


async def launch_scrape(
    client: ActorLauncher,
    platform: str,
    subject_identifier: Optional[str],
    result_limit: Any,
) -> JobHandle:
    """Start a remote scrape for one creator. Returns as soon as the run is queued."""
    if platform not in ACTOR_INPUT_BUILDERS:
        raise InvalidInputError(f"Unsupported platform: {platform}")
    subject = normalize_identifier(platform, subject_identifier)
    if not subject:
        raise InvalidInputError("Username is required")
    limit = validate_result_limit(result_limit)

    actor_id = actor_id_for(platform)
    run_input = ACTOR_INPUT_BUILDERS[platform](subject, limit)
    logger.info("Starting %s scrape for %s (limit=%s)", platform, subject, limit)

    try:
        run = await client.start_actor(actor_id, run_input)
    except ApifyApiError as exc:
        logger.error("Apify rejected %s scrape for %s: %s", platform, subject, exc)
        raise RemoteLaunchError(f"Failed to start scraping job: {exc}") from exc

    if not run.id:
        raise RemoteLaunchError("Failed to start scraping job: remote run has no id")
    return JobHandle(remote_id=run.id, status=run.status or "RUNNING", started_at=run.started_at)
