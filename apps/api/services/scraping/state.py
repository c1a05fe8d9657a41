"""Scrape job state machine.

Local jobs move ``pending -> running -> completed | failed``. Transitions are
pure functions of the current job state, the observed remote run status and,
for finished runs, the dataset outcome, so they can be exercised without I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

REMOTE_STATUS_MAP: Dict[str, JobStatus] = {
    "READY": JobStatus.RUNNING,
    "RUNNING": JobStatus.RUNNING,
    "TIMING-OUT": JobStatus.RUNNING,
    "ABORTING": JobStatus.RUNNING,
    "SUCCEEDED": JobStatus.COMPLETED,
    "FAILED": JobStatus.FAILED,
    "ABORTED": JobStatus.FAILED,
    "TIMED-OUT": JobStatus.FAILED,
}

REMOTE_FAILURE_MESSAGES: Dict[str, str] = {
    "FAILED": "Remote scrape run failed",
    "ABORTED": "Remote scrape run aborted",
    "TIMED-OUT": "Remote scrape run timed out",
}

CONTENT_LABELS: Dict[str, str] = {
    "tiktok": "videos",
    "instagram": "reels",
    "youtube": "shorts",
}

PLATFORM_TITLES: Dict[str, str] = {
    "tiktok": "TikTok",
    "instagram": "Instagram",
    "youtube": "YouTube",
}


class InvalidTransitionError(ValueError):
    """Raised when a transition would leave the allowed state graph."""


@dataclass(frozen=True)
class JobState:
    status: JobStatus
    platform: str = "tiktok"
    result_count: int = 0
    error_message: Optional[str] = None


@dataclass(frozen=True)
class DatasetOutcome:
    """What came out of fetching and mapping a finished run."""

    raw_count: int = 0
    video_count: int = 0
    error: Optional[str] = None


def map_remote_status(remote_status: Optional[str]) -> JobStatus:
    """Map an Apify run status onto the local vocabulary. Unknown values mean still running."""
    return REMOTE_STATUS_MAP.get(str(remote_status or "").upper(), JobStatus.RUNNING)


def empty_result_message(platform: str) -> str:
    label = CONTENT_LABELS.get(platform, "videos")
    title = PLATFORM_TITLES.get(platform, platform)
    return (
        f"Scrape completed but found no {label}. The profile may have no {label}, "
        f"be private, or {title} may be blocking the scraper."
    )


def requires_dataset(job: JobState, remote_status: Optional[str]) -> bool:
    """True when the remote run finished and the local job has not consumed it yet."""
    return not job.status.is_terminal and map_remote_status(remote_status) is JobStatus.COMPLETED


def _transition(job: JobState, new_state: JobState) -> JobState:
    if new_state.status not in ALLOWED_TRANSITIONS[job.status]:
        raise InvalidTransitionError(f"Cannot move scrape job from {job.status.value} to {new_state.status.value}")
    return new_state


def mark_launched(job: JobState) -> JobState:
    return _transition(job, JobState(status=JobStatus.RUNNING, platform=job.platform))


def mark_launch_failed(job: JobState, message: str) -> JobState:
    return _transition(job, JobState(status=JobStatus.FAILED, platform=job.platform, error_message=message))


def next_job_state(
    job: JobState,
    remote_status: Optional[str],
    outcome: Optional[DatasetOutcome] = None,
) -> Optional[JobState]:
    """Return the state the job should move to, or None when nothing changes.

    Terminal jobs never change again; a running remote run is read-only.
    """
    if job.status.is_terminal:
        return None

    observed = map_remote_status(remote_status)
    if observed is JobStatus.RUNNING:
        return None

    if observed is JobStatus.FAILED:
        message = REMOTE_FAILURE_MESSAGES.get(str(remote_status).upper(), "Remote scrape run failed")
        return _transition(job, JobState(status=JobStatus.FAILED, platform=job.platform, error_message=message))

    if outcome is None:
        raise ValueError("A dataset outcome is required to complete a scrape job")

    if outcome.error:
        return _transition(
            job,
            JobState(status=JobStatus.FAILED, platform=job.platform, error_message=outcome.error),
        )

    if outcome.video_count == 0 and outcome.raw_count > 0:
        return _transition(
            job,
            JobState(
                status=JobStatus.COMPLETED,
                platform=job.platform,
                result_count=0,
                error_message=empty_result_message(job.platform),
            ),
        )

    return _transition(
        job,
        JobState(status=JobStatus.COMPLETED, platform=job.platform, result_count=outcome.video_count),
    )
