"""Dataset retrieval for finished remote runs.

A run can report SUCCEEDED before its dataset is queryable, so reads are
retried on "not ready" signals (404/409 or an explicit message) and on an
empty result while attempts remain. The last attempt takes whatever comes back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Protocol

from config import settings
from services.scraping.client import ApifyApiError
from services.scraping.errors import RemoteFatalError, RemoteTransientError
from services.scraping.retry import retry_async

logger = logging.getLogger(__name__)

NOT_READY_STATUS_CODES = {404, 409}


class DatasetSource(Protocol):
    async def list_run_dataset_items(self, run_id: str) -> List[Any]:
        ...


def is_dataset_not_ready(exc: BaseException) -> bool:
    if isinstance(exc, RemoteTransientError):
        return True
    if isinstance(exc, ApifyApiError):
        if exc.status_code in NOT_READY_STATUS_CODES:
            return True
        return "not ready" in str(exc).lower()
    return False


async def fetch_dataset_items(
    client: DatasetSource,
    remote_job_id: str,
    max_retries: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[Any]:
    """Return the raw dataset items of a finished run.

    Raises RemoteFatalError when retries are exhausted or a non-retryable
    error occurs.
    """
    if max_retries is None:
        max_retries = settings.DATASET_FETCH_MAX_RETRIES
    if delay_seconds is None:
        delay_seconds = settings.DATASET_RETRY_DELAY_SECONDS
    max_attempts = max(int(max_retries), 0) + 1

    async def _attempt(attempt: int) -> List[Any]:
        items = await client.list_run_dataset_items(remote_job_id)
        items = list(items or [])
        if not items and attempt < max_attempts:
            raise RemoteTransientError(f"Dataset for run {remote_job_id} is empty, it may not be ready yet")
        logger.info(
            "Retrieved %s dataset items for run %s (attempt %s/%s)",
            len(items),
            remote_job_id,
            attempt,
            max_attempts,
        )
        return items

    try:
        return await retry_async(
            _attempt,
            is_retryable=is_dataset_not_ready,
            max_attempts=max_attempts,
            delay_seconds=delay_seconds,
            sleep=sleep,
        )
    except (ApifyApiError, RemoteTransientError) as exc:
        status_code = getattr(exc, "status_code", None) or "unknown"
        raise RemoteFatalError(
            f"Failed to retrieve dataset items: {exc} (status: {status_code})"
        ) from exc
