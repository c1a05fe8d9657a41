"""Apify REST client for launching actors and reading their datasets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from config import require_apify_token, settings
from services.scraping.extract import parse_timestamp

logger = logging.getLogger(__name__)

DATASET_PAGE_LIMIT = 1000


class ApifyApiError(RuntimeError):
    """Non-2xx response or transport failure talking to Apify."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


@dataclass(frozen=True)
class RemoteRun:
    id: str
    status: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RemoteRun":
        return cls(
            id=str(payload.get("id") or ""),
            status=str(payload.get("status") or "RUNNING").upper(),
            started_at=parse_timestamp(payload.get("startedAt")),
            finished_at=parse_timestamp(payload.get("finishedAt")),
        )


class ApifyClient:
    """Thin async wrapper around the Apify v2 API."""

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise ValueError("An Apify API token is required")
        self.token = token
        self.base_url = (base_url or settings.APIFY_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.APIFY_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.timeout_seconds,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ApifyApiError(f"Apify request failed: {exc}") from exc

        if response.status_code >= 400:
            message = response.text[:300] or response.reason_phrase
            error_type = None
            try:
                error = response.json().get("error") or {}
                message = error.get("message") or message
                error_type = error.get("type")
            except (ValueError, AttributeError):
                pass
            raise ApifyApiError(message, status_code=response.status_code, error_type=error_type)

        try:
            return response.json()
        except ValueError as exc:
            raise ApifyApiError(
                f"Apify returned a non-JSON response for {path}",
                status_code=response.status_code,
            ) from exc

    async def start_actor(self, actor_id: str, run_input: Dict[str, Any]) -> RemoteRun:
        """Start an actor run without waiting for it to finish."""
        actor_path = actor_id.replace("/", "~")
        payload = await self._request("POST", f"/acts/{actor_path}/runs", json=run_input)
        run = RemoteRun.from_payload((payload or {}).get("data") or {})
        logger.info("Started Apify actor %s run %s (%s)", actor_id, run.id, run.status)
        return run

    async def get_run(self, run_id: str) -> Optional[RemoteRun]:
        """Return the run, or None when Apify does not know it."""
        try:
            payload = await self._request("GET", f"/actor-runs/{run_id}")
        except ApifyApiError as exc:
            if exc.status_code == 404:
                logger.warning("Apify run %s not found", run_id)
                return None
            raise
        data = (payload or {}).get("data")
        if not data:
            return None
        return RemoteRun.from_payload(data)

    async def list_run_dataset_items(self, run_id: str, limit: int = DATASET_PAGE_LIMIT) -> List[Any]:
        """Items from the run's default dataset."""
        payload = await self._request(
            "GET",
            f"/actor-runs/{run_id}/dataset/items",
            params={"format": "json", "clean": "true", "limit": limit},
        )
        if isinstance(payload, dict):
            payload = payload.get("items") or payload.get("data") or []
        if not isinstance(payload, list):
            raise ApifyApiError(f"Unexpected dataset payload for run {run_id}")
        return payload


def create_apify_client() -> ApifyClient:
    """Build a client from configured settings."""
    return ApifyClient(token=require_apify_token())
