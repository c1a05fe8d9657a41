"""Scrape lifecycle error taxonomy."""

from __future__ import annotations


class ScrapeError(RuntimeError):
    """Base class for scrape lifecycle failures."""


class InvalidInputError(ScrapeError, ValueError):
    """Raised when a subject identifier or result limit is unusable. No job is created."""


class RemoteLaunchError(ScrapeError):
    """Raised when the remote scraper rejects a job launch."""


class RemoteTransientError(ScrapeError):
    """Raised when the remote dataset is not ready yet. Retried internally."""


class RemoteFatalError(ScrapeError):
    """Raised when the remote dataset cannot be retrieved, even after retries."""


class RemoteRunNotFoundError(ScrapeError):
    """Raised when the remote scraper has no record of a run."""


class MappingSkip(Exception):
    """Raised for a single raw item that cannot be mapped. Never leaves the mapper."""
