"""Routers package."""

from . import (
    health,
    scrape,
    creators,
)
