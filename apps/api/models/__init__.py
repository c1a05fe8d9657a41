"""Models package."""

from .user import User
from .creator_profile import CreatorProfile
from .scrape_job import ScrapeJob
from .creator_video import CreatorVideo
