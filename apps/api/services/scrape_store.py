"""SQL persistence for creator profiles, scrape jobs and videos.

Every method opens its own session and commits independently, so the
reconciler can persist profile metadata before the job write and a late
failure never rolls earlier progress back. Profiles and videos are written
with dialect-native upserts keyed on their natural keys, which keeps
concurrent reconciliation of the same job free of duplicates.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from database import async_session_maker
from models.creator_profile import CreatorProfile
from models.creator_video import CreatorVideo
from models.scrape_job import ScrapeJob
from models.user import User
from services.scraping.mappers import CanonicalVideo, PartialProfile

logger = logging.getLogger(__name__)

ERROR_MESSAGE_MAX_LENGTH = 1000
VIDEO_UPDATE_COLUMNS = (
    "profile_id",
    "scrape_job_id",
    "video_url",
    "description",
    "thumbnail_url",
    "views",
    "likes",
    "comments",
    "shares",
    "engagement_rate",
    "posted_at",
    "duration_seconds",
)
JOB_UPDATE_COLUMNS = {
    "status",
    "remote_job_id",
    "result_count",
    "error_message",
    "completed_at",
    "profile_id",
}


def _dialect_insert(db: AsyncSession, model: Any):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upserts are not supported on {dialect}")


class SqlScrapeStore:
    """Repository used by the scrape routers and the reconciler."""

    def __init__(self, session_maker: async_sessionmaker = async_session_maker):
        self.session_maker = session_maker

    async def ensure_user(self, user_id: str) -> User:
        async with self.session_maker() as db:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if user:
                return user
            user = User(id=user_id, email=f"{user_id}@local.invalid")
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

    async def get_profile_by_username(self, username: str, platform: str) -> Optional[CreatorProfile]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(CreatorProfile).where(
                    and_(CreatorProfile.username == username, CreatorProfile.platform == platform)
                )
            )
            return result.scalar_one_or_none()

    async def get_profile(self, profile_id: str) -> Optional[CreatorProfile]:
        async with self.session_maker() as db:
            result = await db.execute(select(CreatorProfile).where(CreatorProfile.id == profile_id))
            return result.scalar_one_or_none()

    async def upsert_profile(self, username: str, platform: str, **fields: Any) -> CreatorProfile:
        """Create the profile or update it in place. None values never overwrite stored data."""
        values = {key: value for key, value in fields.items() if value is not None}
        async with self.session_maker() as db:
            stmt = _dialect_insert(db, CreatorProfile).values(
                id=str(uuid.uuid4()),
                username=username,
                platform=platform,
                **values,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["username", "platform"],
                set_={**{key: stmt.excluded[key] for key in values}, "updated_at": func.now()},
            )
            await db.execute(stmt)
            await db.commit()
            result = await db.execute(
                select(CreatorProfile).where(
                    and_(CreatorProfile.username == username, CreatorProfile.platform == platform)
                )
            )
            return result.scalar_one()

    async def refresh_profile(
        self,
        profile_id: str,
        profile: PartialProfile,
        scraped_at: datetime,
    ) -> Optional[CreatorProfile]:
        """Apply scraped metadata and stamp ``last_scraped_at``."""
        async with self.session_maker() as db:
            result = await db.execute(select(CreatorProfile).where(CreatorProfile.id == profile_id))
            stored = result.scalar_one_or_none()
            if not stored:
                logger.warning("Profile %s vanished before refresh", profile_id)
                return None
            for key, value in profile.updates().items():
                setattr(stored, key, value)
            stored.last_scraped_at = scraped_at
            await db.commit()
            await db.refresh(stored)
            return stored

    async def upsert_videos(
        self,
        profile_id: str,
        scrape_job_id: str,
        platform: str,
        videos: Sequence[CanonicalVideo],
    ) -> int:
        if not videos:
            return 0
        rows: List[Dict[str, Any]] = []
        for video in videos:
            row = video.to_record()
            row.update(
                id=str(uuid.uuid4()),
                profile_id=profile_id,
                scrape_job_id=scrape_job_id,
                platform=platform,
            )
            rows.append(row)

        async with self.session_maker() as db:
            stmt = _dialect_insert(db, CreatorVideo).values(rows)
            stmt = stmt.on_conflict_do_update(
                index_elements=["platform", "video_id"],
                set_={
                    **{column: stmt.excluded[column] for column in VIDEO_UPDATE_COLUMNS},
                    "updated_at": func.now(),
                },
            )
            await db.execute(stmt)
            await db.commit()
        logger.info("Upserted %s %s videos for profile %s", len(rows), platform, profile_id)
        return len(rows)

    async def get_profile_videos(
        self,
        profile_id: str,
        limit: Optional[int] = None,
        order_by: str = "recent",
    ) -> List[CreatorVideo]:
        if order_by == "engagement":
            ordering = [CreatorVideo.engagement_rate.desc(), CreatorVideo.views.desc()]
        else:
            ordering = [CreatorVideo.posted_at.desc(), CreatorVideo.created_at.desc()]
        query = select(CreatorVideo).where(CreatorVideo.profile_id == profile_id).order_by(*ordering)
        if limit:
            query = query.limit(int(limit))
        async with self.session_maker() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def count_profile_videos(self, profile_id: str) -> int:
        async with self.session_maker() as db:
            result = await db.execute(
                select(func.count(CreatorVideo.id)).where(CreatorVideo.profile_id == profile_id)
            )
            return int(result.scalar() or 0)

    async def create_scrape_job(
        self,
        user_id: str,
        profile_id: str,
        platform: str,
        requested_result_limit: Optional[int] = None,
    ) -> ScrapeJob:
        async with self.session_maker() as db:
            job = ScrapeJob(
                id=str(uuid.uuid4()),
                user_id=user_id,
                profile_id=profile_id,
                platform=platform,
                status="pending",
                requested_result_limit=requested_result_limit,
                result_count=0,
            )
            db.add(job)
            await db.commit()
            await db.refresh(job)
            return job

    async def update_scrape_job(self, job_id: str, **fields: Any) -> Optional[ScrapeJob]:
        unknown = set(fields) - JOB_UPDATE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update scrape job fields: {', '.join(sorted(unknown))}")
        async with self.session_maker() as db:
            result = await db.execute(select(ScrapeJob).where(ScrapeJob.id == job_id))
            job = result.scalar_one_or_none()
            if not job:
                return None
            for key, value in fields.items():
                if key == "error_message" and value is not None:
                    value = str(value)[:ERROR_MESSAGE_MAX_LENGTH]
                setattr(job, key, value)
            await db.commit()
            await db.refresh(job)
            return job

    async def get_scrape_job_by_remote_id(
        self,
        remote_job_id: str,
        platform: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Optional[ScrapeJob]:
        query = select(ScrapeJob).where(ScrapeJob.remote_job_id == remote_job_id)
        if platform:
            query = query.where(ScrapeJob.platform == platform)
        if user_id:
            query = query.where(ScrapeJob.user_id == user_id)
        async with self.session_maker() as db:
            result = await db.execute(query.order_by(ScrapeJob.created_at.desc()).limit(1))
            return result.scalar_one_or_none()


def get_scrape_store() -> SqlScrapeStore:
    """FastAPI dependency. Tests override it with a store bound to a temp database."""
    return SqlScrapeStore()
