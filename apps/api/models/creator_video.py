"""Creator video model holding canonical scraped video records."""

from sqlalchemy import BigInteger, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class CreatorVideo(Base):
    """One normalized video, reel or short. Upserted on (platform, video_id)."""

    __tablename__ = "creator_videos"
    __table_args__ = (
        UniqueConstraint("platform", "video_id", name="uq_creator_videos_platform_video_id"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    profile_id = Column(String, ForeignKey("creator_profiles.id"), nullable=False, index=True)
    scrape_job_id = Column(String, ForeignKey("scrape_jobs.id"), nullable=False, index=True)
    platform = Column(String, nullable=False)
    video_id = Column(String, nullable=False)
    video_url = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    views = Column(BigInteger, nullable=False, default=0)
    likes = Column(BigInteger, nullable=False, default=0)
    comments = Column(BigInteger, nullable=False, default=0)
    shares = Column(BigInteger, nullable=False, default=0)
    engagement_rate = Column(Float, nullable=False, default=0.0)
    posted_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    profile = relationship("CreatorProfile", back_populates="videos")
    scrape_job = relationship("ScrapeJob", back_populates="videos")
