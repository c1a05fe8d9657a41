"""Creator profile model for scraped social media accounts."""

from sqlalchemy import BigInteger, Column, DateTime, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class CreatorProfile(Base):
    """Public creator account being analyzed, shared across users."""

    __tablename__ = "creator_profiles"
    __table_args__ = (
        UniqueConstraint("username", "platform", name="uq_creator_profiles_username_platform"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, nullable=False, index=True)  # always lowercased
    platform = Column(String, nullable=False)  # tiktok, instagram, youtube
    display_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    follower_count = Column(BigInteger, nullable=True)
    last_scraped_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    videos = relationship("CreatorVideo", back_populates="profile", cascade="all, delete-orphan")
    scrape_jobs = relationship("ScrapeJob", back_populates="profile")
