"""Scrape job model."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class ScrapeJob(Base):
    """Remote scrape run requested by a user for one creator profile."""

    __tablename__ = "scrape_jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    profile_id = Column(String, ForeignKey("creator_profiles.id"), nullable=False, index=True)
    platform = Column(String, nullable=False, index=True)
    remote_job_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default="pending", index=True)
    requested_result_limit = Column(Integer, nullable=True)
    result_count = Column(Integer, nullable=False, default=0)
    error_message = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="scrape_jobs")
    profile = relationship("CreatorProfile", back_populates="scrape_jobs")
    videos = relationship("CreatorVideo", back_populates="scrape_job")
