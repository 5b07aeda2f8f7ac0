"""Coach-uploaded videos and per-user view tracking."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    coach_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    thumbnail_key: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # bytes
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # seconds
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    coach = relationship("Coach")
    view_records = relationship("VideoView", back_populates="video", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Video(title={self.title}, coach_id={self.coach_id})>"


class VideoView(Base):
    __tablename__ = "video_views"
    __table_args__ = (UniqueConstraint("video_id", "user_id", name="uq_video_views_video_user"),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    video_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    watch_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # percent
    last_watched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    video = relationship("Video", back_populates="view_records")
