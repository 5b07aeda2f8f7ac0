"""Coach video library schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .base import StandardizedModel, StrictRequestModel, UTCDateTime


class VideoCreate(StrictRequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    tags: List[str] = []
    is_public: bool = False
    course_id: Optional[str] = None
    filename: Optional[str] = Field(default=None, max_length=255)
    content_type: str = "video/mp4"
    size: Optional[int] = Field(default=None, gt=0, description="Bytes")
    duration: Optional[int] = Field(default=None, ge=0, description="Seconds")


class VideoUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    course_id: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)


class ThumbnailRequest(StrictRequestModel):
    content_type: str
    filename: Optional[str] = Field(default=None, max_length=255)


class TrackViewRequest(StrictRequestModel):
    watch_time: int = Field(default=0, description="Seconds watched")
    progress: float = Field(default=0.0, description="Percent of the video watched")


class VideoResponse(StandardizedModel):
    id: str
    coach_id: str
    course_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = []
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    size: Optional[int] = None
    duration: Optional[int] = None
    is_public: bool
    views: int
    created_at: Optional[UTCDateTime] = None


class PresignedUrlResponse(StandardizedModel):
    url: str
    method: str
    headers: Dict[str, str] = {}
    expires_at: datetime


class VideoUploadResponse(BaseModel):
    video: VideoResponse
    upload: PresignedUrlResponse


class VideoStreamResponse(BaseModel):
    video: VideoResponse
    stream: PresignedUrlResponse


class VideoViewResponse(StandardizedModel):
    id: str
    video_id: str
    user_id: str
    watch_time: int
    progress: float
    last_watched_at: Optional[UTCDateTime] = None


class TopVideo(BaseModel):
    video_id: str
    title: str
    views: int
    recent_views: int


class VideoAnalyticsResponse(BaseModel):
    """Coach-wide totals, or per-video figures when ``video_id`` is set."""

    period: str
    since: UTCDateTime
    video_id: Optional[str] = None
    views: Optional[int] = None
    unique_viewers: Optional[int] = None
    average_progress: Optional[float] = None
    total_views: Optional[int] = None
    total_watch_time: int = 0
    average_watch_time: Optional[int] = None
    top_videos: List[TopVideo] = []
