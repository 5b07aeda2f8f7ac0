# coachhub/services/video_service.py
"""
VideoService: coach video library.

Video bytes never pass through the API. Creating a video reserves a
storage key and returns a presigned PUT URL; streaming returns a
presigned GET URL. Views are tracked per user with one row per
(video, user) pair.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session
import ulid

from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import period_start, utc_now
from ..models.coach import Coach
from ..models.user import User
from ..models.video import Video, VideoView
from ..repositories import RepositoryFactory
from .base import BaseService
from .storage_client import StorageClient, get_storage_client

logger = logging.getLogger(__name__)

ANALYTICS_PERIODS = ("day", "week", "month", "year")
VIDEO_CONTENT_TYPES = ("video/mp4", "video/webm", "video/quicktime", "video/x-matroska")
IMAGE_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")
EDITABLE_FIELDS = ("title", "description", "category", "tags", "is_public", "course_id", "duration")

_EXTENSIONS = {
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "video/x-matroska": "mkv",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def _safe_name(filename: Optional[str]) -> str:
    stem = (filename or "upload").rsplit(".", 1)[0]
    return re.sub(r"[^A-Za-z0-9_-]+", "-", stem).strip("-")[:60] or "upload"


class VideoService(BaseService):
    """Service layer for coach videos."""

    def __init__(self, db: Session, storage: Optional[StorageClient] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_video_repository(db)
        self.view_repository = RepositoryFactory.create_video_view_repository(db)
        self.course_repository = RepositoryFactory.create_course_repository(db)
        self.coach_repository = RepositoryFactory.create_coach_repository(db)
        self.storage = storage if storage is not None else get_storage_client()

    def _object_key(self, coach_id: str, folder: str, filename: Optional[str], content_type: str) -> str:
        return f"{folder}/{coach_id}/{ulid.ULID()}-{_safe_name(filename)}.{_EXTENSIONS[content_type]}"

    def _require_own(self, coach: Coach, video_id: str) -> Video:
        video = self.repository.get_by_id(video_id)
        if not video or video.coach_id != coach.id:
            raise NotFoundException("Video not found", code="VIDEO_NOT_FOUND")
        return video

    def _require_viewable(self, user: User, video_id: str) -> Video:
        """Owners see their videos; everyone else only public ones."""
        video = self.repository.get_by_id(video_id)
        if video is None:
            raise NotFoundException("Video not found", code="VIDEO_NOT_FOUND")
        if video.is_public:
            return video
        coach = self.coach_repository.get_by_user_id(user.id) if user.is_coach else None
        if coach is None or coach.id != video.coach_id:
            raise NotFoundException("Video not found", code="VIDEO_NOT_FOUND")
        return video

    def _check_course(self, coach: Coach, course_id: Optional[str]) -> None:
        if not course_id:
            return
        course = self.course_repository.get_by_id(course_id)
        if not course or course.coach_id != coach.id:
            raise NotFoundException(
                "Course not found or you do not have permission to access it", code="COURSE_NOT_FOUND"
            )

    def list_videos(
        self,
        coach: Coach,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        is_public: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Video], int]:
        return self.repository.list_for_coach(
            coach.id, search=search, category=category, is_public=is_public, page=page, limit=limit
        )

    def get_video(self, user: User, video_id: str) -> Video:
        return self._require_viewable(user, video_id)

    @BaseService.measure_operation("create_video")
    def create_video(self, coach: Coach, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Register a video and return where to upload it.

        Raises:
            ValidationException: Unsupported content type
            NotFoundException: ``course_id`` is not one of the coach's courses
        """
        content_type = data.get("content_type") or "video/mp4"
        if content_type not in VIDEO_CONTENT_TYPES:
            raise ValidationException(
                "Unsupported video type",
                code="UNSUPPORTED_MEDIA_TYPE",
                details={"allowed": list(VIDEO_CONTENT_TYPES)},
            )
        self._check_course(coach, data.get("course_id"))

        key = self._object_key(coach.id, "videos", data.get("filename"), content_type)
        with self.transaction():
            video = self.repository.create(
                coach_id=coach.id,
                course_id=data.get("course_id"),
                title=data["title"],
                description=data.get("description"),
                category=data.get("category"),
                tags=data.get("tags") or [],
                is_public=bool(data.get("is_public", False)),
                size=data.get("size"),
                duration=data.get("duration"),
                storage_key=key,
                url=self.storage.public_url(key) or None,
            )
        upload = self.storage.generate_presigned_put(key, content_type)
        self.log_operation("video_created", video_id=video.id, coach_id=coach.id, size=data.get("size"))
        return {"video": video, "upload": upload}

    def update_video(self, coach: Coach, video_id: str, data: Dict[str, Any]) -> Video:
        video = self._require_own(coach, video_id)
        if "course_id" in data:
            self._check_course(coach, data.get("course_id"))
        with self.transaction():
            for field in EDITABLE_FIELDS:
                if field in data and (data[field] is not None or field == "course_id"):
                    setattr(video, field, data[field])
        self.logger.info(f"Video updated: {video.id}")
        return video

    @BaseService.measure_operation("delete_video")
    def delete_video(self, coach: Coach, video_id: str) -> None:
        """Delete the record; a failed object removal is logged and does not block it."""
        video = self._require_own(coach, video_id)
        keys = [k for k in (video.storage_key, video.thumbnail_key) if k]
        with self.transaction():
            self.repository.delete(video.id)
        for key in keys:
            if not self.storage.delete_object(key):
                self.logger.warning(f"Failed to remove stored object {key} for deleted video {video_id}")
        self.logger.info(f"Video deleted: {video_id} by coach {coach.id}")

    def thumbnail_upload(
        self, coach: Coach, video_id: str, content_type: str, filename: Optional[str] = None
    ) -> Dict[str, Any]:
        if content_type not in IMAGE_CONTENT_TYPES:
            raise ValidationException(
                "Unsupported thumbnail type",
                code="UNSUPPORTED_MEDIA_TYPE",
                details={"allowed": list(IMAGE_CONTENT_TYPES)},
            )
        video = self._require_own(coach, video_id)
        key = self._object_key(coach.id, "thumbnails", filename, content_type)
        with self.transaction():
            video.thumbnail_key = key
            video.thumbnail_url = self.storage.public_url(key) or None
        return {"video": video, "upload": self.storage.generate_presigned_put(key, content_type)}

    def stream_url(self, user: User, video_id: str) -> Dict[str, Any]:
        video = self._require_viewable(user, video_id)
        presigned = self.storage.generate_presigned_get(video.storage_key)
        return {"video": video, "stream": presigned}

    @BaseService.measure_operation("track_video_view")
    def track_view(
        self, user: User, video_id: str, watch_time: int = 0, progress: float = 0.0
    ) -> VideoView:
        """Upsert the user's view record and bump the video's view counter."""
        if watch_time < 0 or not 0 <= progress <= 100:
            raise ValidationException(
                "watch_time must be non-negative and progress between 0 and 100", code="INVALID_VIEW"
            )
        video = self._require_viewable(user, video_id)
        with self.transaction():
            view = self.view_repository.get_for_user(video.id, user.id)
            if view is None:
                view = self.view_repository.create(
                    video_id=video.id,
                    user_id=user.id,
                    watch_time=watch_time,
                    progress=progress,
                    last_watched_at=utc_now(),
                )
            else:
                view.watch_time = watch_time
                view.progress = progress
                view.last_watched_at = utc_now()
            video.views = (video.views or 0) + 1
        return view

    @BaseService.measure_operation("video_analytics")
    def analytics(self, coach: Coach, period: str = "month", video_id: Optional[str] = None) -> Dict[str, Any]:
        if period not in ANALYTICS_PERIODS:
            raise ValidationException(
                f"period must be one of {', '.join(ANALYTICS_PERIODS)}", code="INVALID_PERIOD"
            )
        since = period_start(period, utc_now())

        if video_id:
            video = self._require_own(coach, video_id)
            stats = self.view_repository.stats_since(video.id, since)
            return {"period": period, "since": since, "video_id": video.id, "views": video.views, **stats}

        totals = self.view_repository.coach_stats_since(coach.id, since)
        top = self.view_repository.top_videos(coach.id, since)
        return {
            "period": period,
            "since": since,
            "total_views": totals["total_views"],
            "total_watch_time": totals["total_watch_time"],
            "average_watch_time": (
                round(totals["total_watch_time"] / totals["total_views"]) if totals["total_views"] else 0
            ),
            "top_videos": [
                {"video_id": video.id, "title": video.title, "views": video.views, "recent_views": recent}
                for video, recent in top
            ],
        }
