# coachhub/repositories/video_repository.py
"""Video catalogue and view tracking queries."""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.video import Video, VideoView
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class VideoRepository(BaseRepository[Video]):
    def __init__(self, db: Session):
        super().__init__(db, Video)
        self.logger = logging.getLogger(__name__)

    def list_for_coach(
        self,
        coach_id: str,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        is_public: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Video], int]:
        query = self.db.query(Video).filter(Video.coach_id == coach_id)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(func.lower(Video.title).like(pattern), func.lower(Video.description).like(pattern))
            )
        if category:
            query = query.filter(Video.category == category)
        if is_public is not None:
            query = query.filter(Video.is_public.is_(is_public))
        return self._paginate(query.order_by(Video.created_at.desc()), page, limit)


class VideoViewRepository(BaseRepository[VideoView]):
    def __init__(self, db: Session):
        super().__init__(db, VideoView)

    def get_for_user(self, video_id: str, user_id: str) -> Optional[VideoView]:
        return self.find_one_by(video_id=video_id, user_id=user_id)

    def stats_since(self, video_id: str, since: datetime) -> Dict[str, Any]:
        try:
            row = (
                self.db.query(
                    func.count(VideoView.id),
                    func.coalesce(func.sum(VideoView.watch_time), 0),
                    func.coalesce(func.avg(VideoView.progress), 0),
                )
                .filter(VideoView.video_id == video_id, VideoView.last_watched_at >= since)
                .one()
            )
            return {
                "unique_viewers": int(row[0]),
                "total_watch_time": int(row[1]),
                "average_progress": round(float(row[2]), 2),
            }
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing video stats: {str(e)}")
            raise RepositoryException(f"Failed to compute video stats: {str(e)}")

    def coach_stats_since(self, coach_id: str, since: datetime) -> Dict[str, Any]:
        """View totals across every video owned by the coach."""
        try:
            count, watch_time = (
                self.db.query(
                    func.count(VideoView.id),
                    func.coalesce(func.sum(VideoView.watch_time), 0),
                )
                .join(Video, Video.id == VideoView.video_id)
                .filter(Video.coach_id == coach_id, VideoView.last_watched_at >= since)
                .one()
            )
            return {"total_views": int(count), "total_watch_time": int(watch_time)}
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing coach video stats: {str(e)}")
            raise RepositoryException(f"Failed to compute video stats: {str(e)}")

    def top_videos(self, coach_id: str, since: datetime, limit: int = 10) -> List[Tuple[Video, int]]:
        """The coach's most viewed videos with their view records since ``since``."""
        try:
            recent = (
                self.db.query(VideoView.video_id, func.count(VideoView.id).label("recent"))
                .filter(VideoView.last_watched_at >= since)
                .group_by(VideoView.video_id)
                .subquery()
            )
            rows = (
                self.db.query(Video, func.coalesce(recent.c.recent, 0))
                .outerjoin(recent, recent.c.video_id == Video.id)
                .filter(Video.coach_id == coach_id)
                .order_by(Video.views.desc(), Video.created_at.desc())
                .limit(limit)
                .all()
            )
            return [(video, int(recent_views)) for video, recent_views in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading top videos: {str(e)}")
            raise RepositoryException(f"Failed to load top videos: {str(e)}")
