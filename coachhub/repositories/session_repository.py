# coachhub/repositories/session_repository.py
"""
Coaching Session Repository for the CoachHub platform.

Holds the overlap query behind booking conflict detection. Sessions are
half-open intervals, so two windows overlap exactly when each one starts
before the other ends.
"""

from datetime import datetime
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import SessionStatus
from ..core.exceptions import RepositoryException
from ..models.coach import Coach
from ..models.session import CoachingSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

LIVE_STATUSES = [status.value for status in SessionStatus.live()]


class SessionRepository(BaseRepository[CoachingSession]):
    def __init__(self, db: Session):
        super().__init__(db, CoachingSession)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(CoachingSession.course),
            joinedload(CoachingSession.coach).joinedload(Coach.user),
            joinedload(CoachingSession.student),
        )

    # Conflict queries

    def get_conflicting_sessions(
        self,
        coach_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> List[CoachingSession]:
        """
        Live sessions for ``coach_id`` overlapping [start_time, end_time).

        Args:
            coach_id: Coach whose calendar is checked
            start_time: Proposed start (UTC)
            end_time: Proposed end (UTC)
            exclude_session_id: Session to ignore, used when rescheduling

        Returns:
            Overlapping sessions ordered by start time
        """
        try:
            query = self.db.query(CoachingSession).filter(
                CoachingSession.coach_id == coach_id,
                CoachingSession.status.in_(LIVE_STATUSES),
                CoachingSession.start_time < end_time,
                CoachingSession.end_time > start_time,
            )
            if exclude_session_id:
                query = query.filter(CoachingSession.id != exclude_session_id)
            return query.order_by(CoachingSession.start_time).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting sessions for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflicting sessions: {str(e)}")

    def get_live_sessions_in_range(
        self, coach_id: str, range_start: datetime, range_end: datetime
    ) -> List[CoachingSession]:
        return self.get_conflicting_sessions(coach_id, range_start, range_end)

    # Listing

    def list_sessions(
        self,
        *,
        coach_id: Optional[str] = None,
        student_id: Optional[str] = None,
        course_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[CoachingSession], int]:
        query = self._filtered(
            coach_id=coach_id,
            student_id=student_id,
            course_id=course_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
        ).order_by(CoachingSession.start_time.desc())
        return self._paginate(query, page, limit)

    def get_in_range(
        self,
        *,
        range_start: datetime,
        range_end: datetime,
        coach_id: Optional[str] = None,
        student_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[CoachingSession]:
        """Sessions overlapping a calendar range, oldest first."""
        query = self._filtered(coach_id=coach_id, student_id=student_id).filter(
            CoachingSession.start_time < range_end,
            CoachingSession.end_time > range_start,
        )
        if statuses:
            query = query.filter(CoachingSession.status.in_(list(statuses)))
        return self._execute_query(query.order_by(CoachingSession.start_time))

    def get_upcoming(
        self,
        now: datetime,
        *,
        coach_id: Optional[str] = None,
        student_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[CoachingSession]:
        query = self._filtered(coach_id=coach_id, student_id=student_id).filter(
            CoachingSession.status == SessionStatus.SCHEDULED.value,
            CoachingSession.start_time >= now,
        )
        return self._execute_query(query.order_by(CoachingSession.start_time).limit(limit))

    def has_live_sessions_for_course(self, course_id: str) -> bool:
        try:
            return (
                self.db.query(CoachingSession.id)
                .filter(
                    CoachingSession.course_id == course_id,
                    CoachingSession.status.in_(LIVE_STATUSES),
                )
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking live sessions: {str(e)}")
            raise RepositoryException(f"Failed to check sessions: {str(e)}")

    def has_completed_session(self, student_id: str, course_id: str) -> bool:
        return self.exists(
            student_id=student_id,
            course_id=course_id,
            status=SessionStatus.COMPLETED.value,
        )

    def count_by_status(self) -> Dict[str, int]:
        try:
            rows = (
                self.db.query(CoachingSession.status, func.count(CoachingSession.id))
                .group_by(CoachingSession.status)
                .all()
            )
            return {status: count for status, count in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting sessions: {str(e)}")
            raise RepositoryException(f"Failed to count sessions: {str(e)}")

    def _filtered(
        self,
        *,
        coach_id: Optional[str] = None,
        student_id: Optional[str] = None,
        course_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Query:
        query = self._apply_eager_loading(self.db.query(CoachingSession))
        if coach_id:
            query = query.filter(CoachingSession.coach_id == coach_id)
        if student_id:
            query = query.filter(CoachingSession.student_id == student_id)
        if course_id:
            query = query.filter(CoachingSession.course_id == course_id)
        if status:
            query = query.filter(CoachingSession.status == status)
        if start_date:
            query = query.filter(CoachingSession.start_time >= start_date)
        if end_date:
            query = query.filter(CoachingSession.start_time < end_date)
        return query
