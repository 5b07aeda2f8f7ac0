# coachhub/repositories/session_request_repository.py
"""Booking requests awaiting approval and the schedule notifications they raise."""

from datetime import datetime
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import SessionRequestStatus
from ..core.exceptions import RepositoryException
from ..models.coach import Coach
from ..models.session_request import ScheduleNotification, SessionRequest
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SessionRequestRepository(BaseRepository[SessionRequest]):
    def __init__(self, db: Session):
        super().__init__(db, SessionRequest)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(SessionRequest.course),
            joinedload(SessionRequest.coach).joinedload(Coach.user),
            joinedload(SessionRequest.student),
            joinedload(SessionRequest.time_slot),
        )

    def get_pending_overlapping(
        self,
        coach_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_request_id: Optional[str] = None,
    ) -> List[SessionRequest]:
        """Pending requests for ``coach_id`` overlapping [start_time, end_time)."""
        try:
            query = self.db.query(SessionRequest).filter(
                SessionRequest.coach_id == coach_id,
                SessionRequest.status == SessionRequestStatus.PENDING_APPROVAL.value,
                SessionRequest.start_time < end_time,
                SessionRequest.end_time > start_time,
            )
            if exclude_request_id:
                query = query.filter(SessionRequest.id != exclude_request_id)
            return query.order_by(SessionRequest.start_time).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking pending requests: {str(e)}")
            raise RepositoryException(f"Failed to check pending requests: {str(e)}")

    def list_requests(
        self,
        *,
        coach_id: Optional[str] = None,
        student_id: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[SessionRequest], int]:
        query = self._apply_eager_loading(self.db.query(SessionRequest))
        if coach_id:
            query = query.filter(SessionRequest.coach_id == coach_id)
        if student_id:
            query = query.filter(SessionRequest.student_id == student_id)
        if status:
            query = query.filter(SessionRequest.status == status)
        return self._paginate(query.order_by(SessionRequest.start_time), page, limit)


class ScheduleNotificationRepository(BaseRepository[ScheduleNotification]):
    def __init__(self, db: Session):
        super().__init__(db, ScheduleNotification)
        self.logger = logging.getLogger(__name__)

    def notify(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        request_id: Optional[str] = None,
    ) -> ScheduleNotification:
        return self.create(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            request_id=request_id,
        )

    def list_for_user(
        self, user_id: str, *, is_read: Optional[bool] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[ScheduleNotification], int]:
        query = self.db.query(ScheduleNotification).filter(ScheduleNotification.user_id == user_id)
        if is_read is not None:
            query = query.filter(ScheduleNotification.is_read.is_(is_read))
        query = query.order_by(ScheduleNotification.created_at.desc(), ScheduleNotification.id.desc())
        return self._paginate(query, page, limit)

    def mark_all_read(self, user_id: str) -> int:
        try:
            updated = (
                self.db.query(ScheduleNotification)
                .filter(ScheduleNotification.user_id == user_id, ScheduleNotification.is_read.is_(False))
                .update({ScheduleNotification.is_read: True}, synchronize_session=False)
            )
            self.db.flush()
            return updated
        except SQLAlchemyError as e:
            self.logger.error(f"Error marking notifications read for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to update notifications: {str(e)}")
