# coachhub/repositories/course_repository.py
"""Course and review queries."""

from decimal import Decimal
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import CourseStatus
from ..core.exceptions import RepositoryException
from ..models.coach import Coach
from ..models.course import Course, Review
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CourseRepository(BaseRepository[Course]):
    def __init__(self, db: Session):
        super().__init__(db, Course)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(Course.coach).joinedload(Coach.user))

    def search(
        self,
        *,
        coach_id: Optional[str] = None,
        public_only: bool = False,
        status: Optional[str] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Course], int]:
        """
        Filtered course listing.

        ``public_only`` restricts to approved, active courses; ``coach_id``
        restricts to one coach's catalogue regardless of status.
        """
        query = self._apply_eager_loading(self.db.query(Course))
        if public_only:
            query = query.filter(
                Course.status == CourseStatus.APPROVED.value, Course.is_active.is_(True)
            )
        if coach_id:
            query = query.filter(Course.coach_id == coach_id)
        if status:
            query = query.filter(Course.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(Course.title).like(pattern),
                    func.lower(Course.description).like(pattern),
                )
            )
        if category:
            query = query.filter(Course.category == category)
        if level:
            query = query.filter(Course.level == level)
        if min_price is not None:
            query = query.filter(Course.price >= min_price)
        if max_price is not None:
            query = query.filter(Course.price <= max_price)
        query = query.order_by(Course.created_at.desc())
        return self._paginate(query, page, limit)

    def count_by_status(self) -> Dict[str, int]:
        try:
            rows = self.db.query(Course.status, func.count(Course.id)).group_by(Course.status).all()
            return {status: count for status, count in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting courses: {str(e)}")
            raise RepositoryException(f"Failed to count courses: {str(e)}")


class ReviewRepository(BaseRepository[Review]):
    def __init__(self, db: Session):
        super().__init__(db, Review)

    def list_for_course(self, course_id: str, page: int = 1, limit: int = 10) -> Tuple[List[Review], int]:
        query = (
            self.db.query(Review)
            .options(joinedload(Review.user))
            .filter(Review.course_id == course_id)
            .order_by(Review.created_at.desc())
        )
        return self._paginate(query, page, limit)

    def get_for_user(self, course_id: str, user_id: str) -> Optional[Review]:
        return self.find_one_by(course_id=course_id, user_id=user_id)

    def average_rating(self, course_id: str) -> Optional[float]:
        value = self._execute_scalar(
            self.db.query(func.avg(Review.rating)).filter(Review.course_id == course_id)
        )
        return float(value) if value is not None else None

    def rating_for_coach(self, coach_id: str) -> Tuple[Optional[float], int]:
        """Average rating and review count across every course a coach teaches."""
        try:
            average, count = (
                self.db.query(func.avg(Review.rating), func.count(Review.id))
                .join(Course, Review.course_id == Course.id)
                .filter(Course.coach_id == coach_id)
                .one()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error rating coach {coach_id}: {str(e)}")
            raise RepositoryException(f"Failed to rate coach: {str(e)}")
        return (float(average) if average is not None else None), int(count)
