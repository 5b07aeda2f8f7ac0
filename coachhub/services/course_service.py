# coachhub/services/course_service.py
"""
Course catalog service.

Coaches create courses that start PENDING and inactive; an administrator
approves them (see AdminService). Public listings only show approved,
active courses.
"""

from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import CourseStatus
from ..core.exceptions import ConflictException, NotFoundException, ValidationException
from ..models.coach import Coach
from ..models.course import Course, Review
from ..models.user import User
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "category",
    "level",
    "duration",
    "price",
    "currency",
    "credit_cost",
)


class CourseService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_course_repository(db)
        self.review_repository = RepositoryFactory.create_review_repository(db)
        self.coach_repository = RepositoryFactory.create_coach_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)

    def _coach_for(self, user: User) -> Optional[Coach]:
        if not user.is_coach:
            return None
        return self.coach_repository.get_by_user_id(user.id)

    def _require_owned(self, user: User, course_id: str) -> Course:
        course = self.repository.get_by_id(course_id)
        coach = self._coach_for(user)
        if not course or coach is None or course.coach_id != coach.id:
            raise NotFoundException("Course not found or access denied", code="COURSE_NOT_FOUND")
        return course

    @BaseService.measure_operation("list_courses")
    def list_courses(
        self,
        user: Optional[User] = None,
        *,
        mine: bool = False,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Course], int]:
        """
        Catalog listing.

        With ``mine`` a coach sees every course they own whatever its
        status; everyone else sees approved, active courses only.
        """
        coach_id = None
        public_only = True
        if mine:
            coach = self._coach_for(user) if user is not None else None
            if coach is None:
                raise ValidationException("Only coaches can list their own courses", code="NOT_A_COACH")
            coach_id = coach.id
            public_only = False
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationException("min_price cannot exceed max_price", code="INVALID_PRICE_RANGE")

        return self.repository.search(
            coach_id=coach_id,
            public_only=public_only,
            search=search,
            category=category,
            level=level,
            min_price=min_price,
            max_price=max_price,
            page=page,
            limit=limit,
        )

    def get_course(self, course_id: str, user: Optional[User] = None) -> Course:
        """A course is visible to everyone once bookable, otherwise to its coach and admins."""
        course = self.repository.get_by_id(course_id)
        if not course:
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        if course.is_bookable:
            return course
        if user is not None:
            if user.is_admin:
                return course
            coach = self._coach_for(user)
            if coach is not None and coach.id == course.coach_id:
                return course
        raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")

    def average_rating(self, course_id: str) -> Optional[float]:
        return self.review_repository.average_rating(course_id)

    def _public_profile(self, coach: Optional[Coach]) -> Dict[str, Any]:
        if coach is None or not coach.is_approved:
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")
        courses, _ = self.repository.search(coach_id=coach.id, public_only=True, page=1, limit=100)
        rating, review_count = self.review_repository.rating_for_coach(coach.id)
        return {
            "coach": coach,
            "courses": courses,
            "average_rating": rating,
            "total_reviews": review_count,
        }

    @BaseService.measure_operation("get_coach_profile")
    def get_coach_profile(self, coach_id: str) -> Dict[str, Any]:
        """
        Public profile of an approved coach with their bookable courses.

        Accepts either the coach profile id or the coach's user id.
        """
        coach = self.coach_repository.get_by_id(coach_id) or self.coach_repository.get_by_user_id(coach_id)
        return self._public_profile(coach)

    @BaseService.measure_operation("get_coach_profile_for_course")
    def get_coach_profile_for_course(self, course_id: str) -> Dict[str, Any]:
        course = self.get_course(course_id)
        return self._public_profile(course.coach)

    @BaseService.measure_operation("create_course")
    def create_course(self, coach: Coach, data: Dict[str, Any]) -> Course:
        with self.transaction():
            course = self.repository.create(
                coach_id=coach.id,
                **{field: data[field] for field in EDITABLE_FIELDS if data.get(field) is not None},
                status=CourseStatus.PENDING.value,
                is_active=False,
            )
        self.logger.info(f"Course created: {course.title} by coach {coach.id}")
        return self.repository.get_by_id(course.id) or course

    @BaseService.measure_operation("update_course")
    def update_course(self, user: User, course_id: str, data: Dict[str, Any]) -> Course:
        """Owner edits; a rejected course goes back to PENDING for review."""
        course = self._require_owned(user, course_id)
        with self.transaction():
            for field in EDITABLE_FIELDS:
                if data.get(field) is not None:
                    setattr(course, field, data[field])
            if course.status == CourseStatus.REJECTED.value:
                course.status = CourseStatus.PENDING.value
            self.repository.flush()
        self.logger.info(f"Course updated: {course.title} by user {user.id}")
        return course

    @BaseService.measure_operation("delete_course")
    def delete_course(self, user: User, course_id: str) -> None:
        course = self._require_owned(user, course_id)
        if self.session_repository.has_live_sessions_for_course(course.id):
            raise ValidationException(
                "Cannot delete course with active sessions", code="COURSE_HAS_ACTIVE_SESSIONS"
            )
        with self.transaction():
            self.repository.delete(course.id)
        self.logger.info(f"Course deleted: {course.id} by user {user.id}")

    def toggle_status(self, user: User, course_id: str) -> Course:
        """Flip ``is_active``. Only approved courses can be activated."""
        course = self._require_owned(user, course_id)
        if not course.is_active and course.status != CourseStatus.APPROVED.value:
            raise ValidationException(
                "Only approved courses can be activated", code="COURSE_NOT_APPROVED"
            )
        with self.transaction():
            course.is_active = not course.is_active
        self.logger.info(
            f"Course status toggled: {course.title} - {'Active' if course.is_active else 'Inactive'}"
        )
        return course

    # Reviews

    def list_reviews(self, course_id: str, page: int = 1, limit: int = 10) -> Tuple[List[Review], int]:
        if not self.repository.exists(id=course_id):
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        return self.review_repository.list_for_course(course_id, page=page, limit=limit)

    @BaseService.measure_operation("add_review")
    def add_review(self, user: User, course_id: str, rating: int, comment: Optional[str] = None) -> Review:
        """
        Raises:
            ValidationException: No completed session in this course
            ConflictException: The user already reviewed the course
        """
        if not self.repository.exists(id=course_id):
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        if not self.session_repository.has_completed_session(user.id, course_id):
            raise ValidationException(
                "You must complete a session before reviewing this course", code="REVIEW_NOT_ALLOWED"
            )
        if self.review_repository.get_for_user(course_id, user.id):
            raise ConflictException("You have already reviewed this course", code="ALREADY_REVIEWED")

        with self.transaction():
            review = self.review_repository.create(
                course_id=course_id, user_id=user.id, rating=rating, comment=comment
            )
        self.logger.info(f"Review added for course {course_id} by user {user.id}")
        return review
