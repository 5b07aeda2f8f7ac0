# coachhub/services/child_service.py
"""Children managed by parent accounts, and their course enrollments."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..core.constants import MAX_CHILD_AGE_YEARS
from ..core.enums import EnrollmentStatus, SessionStatus
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import ensure_utc, period_start
from ..models.child import Child, Enrollment
from ..models.user import User
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

PROGRESS_PERIODS = ("week", "month", "year")

CHILD_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "gender",
    "current_grade",
    "school_name",
    "special_needs",
    "interests",
)


def age_on(date_of_birth: date, today: date) -> int:
    """Whole years between ``date_of_birth`` and ``today``."""
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


class ChildService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_child_repository(db)
        self.enrollment_repository = RepositoryFactory.create_enrollment_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)

    @staticmethod
    def _validate_birth_date(date_of_birth: date) -> None:
        today = date.today()
        if date_of_birth > today:
            raise ValidationException("Date of birth cannot be in the future", code="INVALID_DATE_OF_BIRTH")
        if age_on(date_of_birth, today) >= MAX_CHILD_AGE_YEARS:
            raise ValidationException(
                f"Child must be under {MAX_CHILD_AGE_YEARS} years old", code="CHILD_TOO_OLD"
            )

    def _require_child(self, parent: User, child_id: str) -> Child:
        child = self.repository.get_for_parent(child_id, parent.id)
        if not child:
            raise NotFoundException("Child not found", code="CHILD_NOT_FOUND")
        return child

    def list_children(self, parent: User) -> List[Child]:
        return self.repository.list_for_parent(parent.id)

    def get_child(self, parent: User, child_id: str) -> Child:
        return self._require_child(parent, child_id)

    @BaseService.measure_operation("add_child")
    def add_child(self, parent: User, data: Dict[str, Any]) -> Child:
        """
        Raises:
            ValidationException: Child is 18 or older, or born in the future
            ValidationException: Same name and birth date already registered
        """
        self._validate_birth_date(data["date_of_birth"])
        if self.repository.find_duplicate(
            parent.id, data["first_name"], data["last_name"], data["date_of_birth"]
        ):
            raise ValidationException("A child with this information already exists", code="DUPLICATE_CHILD")

        with self.transaction():
            child = self.repository.create(
                parent_id=parent.id,
                **{field: data.get(field) for field in CHILD_FIELDS if data.get(field) is not None},
            )
        self.logger.info(f"Child added: {child.id} for parent {parent.id}")
        return child

    @BaseService.measure_operation("update_child")
    def update_child(self, parent: User, child_id: str, data: Dict[str, Any]) -> Child:
        child = self._require_child(parent, child_id)
        updates = {field: data[field] for field in CHILD_FIELDS if data.get(field) is not None}

        if "date_of_birth" in updates:
            self._validate_birth_date(updates["date_of_birth"])
        if {"first_name", "last_name", "date_of_birth"} & updates.keys():
            if self.repository.find_duplicate(
                parent.id,
                updates.get("first_name", child.first_name),
                updates.get("last_name", child.last_name),
                updates.get("date_of_birth", child.date_of_birth),
                exclude_child_id=child.id,
            ):
                raise ValidationException(
                    "A child with this information already exists", code="DUPLICATE_CHILD"
                )

        with self.transaction():
            for field, value in updates.items():
                setattr(child, field, value)
        return child

    def remove_child(self, parent: User, child_id: str) -> None:
        child = self._require_child(parent, child_id)
        if self.enrollment_repository.has_open_enrollments(child.id):
            raise ValidationException(
                "Cannot remove child with active course enrollments. Please cancel enrollments first.",
                code="CHILD_HAS_ACTIVE_ENROLLMENTS",
            )
        with self.transaction():
            self.repository.delete(child.id)
        self.logger.info(f"Child removed: {child_id} by parent {parent.id}")

    def list_enrollments(self, parent: User, child_id: str) -> List[Enrollment]:
        child = self._require_child(parent, child_id)
        return self.enrollment_repository.list_for_child(child.id)

    @BaseService.measure_operation("child_progress")
    def get_progress(self, parent: User, child_id: str, period: str = "month") -> Dict[str, Any]:
        """
        Enrollment and session summary for one child.

        Sessions are booked by the parent account, so session figures cover
        the parent's sessions in the courses this child is enrolled in.
        """
        if period not in PROGRESS_PERIODS:
            raise ValidationException(
                f"period must be one of {', '.join(PROGRESS_PERIODS)}", code="INVALID_PERIOD"
            )
        child = self._require_child(parent, child_id)
        enrollments = self.enrollment_repository.list_for_child(child.id)
        course_ids = {enrollment.course_id for enrollment in enrollments}

        now = datetime.now(timezone.utc)
        since = period_start(period, now)
        sessions = [
            session
            for session in self.session_repository.get_in_range(
                range_start=since, range_end=now + timedelta(days=365), student_id=parent.id
            )
            if session.course_id in course_ids and ensure_utc(session.start_time) >= since
        ]
        completed = [s for s in sessions if s.status == SessionStatus.COMPLETED.value]

        by_status: Dict[str, int] = {status.value: 0 for status in EnrollmentStatus}
        for enrollment in enrollments:
            by_status[enrollment.status] = by_status.get(enrollment.status, 0) + 1

        return {
            "child_id": child.id,
            "period": period,
            "since": since,
            "enrollments": {"total": len(enrollments), "by_status": by_status},
            "credits_spent": sum((Decimal(e.credits_spent or 0) for e in enrollments), Decimal("0")),
            "total_sessions": len(sessions),
            "completed_sessions": len(completed),
            "completion_rate": round(len(completed) / len(sessions) * 100, 1) if sessions else 0.0,
            "total_hours": round(sum(s.duration or 0 for s in completed) / 60, 2),
        }
