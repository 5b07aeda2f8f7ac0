# coachhub/services/admin_service.py
"""
Admin Service for the CoachHub platform.

Coach moderation:
    PENDING -> APPROVED | REJECTED
    APPROVED -> SUSPENDED (user deactivated)
    SUSPENDED -> APPROVED (user reactivated)

Course moderation:
    approve -> APPROVED and active
    reject  -> REJECTED and inactive

Every moderation action is written to the admin activity log in the same
transaction as the change. Notification emails go out afterwards and never
fail the request.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import CoachStatus, CourseStatus
from ..core.exceptions import NotFoundException, ValidationException
from ..models.admin_activity import AdminActivity
from ..models.coach import Coach
from ..models.course import Course
from ..models.user import User
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class AdminService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.coach_repository = RepositoryFactory.create_coach_repository(db)
        self.course_repository = RepositoryFactory.create_course_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.credit_balance_repository = RepositoryFactory.create_credit_balance_repository(db)
        self.activity_repository = RepositoryFactory.create_admin_activity_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    @BaseService.measure_operation("admin_dashboard_stats")
    def dashboard_stats(self) -> Dict[str, Any]:
        users = self.user_repository.count_by_role()
        coaches = self.coach_repository.count_by_status()
        courses = self.course_repository.count_by_status()
        sessions = self.session_repository.count_by_status()
        credits = self.credit_balance_repository.totals()
        return {
            "users": {"total": sum(users.values()), "by_role": users},
            "coaches": {
                "total": sum(coaches.values()),
                "pending": coaches.get(CoachStatus.PENDING.value, 0),
                "by_status": coaches,
            },
            "courses": {
                "total": sum(courses.values()),
                "pending": courses.get(CourseStatus.PENDING.value, 0),
                "by_status": courses,
            },
            "sessions": {"total": sum(sessions.values()), "by_status": sessions},
            "revenue": self.payment_repository.total_revenue(),
            "credits": credits,
        }

    def list_activities(
        self,
        *,
        action: Optional[str] = None,
        target_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[AdminActivity], int]:
        return self.activity_repository.list_activities(
            action=action, target_type=target_type, page=page, limit=limit
        )

    # ------------------------------------------------------------------
    # Coaches
    # ------------------------------------------------------------------

    def list_coaches(
        self,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Coach], int]:
        if status:
            status = CoachStatus(status).value
        return self.coach_repository.list_coaches(status=status, search=search, page=page, limit=limit)

    def _require_coach(self, coach_id: str) -> Coach:
        coach = self.coach_repository.get_by_id(coach_id)
        if not coach:
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")
        return coach

    def get_coach_details(self, coach_id: str) -> Dict[str, Any]:
        coach = self._require_coach(coach_id)
        courses, course_total = self.course_repository.search(coach_id=coach.id, page=1, limit=100)
        sessions, session_total = self.session_repository.list_sessions(coach_id=coach.id, page=1, limit=1)
        return {
            "coach": coach,
            "courses": courses,
            "course_count": course_total,
            "session_count": session_total,
        }

    def _require_status(self, coach: Coach, expected: CoachStatus, message: str) -> None:
        if coach.status != expected.value:
            raise ValidationException(
                message,
                code="INVALID_COACH_STATUS",
                details={"current_status": coach.status, "required_status": expected.value},
            )

    @BaseService.measure_operation("approve_coach")
    def approve_coach(self, admin: User, coach_id: str, admin_notes: Optional[str] = None) -> Coach:
        coach = self._require_coach(coach_id)
        self._require_status(coach, CoachStatus.PENDING, f"Coach is already {coach.status.lower()}")

        with self.transaction():
            coach.status = CoachStatus.APPROVED.value
            coach.approved_at = datetime.now(timezone.utc)
            coach.approved_by = admin.id
            coach.admin_notes = admin_notes
            coach.rejected_at = None
            coach.rejected_by = None
            coach.rejection_reason = None
            self.activity_repository.record(
                admin.id, "approve_coach", "COACH", coach.id, {"admin_notes": admin_notes}
            )

        self.log_operation("coach_approved", coach_id=coach.id, admin_id=admin.id)
        self.notification_service.send_coach_approved(coach.user)
        return coach

    @BaseService.measure_operation("reject_coach")
    def reject_coach(
        self, admin: User, coach_id: str, reason: str, admin_notes: Optional[str] = None
    ) -> Coach:
        coach = self._require_coach(coach_id)
        self._require_status(coach, CoachStatus.PENDING, f"Coach is already {coach.status.lower()}")

        with self.transaction():
            coach.status = CoachStatus.REJECTED.value
            coach.rejected_at = datetime.now(timezone.utc)
            coach.rejected_by = admin.id
            coach.rejection_reason = reason
            coach.admin_notes = admin_notes
            self.activity_repository.record(
                admin.id, "reject_coach", "COACH", coach.id, {"reason": reason, "admin_notes": admin_notes}
            )

        self.log_operation("coach_rejected", coach_id=coach.id, admin_id=admin.id)
        self.notification_service.send_coach_rejected(coach.user, reason)
        return coach

    @BaseService.measure_operation("suspend_coach")
    def suspend_coach(
        self,
        admin: User,
        coach_id: str,
        reason: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> Coach:
        """Suspend an approved coach and deactivate their user account."""
        coach = self._require_coach(coach_id)
        self._require_status(coach, CoachStatus.APPROVED, "Only approved coaches can be suspended")

        with self.transaction():
            coach.status = CoachStatus.SUSPENDED.value
            coach.admin_notes = admin_notes
            coach.user.is_active = False
            coach.user.refresh_token = None
            self.activity_repository.record(
                admin.id, "suspend_coach", "COACH", coach.id, {"reason": reason, "admin_notes": admin_notes}
            )

        self.log_operation("coach_suspended", coach_id=coach.id, admin_id=admin.id)
        self.notification_service.send_coach_suspended(coach.user, reason)
        return coach

    @BaseService.measure_operation("reactivate_coach")
    def reactivate_coach(self, admin: User, coach_id: str, admin_notes: Optional[str] = None) -> Coach:
        coach = self._require_coach(coach_id)
        self._require_status(coach, CoachStatus.SUSPENDED, "Coach is not suspended")

        with self.transaction():
            coach.status = CoachStatus.APPROVED.value
            coach.admin_notes = admin_notes
            coach.user.is_active = True
            self.activity_repository.record(
                admin.id, "reactivate_coach", "COACH", coach.id, {"admin_notes": admin_notes}
            )

        self.log_operation("coach_reactivated", coach_id=coach.id, admin_id=admin.id)
        return coach

    def update_coach_notes(self, admin: User, coach_id: str, admin_notes: Optional[str]) -> Coach:
        coach = self._require_coach(coach_id)
        with self.transaction():
            coach.admin_notes = admin_notes
            self.activity_repository.record(admin.id, "update_coach_notes", "COACH", coach.id, {})
        return coach

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def list_courses(
        self,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Course], int]:
        if status:
            status = CourseStatus(status).value
        return self.course_repository.search(
            status=status, search=search, category=category, page=page, limit=limit
        )

    def get_course_details(self, course_id: str) -> Course:
        course = self.course_repository.get_by_id(course_id)
        if not course:
            raise NotFoundException("Course not found", code="COURSE_NOT_FOUND")
        return course

    @BaseService.measure_operation("approve_course")
    def approve_course(self, admin: User, course_id: str, admin_notes: Optional[str] = None) -> Course:
        course = self.get_course_details(course_id)
        if course.status == CourseStatus.APPROVED.value:
            raise ValidationException("Course is already approved", code="INVALID_COURSE_STATUS")

        with self.transaction():
            course.status = CourseStatus.APPROVED.value
            course.is_active = True
            self.activity_repository.record(
                admin.id, "approve_course", "COURSE", course.id, {"admin_notes": admin_notes}
            )

        self.log_operation("course_approved", course_id=course.id, admin_id=admin.id)
        if course.coach is not None and course.coach.user is not None:
            self.notification_service.send_course_approved(course.coach.user, course)
        return course

    @BaseService.measure_operation("reject_course")
    def reject_course(self, admin: User, course_id: str, reason: Optional[str] = None) -> Course:
        course = self.get_course_details(course_id)
        if course.status == CourseStatus.REJECTED.value:
            raise ValidationException("Course is already rejected", code="INVALID_COURSE_STATUS")

        with self.transaction():
            course.status = CourseStatus.REJECTED.value
            course.is_active = False
            self.activity_repository.record(
                admin.id, "reject_course", "COURSE", course.id, {"reason": reason}
            )

        self.log_operation("course_rejected", course_id=course.id, admin_id=admin.id)
        if course.coach is not None and course.coach.user is not None:
            self.notification_service.send_course_rejected(course.coach.user, course, reason)
        return course
