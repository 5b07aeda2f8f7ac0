# coachhub/services/availability_service.py
"""
Availability Service for the CoachHub platform.

A coach publishes one weekly schedule: for each weekday (0 = Monday) an
active flag and a list of "HH:MM" windows in the coach's own timezone.
Saving replaces the whole schedule.

Saved days start PENDING review and stay bookable. Approving a day marks
it APPROVED and active; rejecting it deactivates the day until the coach
saves a new schedule. Admins get an in-app notice whenever a coach saves.
"""

from datetime import datetime, timezone
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import DAYS_OF_WEEK
from ..core.enums import AvailabilityReviewStatus, ScheduleNotificationType, UserRole
from ..core.exceptions import NotFoundException, ValidationException
from ..models.availability import CoachAvailability
from ..models.coach import Coach
from ..models.user import User
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class AvailabilityService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_availability_repository(db)
        self.coach_repository = RepositoryFactory.create_coach_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.notification_repository = RepositoryFactory.create_schedule_notification_repository(db)
        self.activity_repository = RepositoryFactory.create_admin_activity_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    @staticmethod
    def validate_schedule(days: List[Dict[str, Any]]) -> None:
        """
        Raises:
            ValidationException: Bad weekday, malformed time, empty window,
                overlapping windows or a weekday listed twice
        """
        seen = set()
        for day in days:
            day_of_week = day.get("day_of_week")
            if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
                raise ValidationException(
                    "day_of_week must be between 0 (Monday) and 6 (Sunday)", code="INVALID_DAY_OF_WEEK"
                )
            if day_of_week in seen:
                raise ValidationException(
                    f"{DAYS_OF_WEEK[day_of_week]} is listed more than once", code="DUPLICATE_DAY"
                )
            seen.add(day_of_week)

            windows = []
            for slot in day.get("slots", []):
                start, end = slot.get("start_time", ""), slot.get("end_time", "")
                if not HHMM_PATTERN.match(start) or not HHMM_PATTERN.match(end):
                    raise ValidationException(
                        "Time slots must use HH:MM format", code="INVALID_TIME_FORMAT",
                        details={"start_time": start, "end_time": end},
                    )
                if _minutes(start) >= _minutes(end):
                    raise ValidationException(
                        "Slot start time must be before end time", code="INVALID_TIME_RANGE",
                        details={"start_time": start, "end_time": end},
                    )
                windows.append((_minutes(start), _minutes(end)))

            windows.sort()
            for (_, previous_end), (next_start, _) in zip(windows, windows[1:]):
                if next_start < previous_end:
                    raise ValidationException(
                        f"Overlapping time slots on {DAYS_OF_WEEK[day_of_week]}", code="OVERLAPPING_SLOTS"
                    )

    @BaseService.measure_operation("set_weekly_availability")
    def set_weekly_availability(self, coach: Coach, days: List[Dict[str, Any]]) -> List[CoachAvailability]:
        self.validate_schedule(days)
        with self.transaction():
            created = self.repository.replace_for_coach(coach.id, days)
            coach_name = coach.user.full_name if coach.user is not None else coach.id
            for admin in self.user_repository.list_active_by_role(UserRole.ADMIN.value):
                self.notification_repository.notify(
                    admin.id,
                    ScheduleNotificationType.AVAILABILITY_UPDATED.value,
                    "Coach availability updated",
                    f"{coach_name} updated their weekly availability and it is waiting for review.",
                )
        self.log_operation("availability_saved", coach_id=coach.id, days=len(created))
        return self.repository.get_for_coach(coach.id)

    def get_for_coach(self, coach_id: str) -> List[CoachAvailability]:
        if not self.coach_repository.exists(id=coach_id):
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")
        return self.repository.get_for_coach(coach_id)

    # ------------------------------------------------------------------
    # Admin review
    # ------------------------------------------------------------------

    def list_for_review(
        self,
        *,
        review_status: Optional[str] = None,
        coach_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[CoachAvailability], int]:
        if review_status:
            review_status = AvailabilityReviewStatus(review_status).value
        return self.repository.list_for_review(
            review_status=review_status, coach_id=coach_id, page=page, limit=limit
        )

    def _require_availability(self, availability_id: str) -> CoachAvailability:
        availability = self.repository.get_by_id(availability_id, load_relationships=False)
        if not availability:
            raise NotFoundException("Availability not found", code="AVAILABILITY_NOT_FOUND")
        return availability

    def _notify_coach(self, availability: CoachAvailability, title: str, message: str) -> None:
        if availability.coach is not None:
            self.notification_repository.notify(
                availability.coach.user_id,
                ScheduleNotificationType.AVAILABILITY_UPDATED.value,
                title,
                message,
            )

    @BaseService.measure_operation("approve_availability")
    def approve_availability(
        self, admin: User, availability_id: str, admin_notes: Optional[str] = None
    ) -> CoachAvailability:
        availability = self._require_availability(availability_id)
        day_name = DAYS_OF_WEEK[availability.day_of_week]

        with self.transaction():
            availability.review_status = AvailabilityReviewStatus.APPROVED.value
            availability.is_active = True
            availability.reviewed_at = datetime.now(timezone.utc)
            availability.reviewed_by = admin.id
            availability.rejection_reason = None
            availability.admin_notes = admin_notes
            self.activity_repository.record(
                admin.id,
                "approve_availability",
                "AVAILABILITY",
                availability.id,
                {"admin_notes": admin_notes},
            )
            self._notify_coach(
                availability, "Availability approved", f"Your {day_name} availability was approved."
            )

        self.log_operation("availability_approved", availability_id=availability.id, admin_id=admin.id)
        if availability.coach is not None and availability.coach.user is not None:
            self.notification_service.send_availability_approved(
                availability.coach.user, day_name, admin_notes
            )
        return availability

    @BaseService.measure_operation("reject_availability")
    def reject_availability(
        self, admin: User, availability_id: str, reason: str, admin_notes: Optional[str] = None
    ) -> CoachAvailability:
        """Reject one day of a schedule; the day stops accepting requests."""
        if not reason or not reason.strip():
            raise ValidationException("Rejection reason is required", code="REASON_REQUIRED")
        availability = self._require_availability(availability_id)
        day_name = DAYS_OF_WEEK[availability.day_of_week]

        with self.transaction():
            availability.review_status = AvailabilityReviewStatus.REJECTED.value
            availability.is_active = False
            availability.reviewed_at = datetime.now(timezone.utc)
            availability.reviewed_by = admin.id
            availability.rejection_reason = reason
            availability.admin_notes = admin_notes
            self.activity_repository.record(
                admin.id, "reject_availability", "AVAILABILITY", availability.id,
                {"reason": reason, "admin_notes": admin_notes},
            )
            self._notify_coach(
                availability,
                "Availability needs revision",
                f"Your {day_name} availability was rejected: {reason}",
            )

        self.log_operation("availability_rejected", availability_id=availability.id, admin_id=admin.id)
        if availability.coach is not None and availability.coach.user is not None:
            self.notification_service.send_availability_rejected(
                availability.coach.user, day_name, reason, admin_notes
            )
        return availability
