# coachhub/services/schedule_request_service.py
"""
Admin-moderated booking requests.

A parent picks one of the coach's weekly time slots and a date. The request
holds that window while PENDING_APPROVAL: no other request for the coach
may overlap it. An administrator then decides:

    PENDING_APPROVAL -> APPROVED  (a SCHEDULED session is created)
    PENDING_APPROVAL -> REJECTED  (window freed, reason required)
    PENDING_APPROVAL -> CANCELLED (requester withdraws, window freed)

Every step leaves an in-app schedule notification for the people involved.
Approval and rejection emails are fire-and-forget.
"""

from datetime import date, datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import ScheduleNotificationType, SessionRequestStatus
from ..core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import local_to_utc, parse_hhmm, utc_now
from ..models.session_request import ScheduleNotification, SessionRequest
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService
from .session_service import SessionService

logger = logging.getLogger(__name__)


class ScheduleRequestService(BaseService):
    def __init__(
        self,
        db: Session,
        session_service: Optional[SessionService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_session_request_repository(db)
        self.notification_repository = RepositoryFactory.create_schedule_notification_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.coach_repository = RepositoryFactory.create_coach_repository(db)
        self.activity_repository = RepositoryFactory.create_admin_activity_repository(db)
        self.notification_service = notification_service or NotificationService(db)
        self.session_service = session_service or SessionService(
            db, notification_service=self.notification_service
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_request(self, request_id: str) -> SessionRequest:
        request = self.repository.get_by_id(request_id)
        if not request:
            raise NotFoundException("Session request not found", code="SESSION_REQUEST_NOT_FOUND")
        return request

    def _is_request_coach(self, user: User, request: SessionRequest) -> bool:
        return user.is_coach and request.coach is not None and request.coach.user_id == user.id

    def _require_pending(self, request: SessionRequest) -> None:
        if not request.is_pending:
            raise ValidationException(
                "Session request is not pending approval",
                code="INVALID_REQUEST_STATUS",
                details={"current_status": request.status},
            )

    def _notify_participants(
        self, request: SessionRequest, notification_type: ScheduleNotificationType, title: str, message: str
    ) -> None:
        recipients = [request.student_id]
        if request.coach is not None:
            recipients.append(request.coach.user_id)
        for user_id in recipients:
            self.notification_repository.notify(user_id, notification_type.value, title, message, request.id)

    @staticmethod
    def _when(request: SessionRequest) -> str:
        start = request.start_time
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        return start.strftime("%Y-%m-%d %H:%M UTC")

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_session_request")
    def create_request(
        self,
        actor: User,
        *,
        time_slot_id: str,
        course_id: str,
        day: date,
        start_time: Optional[str] = None,
        notes: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> SessionRequest:
        """
        Ask for a session inside one of the coach's weekly time slots.

        Args:
            actor: A parent requesting for themselves, or an admin naming
                ``student_id``
            time_slot_id: Weekly slot the session falls in
            course_id: Approved, active course taught by the slot's coach
            day: Calendar date; its weekday must match the slot's day
            start_time: "HH:MM" inside the slot, defaults to the slot start
            notes: Shown to the coach and the reviewing admin

        Raises:
            NotFoundException: Unknown slot, course or student
            ValidationException: Slot inactive, wrong weekday, window outside
                the slot or in the past, course taught by another coach
            BookingConflictException: The window overlaps a live session or
                another pending request for the coach
        """
        slot = self.availability_repository.get_time_slot(time_slot_id)
        if slot is None:
            raise NotFoundException("Time slot not found", code="TIME_SLOT_NOT_FOUND")
        availability = slot.availability
        if not availability.is_active or not slot.is_available:
            raise ValidationException("Time slot is not available", code="SLOT_NOT_AVAILABLE")
        if day.weekday() != availability.day_of_week:
            raise ValidationException(
                "The date does not fall on the time slot's weekday",
                code="DAY_MISMATCH",
                details={"date": day.isoformat(), "day_of_week": availability.day_of_week},
            )

        course = self.session_service.get_bookable_course(course_id)
        if course.coach_id != availability.coach_id:
            raise ValidationException(
                "The course is not taught by this time slot's coach", code="COURSE_COACH_MISMATCH"
            )
        student = self.session_service.resolve_student(actor, student_id)

        tz_name = course.coach.user.timezone if course.coach.user is not None else None
        window_start = local_to_utc(day, parse_hhmm(slot.start_time), tz_name)
        window_end = local_to_utc(day, parse_hhmm(slot.end_time), tz_name)
        start = local_to_utc(day, parse_hhmm(start_time), tz_name) if start_time else window_start
        end = start + timedelta(minutes=course.duration)
        if start < window_start or end > window_end:
            raise ValidationException(
                "The session does not fit inside the time slot",
                code="OUTSIDE_TIME_SLOT",
                details={"slot": f"{slot.start_time}-{slot.end_time}", "duration": course.duration},
            )
        if start <= utc_now():
            raise ValidationException("Sessions must be requested in the future", code="START_IN_PAST")

        with self.transaction():
            self.coach_repository.lock_for_booking(course.coach_id)
            self.session_service.conflict_checker.assert_no_conflict(course.coach_id, start, end)
            pending = self.repository.get_pending_overlapping(course.coach_id, start, end)
            if pending:
                prometheus_metrics.inc_booking_conflict("pending_request")
                raise BookingConflictException(
                    "This time slot already has a pending request",
                    details={"pending_request_ids": [p.id for p in pending]},
                )
            request = self.repository.create(
                time_slot_id=slot.id,
                coach_id=course.coach_id,
                student_id=student.id,
                course_id=course.id,
                title=course.title,
                notes=notes,
                start_time=start,
                end_time=end,
                duration=course.duration,
                status=SessionRequestStatus.PENDING_APPROVAL.value,
            )
            request = self._require_request(request.id)
            when = self._when(request)
            self.notification_repository.notify(
                course.coach.user_id,
                ScheduleNotificationType.SESSION_SCHEDULED.value,
                "New session request",
                f"{student.full_name} requested {course.title} on {when}.",
                request.id,
            )
            self.notification_repository.notify(
                student.id,
                ScheduleNotificationType.SESSION_SCHEDULED.value,
                "Session request submitted",
                f"Your request for {course.title} on {when} is pending approval.",
                request.id,
            )

        self.log_operation(
            "session_requested", request_id=request.id, coach_id=request.coach_id, student_id=student.id
        )
        return request

    def get_request(self, user: User, request_id: str) -> SessionRequest:
        request = self._require_request(request_id)
        if user.is_admin or request.student_id == user.id or self._is_request_coach(user, request):
            return request
        raise ForbiddenException("You do not have access to this session request")

    def list_requests(
        self,
        user: User,
        *,
        status: Optional[str] = None,
        coach_id: Optional[str] = None,
        student_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[SessionRequest], int]:
        """Admins see every request; coaches their own calendar; parents their own requests."""
        if status:
            status = SessionRequestStatus(status).value
        if not user.is_admin:
            if user.is_coach:
                coach = self.coach_repository.get_by_user_id(user.id)
                coach_id = coach.id if coach is not None else user.id
                student_id = None
            else:
                coach_id = None
                student_id = user.id
        return self.repository.list_requests(
            coach_id=coach_id, student_id=student_id, status=status, page=page, limit=limit
        )

    @BaseService.measure_operation("approve_session_request")
    def approve_request(
        self, admin: User, request_id: str, admin_notes: Optional[str] = None
    ) -> SessionRequest:
        """
        Approve a pending request and create its session.

        Raises:
            ValidationException: The request is no longer pending
            BookingConflictException: A session was booked into the window
                since the request was made; the request stays pending
        """
        request = self._require_request(request_id)
        self._require_pending(request)

        with self.transaction():
            session = self.session_service.create_from_request(request)
            request.status = SessionRequestStatus.APPROVED.value
            request.session_id = session.id
            request.approved_at = datetime.now(timezone.utc)
            request.approved_by = admin.id
            request.admin_notes = admin_notes
            self.activity_repository.record(
                admin.id, "approve_session_request", "SESSION_REQUEST", request.id,
                {"session_id": session.id, "admin_notes": admin_notes},
            )
            self._notify_participants(
                request,
                ScheduleNotificationType.SESSION_APPROVED,
                "Session approved",
                f"{request.title} on {self._when(request)} is confirmed.",
            )

        self.log_operation("session_request_approved", request_id=request.id, session_id=session.id)
        self.notification_service.send_session_approved(request, session)
        return self._require_request(request.id)

    @BaseService.measure_operation("reject_session_request")
    def reject_request(
        self, admin: User, request_id: str, reason: str, admin_notes: Optional[str] = None
    ) -> SessionRequest:
        """Reject a pending request; its window becomes requestable again."""
        if not reason or not reason.strip():
            raise ValidationException("Rejection reason is required", code="REASON_REQUIRED")
        request = self._require_request(request_id)
        self._require_pending(request)

        with self.transaction():
            request.status = SessionRequestStatus.REJECTED.value
            request.rejected_at = datetime.now(timezone.utc)
            request.rejected_by = admin.id
            request.rejection_reason = reason
            request.admin_notes = admin_notes
            self.activity_repository.record(
                admin.id, "reject_session_request", "SESSION_REQUEST", request.id,
                {"reason": reason, "admin_notes": admin_notes},
            )
            self._notify_participants(
                request,
                ScheduleNotificationType.SESSION_REJECTED,
                "Session request rejected",
                f"{request.title} on {self._when(request)} was not approved: {reason}",
            )

        self.log_operation("session_request_rejected", request_id=request.id, admin_id=admin.id)
        self.notification_service.send_session_rejected(request)
        return request

    @BaseService.measure_operation("cancel_session_request")
    def cancel_request(self, user: User, request_id: str) -> SessionRequest:
        """The requester (or an admin) withdraws a pending request."""
        request = self._require_request(request_id)
        if not user.is_admin and request.student_id != user.id:
            raise ForbiddenException("Only the requester can cancel this session request")
        self._require_pending(request)

        with self.transaction():
            request.status = SessionRequestStatus.CANCELLED.value
            if request.coach is not None:
                self.notification_repository.notify(
                    request.coach.user_id,
                    ScheduleNotificationType.SESSION_CANCELLED.value,
                    "Session request withdrawn",
                    f"The request for {request.title} on {self._when(request)} was withdrawn.",
                    request.id,
                )

        self.log_operation("session_request_cancelled", request_id=request.id, user_id=user.id)
        return request

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def list_notifications(
        self, user: User, *, is_read: Optional[bool] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[ScheduleNotification], int]:
        return self.notification_repository.list_for_user(user.id, is_read=is_read, page=page, limit=limit)

    def mark_notification_read(self, user: User, notification_id: str) -> ScheduleNotification:
        notification = self.notification_repository.get_by_id(notification_id, load_relationships=False)
        if not notification:
            raise NotFoundException("Notification not found", code="NOTIFICATION_NOT_FOUND")
        if notification.user_id != user.id:
            raise ForbiddenException("You do not have access to this notification")
        with self.transaction():
            notification.is_read = True
        return notification

    def mark_all_notifications_read(self, user: User) -> Dict[str, Any]:
        with self.transaction():
            updated = self.notification_repository.mark_all_read(user.id)
        self.log_operation("schedule_notifications_read", user_id=user.id, updated=updated)
        return {"updated": updated}
