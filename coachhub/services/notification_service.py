# coachhub/services/notification_service.py
"""
Notification Service for the CoachHub platform.

Renders Jinja2 email templates and hands them to EmailService. Every
public method is fire-and-forget: delivery failures are logged and reported
as ``False`` so that the business operation that triggered the email is
never rolled back because of it.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from jinja2.exceptions import TemplateNotFound
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..models.course import Course
from ..models.session import CoachingSession
from ..models.session_request import SessionRequest
from ..models.user import User
from .base import BaseService
from .email import EmailService
from .email_subjects import EmailSubject
from .template_registry import TemplateRegistry
from .template_service import TemplateService

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """Transactional email notifications."""

    def __init__(
        self,
        db: Optional[Session] = None,
        email_service: Optional[EmailService] = None,
        template_service: Optional[TemplateService] = None,
    ):
        super().__init__(db)
        self.email_service = email_service or EmailService(db)
        self.template_service = template_service or TemplateService(db)

    def _deliver(
        self,
        notification: str,
        to_email: str,
        subject: str,
        template: TemplateRegistry,
        context: Dict[str, Any],
    ) -> bool:
        try:
            html = self.template_service.render_template(template, context=context)
            self.email_service.send_email(to_email=to_email, subject=subject, html_content=html)
            self.log_operation(f"{notification}_sent", to_email=to_email)
            return True
        except ServiceException:
            # Already logged by EmailService
            return False
        except TemplateNotFound as e:
            self.logger.error(f"Missing template for {notification}: {str(e)}")
            return False
        except Exception as e:
            self.logger.error(f"Unexpected error sending {notification} to {to_email}: {str(e)}")
            return False

    # Account

    @BaseService.measure_operation("send_verification_email")
    def send_verification_email(self, user: User, token: str) -> bool:
        return self._deliver(
            "verification_email",
            user.email,
            EmailSubject.verify_email(),
            TemplateRegistry.AUTH_VERIFY_EMAIL,
            {
                "user_name": user.first_name,
                "verification_url": f"{settings.frontend_url}/verify-email/{token}",
                "expires_hours": settings.verification_token_hours,
            },
        )

    @BaseService.measure_operation("send_password_reset_email")
    def send_password_reset_email(self, user: User, token: str) -> bool:
        return self._deliver(
            "password_reset_email",
            user.email,
            EmailSubject.password_reset(),
            TemplateRegistry.AUTH_PASSWORD_RESET,
            {
                "user_name": user.first_name,
                "reset_url": f"{settings.frontend_url}/reset-password/{token}",
                "expires_hours": settings.reset_token_hours,
            },
        )

    # Coach lifecycle

    def send_coach_approved(self, user: User) -> bool:
        return self._deliver(
            "coach_approved",
            user.email,
            EmailSubject.coach_approved(),
            TemplateRegistry.COACH_APPROVED,
            {"user_name": user.first_name},
        )

    def send_coach_rejected(self, user: User, reason: Optional[str]) -> bool:
        return self._deliver(
            "coach_rejected",
            user.email,
            EmailSubject.coach_rejected(),
            TemplateRegistry.COACH_REJECTED,
            {"user_name": user.first_name, "reason": reason},
        )

    def send_coach_suspended(self, user: User, reason: Optional[str]) -> bool:
        return self._deliver(
            "coach_suspended",
            user.email,
            EmailSubject.coach_suspended(),
            TemplateRegistry.COACH_SUSPENDED,
            {"user_name": user.first_name, "reason": reason},
        )

    # Course moderation

    def send_course_approved(self, coach_user: User, course: Course) -> bool:
        return self._deliver(
            "course_approved",
            coach_user.email,
            EmailSubject.course_approved(course.title),
            TemplateRegistry.COURSE_APPROVED,
            {"user_name": coach_user.first_name, "course_title": course.title},
        )

    def send_course_rejected(self, coach_user: User, course: Course, reason: Optional[str]) -> bool:
        return self._deliver(
            "course_rejected",
            coach_user.email,
            EmailSubject.course_rejected(course.title),
            TemplateRegistry.COURSE_REJECTED,
            {"user_name": coach_user.first_name, "course_title": course.title, "reason": reason},
        )

    # Sessions

    def _session_recipients(self, session: CoachingSession) -> List[User]:
        recipients = []
        if session.student is not None:
            recipients.append(session.student)
        if session.coach is not None and session.coach.user is not None:
            recipients.append(session.coach.user)
        return recipients

    @BaseService.measure_operation("send_session_booked")
    def send_session_booked(self, session: CoachingSession) -> int:
        """Notify student and coach. Returns the number of emails delivered."""
        sent = 0
        for user in self._session_recipients(session):
            sent += self._deliver(
                "session_booked",
                user.email,
                EmailSubject.session_booked(session.title),
                TemplateRegistry.SESSION_BOOKED,
                {
                    "user_name": user.first_name,
                    "session_title": session.title,
                    "start_time": session.start_time,
                    "duration": session.duration,
                    "meeting_url": session.meeting_url,
                },
            )
        return sent

    def send_session_rescheduled(
        self, session: CoachingSession, old_start_time: datetime, reason: Optional[str]
    ) -> int:
        sent = 0
        for user in self._session_recipients(session):
            sent += self._deliver(
                "session_rescheduled",
                user.email,
                EmailSubject.session_rescheduled(session.title),
                TemplateRegistry.SESSION_RESCHEDULED,
                {
                    "user_name": user.first_name,
                    "session_title": session.title,
                    "old_start_time": old_start_time,
                    "start_time": session.start_time,
                    "reason": reason,
                },
            )
        return sent

    def send_session_cancelled(self, session: CoachingSession, reason: Optional[str]) -> int:
        sent = 0
        for user in self._session_recipients(session):
            sent += self._deliver(
                "session_cancelled",
                user.email,
                EmailSubject.session_cancelled(session.title),
                TemplateRegistry.SESSION_CANCELLED,
                {
                    "user_name": user.first_name,
                    "session_title": session.title,
                    "start_time": session.start_time,
                    "reason": reason,
                },
            )
        return sent

    # Booking requests

    def _request_recipients(self, request: SessionRequest) -> List[User]:
        recipients = []
        if request.student is not None:
            recipients.append(request.student)
        if request.coach is not None and request.coach.user is not None:
            recipients.append(request.coach.user)
        return recipients

    @BaseService.measure_operation("send_session_approved")
    def send_session_approved(self, request: SessionRequest, session: CoachingSession) -> int:
        sent = 0
        for user in self._request_recipients(request):
            sent += self._deliver(
                "session_approved",
                user.email,
                EmailSubject.session_approved(request.title),
                TemplateRegistry.SESSION_APPROVED,
                {
                    "user_name": user.first_name,
                    "session_title": request.title,
                    "start_time": session.start_time,
                    "duration": session.duration,
                    "meeting_url": session.meeting_url,
                    "admin_notes": request.admin_notes,
                },
            )
        return sent

    @BaseService.measure_operation("send_session_rejected")
    def send_session_rejected(self, request: SessionRequest) -> int:
        sent = 0
        for user in self._request_recipients(request):
            sent += self._deliver(
                "session_rejected",
                user.email,
                EmailSubject.session_rejected(request.title),
                TemplateRegistry.SESSION_REJECTED,
                {
                    "user_name": user.first_name,
                    "session_title": request.title,
                    "start_time": request.start_time,
                    "reason": request.rejection_reason,
                    "admin_notes": request.admin_notes,
                },
            )
        return sent

    # Availability review

    def send_availability_approved(self, coach_user: User, day_name: str, admin_notes: Optional[str]) -> bool:
        return self._deliver(
            "availability_approved",
            coach_user.email,
            EmailSubject.availability_approved(),
            TemplateRegistry.AVAILABILITY_APPROVED,
            {"user_name": coach_user.first_name, "day_name": day_name, "admin_notes": admin_notes},
        )

    def send_availability_rejected(
        self, coach_user: User, day_name: str, reason: str, admin_notes: Optional[str]
    ) -> bool:
        return self._deliver(
            "availability_rejected",
            coach_user.email,
            EmailSubject.availability_rejected(),
            TemplateRegistry.AVAILABILITY_REJECTED,
            {
                "user_name": coach_user.first_name,
                "day_name": day_name,
                "reason": reason,
                "admin_notes": admin_notes,
            },
        )

    # Credits

    def send_enrollment_notice(
        self, coach_user: User, parent: User, course: Course, child_names: List[str]
    ) -> bool:
        return self._deliver(
            "enrollment_notice",
            coach_user.email,
            EmailSubject.enrollment_notice(course.title),
            TemplateRegistry.ENROLLMENT_NOTICE,
            {
                "user_name": coach_user.first_name,
                "parent_name": parent.full_name,
                "course_title": course.title,
                "child_names": child_names,
                "child_count": len(child_names),
            },
        )
