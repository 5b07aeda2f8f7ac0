# coachhub/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Every factory receives the request-scoped session from ``get_db`` so all
services used by one request share a single unit of work.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.admin_service import AdminService
from ...services.auth_service import AuthService
from ...services.availability_service import AvailabilityService
from ...services.child_service import ChildService
from ...services.conflict_checker import ConflictChecker
from ...services.course_service import CourseService
from ...services.credit_ledger_service import CreditLedgerService
from ...services.email import EmailService
from ...services.notification_service import NotificationService
from ...services.payment_service import StripePaymentService
from ...services.schedule_request_service import ScheduleRequestService
from ...services.session_service import SessionService
from ...services.storage_client import StorageClient, get_storage_client
from ...services.template_service import TemplateService
from ...services.video_service import VideoService
from .database import get_db

logger = logging.getLogger(__name__)


def get_email_service(db: Session = Depends(get_db)) -> EmailService:
    return EmailService(db)


def get_template_service(db: Session = Depends(get_db)) -> TemplateService:
    return TemplateService(db)


def get_notification_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    template_service: TemplateService = Depends(get_template_service),
) -> NotificationService:
    """
    Get notification service instance.

    Args:
        db: Database session
        email_service: Email service for sending emails
        template_service: Renders the Jinja2 email templates

    Returns:
        NotificationService instance
    """
    return NotificationService(db, email_service=email_service, template_service=template_service)


def get_conflict_checker(db: Session = Depends(get_db)) -> ConflictChecker:
    return ConflictChecker(db)


def get_auth_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> AuthService:
    return AuthService(db, notification_service=notification_service)


def get_course_service(db: Session = Depends(get_db)) -> CourseService:
    return CourseService(db)


def get_session_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> SessionService:
    """Get SessionService with the shared conflict checker and notifications."""
    return SessionService(db, notification_service=notification_service, conflict_checker=conflict_checker)


def get_availability_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> AvailabilityService:
    return AvailabilityService(db, notification_service=notification_service)


def get_schedule_request_service(
    db: Session = Depends(get_db),
    session_service: SessionService = Depends(get_session_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> ScheduleRequestService:
    return ScheduleRequestService(
        db, session_service=session_service, notification_service=notification_service
    )


def get_credit_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> CreditLedgerService:
    return CreditLedgerService(db, notification_service=notification_service)


def get_payment_service(
    db: Session = Depends(get_db),
    credit_service: CreditLedgerService = Depends(get_credit_service),
) -> StripePaymentService:
    return StripePaymentService(db, credit_service=credit_service)


def get_admin_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> AdminService:
    return AdminService(db, notification_service=notification_service)


def get_child_service(db: Session = Depends(get_db)) -> ChildService:
    return ChildService(db)


def get_storage() -> StorageClient:
    return get_storage_client()


def get_video_service(
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
) -> VideoService:
    return VideoService(db, storage=storage)
