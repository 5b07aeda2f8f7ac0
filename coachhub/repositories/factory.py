# coachhub/repositories/factory.py
"""
Repository Factory for the CoachHub platform.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .admin_activity_repository import AdminActivityRepository
    from .availability_repository import AvailabilityRepository
    from .child_repository import ChildRepository, EnrollmentRepository
    from .coach_repository import CoachRepository
    from .course_repository import CourseRepository, ReviewRepository
    from .credit_repository import (
        CreditBalanceRepository,
        CreditPackageRepository,
        CreditPurchaseRepository,
        CreditTransactionRepository,
    )
    from .payment_repository import PaymentRepository
    from .session_repository import SessionRepository
    from .session_request_repository import ScheduleNotificationRepository, SessionRequestRepository
    from .user_repository import UserRepository
    from .video_repository import VideoRepository, VideoViewRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_coach_repository(db: Session) -> "CoachRepository":
        from .coach_repository import CoachRepository

        return CoachRepository(db)

    @staticmethod
    def create_course_repository(db: Session) -> "CourseRepository":
        from .course_repository import CourseRepository

        return CourseRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        from .course_repository import ReviewRepository

        return ReviewRepository(db)

    @staticmethod
    def create_session_repository(db: Session) -> "SessionRepository":
        """Create repository for coaching sessions and conflict queries."""
        from .session_repository import SessionRepository

        return SessionRepository(db)

    @staticmethod
    def create_session_request_repository(db: Session) -> "SessionRequestRepository":
        from .session_request_repository import SessionRequestRepository

        return SessionRequestRepository(db)

    @staticmethod
    def create_schedule_notification_repository(db: Session) -> "ScheduleNotificationRepository":
        from .session_request_repository import ScheduleNotificationRepository

        return ScheduleNotificationRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_credit_balance_repository(db: Session) -> "CreditBalanceRepository":
        from .credit_repository import CreditBalanceRepository

        return CreditBalanceRepository(db)

    @staticmethod
    def create_credit_transaction_repository(db: Session) -> "CreditTransactionRepository":
        from .credit_repository import CreditTransactionRepository

        return CreditTransactionRepository(db)

    @staticmethod
    def create_credit_package_repository(db: Session) -> "CreditPackageRepository":
        from .credit_repository import CreditPackageRepository

        return CreditPackageRepository(db)

    @staticmethod
    def create_credit_purchase_repository(db: Session) -> "CreditPurchaseRepository":
        from .credit_repository import CreditPurchaseRepository

        return CreditPurchaseRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_child_repository(db: Session) -> "ChildRepository":
        from .child_repository import ChildRepository

        return ChildRepository(db)

    @staticmethod
    def create_enrollment_repository(db: Session) -> "EnrollmentRepository":
        from .child_repository import EnrollmentRepository

        return EnrollmentRepository(db)

    @staticmethod
    def create_video_repository(db: Session) -> "VideoRepository":
        from .video_repository import VideoRepository

        return VideoRepository(db)

    @staticmethod
    def create_video_view_repository(db: Session) -> "VideoViewRepository":
        from .video_repository import VideoViewRepository

        return VideoViewRepository(db)

    @staticmethod
    def create_admin_activity_repository(db: Session) -> "AdminActivityRepository":
        from .admin_activity_repository import AdminActivityRepository

        return AdminActivityRepository(db)
