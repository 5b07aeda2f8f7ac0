# coachhub/core/enums.py
"""
Core enums for the CoachHub platform.

Values match the strings persisted in the database so they can be
compared directly against model columns.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account roles. An email may exist once per role."""

    ADMIN = "ADMIN"
    COACH = "COACH"
    PARENT = "PARENT"


class CoachStatus(str, Enum):
    """Coach application lifecycle."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class CourseLevel(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class CourseStatus(str, Enum):
    """Moderation status of a course."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SessionStatus(str, Enum):
    """Coaching session lifecycle."""

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @classmethod
    def live(cls) -> tuple["SessionStatus", ...]:
        """Statuses that occupy the coach's calendar."""
        return (cls.SCHEDULED, cls.IN_PROGRESS)

    @classmethod
    def terminal(cls) -> tuple["SessionStatus", ...]:
        return (cls.COMPLETED, cls.CANCELLED, cls.NO_SHOW)


class SessionType(str, Enum):
    ONE_ON_ONE = "ONE_ON_ONE"
    GROUP = "GROUP"
    ASSESSMENT = "ASSESSMENT"


class SessionRequestStatus(str, Enum):
    """Booking request awaiting an administrator's decision."""

    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class AvailabilityReviewStatus(str, Enum):
    """Admin review of one day of a coach's weekly schedule."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ScheduleNotificationType(str, Enum):
    SESSION_SCHEDULED = "SESSION_SCHEDULED"
    SESSION_APPROVED = "SESSION_APPROVED"
    SESSION_REJECTED = "SESSION_REJECTED"
    SESSION_CANCELLED = "SESSION_CANCELLED"
    AVAILABILITY_UPDATED = "AVAILABILITY_UPDATED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class CreditTransactionType(str, Enum):
    """
    Ledger entry kinds.

    Credit kinds increase the balance, debit kinds decrease it. Callers
    always pass an unsigned magnitude; the ledger applies the sign.
    """

    PURCHASE = "PURCHASE"
    EARNED = "EARNED"
    SPENT = "SPENT"
    REFUND = "REFUND"
    BONUS = "BONUS"
    EXPIRED = "EXPIRED"
    TRANSFER = "TRANSFER"

    @property
    def is_credit(self) -> bool:
        return self in _CREDIT_TYPES

    @property
    def is_debit(self) -> bool:
        return not self.is_credit


_CREDIT_TYPES = frozenset(
    {
        CreditTransactionType.PURCHASE,
        CreditTransactionType.EARNED,
        CreditTransactionType.BONUS,
        CreditTransactionType.REFUND,
    }
)


class CreditPurchaseStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def open(cls) -> tuple["EnrollmentStatus", ...]:
        """Enrollments that still hold a seat."""
        return (cls.ACTIVE, cls.IN_PROGRESS)


class ReferenceType(str, Enum):
    """Entities a ledger entry can point back to."""

    COURSE = "COURSE"
    PURCHASE = "PURCHASE"
    SESSION = "SESSION"
    ADMIN = "ADMIN"
