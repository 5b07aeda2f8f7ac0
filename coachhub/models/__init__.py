"""
Database models for the CoachHub platform.

The models are organized by functionality:
- Accounts and coach profiles
- Courses, reviews, children and enrollments
- Coaching sessions, weekly availability and booking requests
- Payments and the credit ledger
- Videos and the admin audit trail
"""

from .admin_activity import AdminActivity
from .availability import CoachAvailability, TimeSlot
from .child import Child, Enrollment
from .coach import Coach
from .course import Course, Review
from .credit import CreditBalance, CreditPackage, CreditPurchase, CreditTransaction
from .payment import Payment
from .session import CoachingSession
from .session_request import ScheduleNotification, SessionRequest
from .user import User
from .video import Video, VideoView

__all__ = [
    "AdminActivity",
    "Child",
    "Coach",
    "CoachAvailability",
    "CoachingSession",
    "Course",
    "CreditBalance",
    "CreditPackage",
    "CreditPurchase",
    "CreditTransaction",
    "Enrollment",
    "Payment",
    "Review",
    "ScheduleNotification",
    "SessionRequest",
    "TimeSlot",
    "User",
    "Video",
    "VideoView",
]
