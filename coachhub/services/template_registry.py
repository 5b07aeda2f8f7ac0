"""
Template registry for strongly-typed access to Jinja templates.

Use with TemplateService to avoid stringly-typed paths.
"""

from enum import Enum


class TemplateRegistry(str, Enum):
    # Auth / Account
    AUTH_VERIFY_EMAIL = "email/auth/verify_email.html"
    AUTH_PASSWORD_RESET = "email/auth/password_reset.html"

    # Coach lifecycle
    COACH_APPROVED = "email/coach/approved.html"
    COACH_REJECTED = "email/coach/rejected.html"
    COACH_SUSPENDED = "email/coach/suspended.html"

    # Course moderation
    COURSE_APPROVED = "email/course/approved.html"
    COURSE_REJECTED = "email/course/rejected.html"

    # Sessions
    SESSION_BOOKED = "email/session/booked.html"
    SESSION_RESCHEDULED = "email/session/rescheduled.html"
    SESSION_CANCELLED = "email/session/cancelled.html"
    SESSION_APPROVED = "email/session/approved.html"
    SESSION_REJECTED = "email/session/rejected.html"

    # Availability review
    AVAILABILITY_APPROVED = "email/availability/approved.html"
    AVAILABILITY_REJECTED = "email/availability/rejected.html"

    # Credits
    ENROLLMENT_NOTICE = "email/credits/enrollment_notice.html"
