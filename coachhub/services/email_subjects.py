"""
Centralized email subject builders.

Keep subjects in code (not templates) for versioning and logging.
Bodies remain in Jinja templates.
"""

from ..core.constants import BRAND_NAME


class EmailSubject:
    """Utility class with static builders for email subjects."""

    @staticmethod
    def verify_email() -> str:
        return f"Verify your {BRAND_NAME} email address"

    @staticmethod
    def password_reset() -> str:
        return f"Reset Your {BRAND_NAME} Password"

    @staticmethod
    def coach_approved() -> str:
        return f"Your {BRAND_NAME} coach application was approved"

    @staticmethod
    def coach_rejected() -> str:
        return f"Update on your {BRAND_NAME} coach application"

    @staticmethod
    def coach_suspended() -> str:
        return f"Your {BRAND_NAME} coach account has been suspended"

    @staticmethod
    def course_approved(title: str) -> str:
        return f"Course approved: {title}"

    @staticmethod
    def course_rejected(title: str) -> str:
        return f"Course not approved: {title}"

    @staticmethod
    def session_booked(title: str) -> str:
        return f"Session booked: {title}"

    @staticmethod
    def session_rescheduled(title: str) -> str:
        return f"Session rescheduled: {title}"

    @staticmethod
    def session_cancelled(title: str) -> str:
        return f"Session cancelled: {title}"

    @staticmethod
    def session_approved(title: str) -> str:
        return f"Session approved: {title}"

    @staticmethod
    def session_rejected(title: str) -> str:
        return f"Session request not approved: {title}"

    @staticmethod
    def availability_approved() -> str:
        return "Your availability has been approved"

    @staticmethod
    def availability_rejected() -> str:
        return "Your availability needs revision"

    @staticmethod
    def enrollment_notice(course_title: str) -> str:
        return f"New enrollment in {course_title}"
