# coachhub/services/email.py
"""
Email Service for the CoachHub platform.

Sends email through the Resend API. Callers that treat email as
fire-and-forget go through NotificationService, which logs failures
instead of raising them.
"""

import logging
import re
from typing import Any, Dict, Optional

import resend
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from .base import BaseService

logger = logging.getLogger(__name__)


class EmailService(BaseService):
    """Service for sending emails using Resend API."""

    def __init__(self, db: Optional[Session] = None):
        super().__init__(db)

        if settings.resend_api_key:
            resend.api_key = settings.resend_api_key
        self.from_email = settings.from_email
        self.enabled = settings.email_enabled

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML content to plain text for better deliverability"""
        text = re.sub(r"<[^>]+>", "", html_content)
        text = re.sub(r"\s+", " ", text)
        return text.strip()

    @BaseService.measure_operation("send_email")
    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        from_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a generic email using Resend.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            text_content: Optional plain text version
            from_email: Optional sender (defaults to settings)

        Returns:
            Dict containing the Resend API response

        Raises:
            ServiceException: If email sending fails
        """
        if not self.enabled:
            self.logger.info(f"Email disabled; skipping '{subject}' to {to_email}")
            return {"id": None, "skipped": True}

        try:
            email_data = {
                "from": from_email or self.from_email,
                "to": to_email,
                "subject": subject,
                "html": html_content,
                "text": text_content or self._html_to_text(html_content),
            }

            response = resend.Emails.send(email_data)

            self.logger.info(f"Email sent successfully to {to_email} - Subject: {subject}")
            self.log_operation("email_sent", to_email=to_email, subject=subject)
            return dict(response) if response else {}

        except Exception as e:
            error_msg = str(e) or "Unknown error"
            self.logger.error(f"Failed to send email to {to_email}: {error_msg}")
            self.log_operation("email_failed", to_email=to_email, subject=subject, error=error_msg)
            raise ServiceException(f"Email sending failed: {error_msg}")

    def validate_email_config(self) -> bool:
        if not settings.resend_api_key:
            raise ServiceException("Resend API key not configured")
        if not self.from_email:
            raise ServiceException("From email address not configured")
        return True

    def get_send_stats(self) -> Dict[str, Any]:
        """Email sending statistics from this service's operation metrics."""
        send_metrics = self.get_metrics().get("send_email", {})
        sent = send_metrics.get("success_count", 0)
        failed = send_metrics.get("failure_count", 0)
        total = sent + failed
        return {
            "emails_sent": sent,
            "emails_failed": failed,
            "avg_send_time": send_metrics.get("avg_time", 0),
            "success_rate": sent / total if total else 0.0,
        }
