# coachhub/models/session_request.py
"""
Admin-moderated booking requests and the in-app schedule notifications
they produce.

A parent asks for a window inside one of the coach's weekly time slots.
The request holds that window while PENDING_APPROVAL; approving it creates
a SCHEDULED CoachingSession, rejecting or cancelling it frees the window.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import SessionRequestStatus
from ..database import Base


class SessionRequest(Base):
    """
    Status flow:
        PENDING_APPROVAL -> APPROVED (session created)
        PENDING_APPROVAL -> REJECTED | CANCELLED
    """

    __tablename__ = "session_requests"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_session_request_time_order"),
    )

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    time_slot_id = Column(
        String(26), ForeignKey("time_slots.id", ondelete="SET NULL"), nullable=True, index=True
    )
    coach_id = Column(String(26), ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(26), ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(200), nullable=False)
    notes = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration = Column(Integer, nullable=False)  # minutes

    status = Column(
        String(20), nullable=False, default=SessionRequestStatus.PENDING_APPROVAL.value, index=True
    )
    admin_notes = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(26), ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(26), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    time_slot = relationship("TimeSlot", back_populates="requests")
    coach = relationship("Coach")
    student = relationship("User", foreign_keys=[student_id])
    course = relationship("Course")
    session = relationship("CoachingSession")

    @property
    def is_pending(self) -> bool:
        return self.status == SessionRequestStatus.PENDING_APPROVAL.value

    def __repr__(self) -> str:
        return f"<SessionRequest {self.id} {self.start_time}-{self.end_time} ({self.status})>"


Index(
    "ix_session_requests_coach_window",
    SessionRequest.coach_id,
    SessionRequest.start_time,
    SessionRequest.end_time,
)


class ScheduleNotification(Base):
    __tablename__ = "schedule_notifications"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(
        String(26), ForeignKey("session_requests.id", ondelete="CASCADE"), nullable=True, index=True
    )
    type = Column(String(30), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    request = relationship("SessionRequest")

    def __repr__(self) -> str:
        return f"<ScheduleNotification {self.type} user={self.user_id} read={self.is_read}>"
