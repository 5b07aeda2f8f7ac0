# coachhub/models/session.py
"""
Coaching session model.

Sessions store their own UTC start and end instants and are treated as
half-open intervals [start_time, end_time). Two live sessions (SCHEDULED or
IN_PROGRESS) for the same coach may never overlap. The application checks
this before every write; on PostgreSQL an exclusion constraint enforces it
for concurrent writers as well.
"""

import logging

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import SessionStatus, SessionType
from ..database import Base

logger = logging.getLogger(__name__)

NO_OVERLAP_CONSTRAINT = "sessions_no_overlap_per_coach"


class CoachingSession(Base):
    """
    A scheduled meeting between a coach and a student for a course.

    Status flow:
        SCHEDULED -> IN_PROGRESS -> COMPLETED
        SCHEDULED | IN_PROGRESS -> CANCELLED
        SCHEDULED -> NO_SHOW
    """

    __tablename__ = "sessions"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_session_time_order"),
        CheckConstraint(
            "status IN ('SCHEDULED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="ck_sessions_status",
        ),
    )

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    coach_id = Column(String(26), ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    session_type = Column(String(20), nullable=False, default=SessionType.ONE_ON_ONE.value)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration = Column(Integer, nullable=False)  # minutes

    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value)
    meeting_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    recording_url = Column(String(500), nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    course = relationship("Course")
    coach = relationship("Coach")
    student = relationship("User", foreign_keys=[student_id])

    @property
    def is_live(self) -> bool:
        return self.status in {s.value for s in SessionStatus.live()}

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in SessionStatus.terminal()}

    def to_conflict_dict(self) -> dict:
        return {
            "session_id": self.id,
            "title": self.title,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
        }

    def __repr__(self) -> str:
        return f"<CoachingSession {self.id} {self.start_time}-{self.end_time} ({self.status})>"


Index("ix_sessions_coach_window", CoachingSession.coach_id, CoachingSession.start_time, CoachingSession.end_time)


event.listen(
    CoachingSession.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    CoachingSession.__table__,
    "after_create",
    DDL(
        f"""
        ALTER TABLE sessions
          ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT}
          EXCLUDE USING gist (
            coach_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
          )
          WHERE (status IN ('SCHEDULED', 'IN_PROGRESS'))
        """
    ).execute_if(dialect="postgresql"),
)
