# coachhub/models/coach.py
"""
Coach profile model.

Created alongside a COACH user at registration in PENDING status. Admins
move it through APPROVED, REJECTED and SUSPENDED.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import CoachStatus
from ..database import Base


class Coach(Base):
    __tablename__ = "coaches"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    domain = Column(String(100), nullable=False)
    experience_description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    languages = Column(JSON, nullable=False, default=list)
    hourly_rate = Column(Numeric(12, 2), nullable=True)
    bio = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=CoachStatus.PENDING.value, index=True)
    admin_notes = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(26), ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(26), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    is_frozen = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="coach_profile", foreign_keys=[user_id])
    courses = relationship("Course", back_populates="coach", cascade="all, delete-orphan")
    availability = relationship(
        "CoachAvailability", back_populates="coach", cascade="all, delete-orphan"
    )

    @property
    def is_approved(self) -> bool:
        return self.status == CoachStatus.APPROVED.value

    def __repr__(self) -> str:
        return f"<Coach {self.id} ({self.status})>"
