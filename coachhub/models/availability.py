# coachhub/models/availability.py
"""
Weekly coach availability.

One CoachAvailability row per weekday (0 = Monday) with any number of
TimeSlot windows. Slot times are "HH:MM" wall-clock strings in the coach's
own timezone and are converted to UTC when bookable slots are computed.

Each day is reviewed by an administrator. A saved day starts PENDING and
stays bookable; a rejected day is deactivated until the coach resubmits.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import AvailabilityReviewStatus
from ..database import Base


class CoachAvailability(Base):
    __tablename__ = "coach_availability"
    __table_args__ = (
        UniqueConstraint("coach_id", "day_of_week", name="uq_coach_availability_day"),
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="check_day_of_week_range"),
    )

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    coach_id = Column(String(26), ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    review_status = Column(
        String(20), nullable=False, default=AvailabilityReviewStatus.PENDING.value, index=True
    )
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(26), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    coach = relationship("Coach", back_populates="availability")
    time_slots = relationship(
        "TimeSlot",
        back_populates="availability",
        cascade="all, delete-orphan",
        order_by="TimeSlot.start_time",
    )

    def __repr__(self) -> str:
        return f"<CoachAvailability coach={self.coach_id} day={self.day_of_week}>"


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    availability_id = Column(
        String(26), ForeignKey("coach_availability.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    is_available = Column(Boolean, nullable=False, default=True)

    availability = relationship("CoachAvailability", back_populates="time_slots")
    # Requests outlive a replaced schedule; deleting a slot nulls their time_slot_id
    requests = relationship("SessionRequest", back_populates="time_slot")

    def __repr__(self) -> str:
        return f"<TimeSlot {self.start_time}-{self.end_time}>"
