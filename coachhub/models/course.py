# coachhub/models/course.py
"""
Course and review models.

A course belongs to a coach, starts PENDING and inactive, and becomes
bookable once an admin approves it. ``credit_cost`` is charged per child
when a parent enrolls with credits.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import CourseLevel, CourseStatus
from ..database import Base


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("duration > 0", name="check_course_duration_positive"),
        CheckConstraint("price >= 0", name="check_course_price_non_negative"),
        CheckConstraint("credit_cost >= 0", name="check_course_credit_cost_non_negative"),
    )

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    coach_id = Column(String(26), ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, index=True)
    level = Column(String(20), nullable=False, default=CourseLevel.BEGINNER.value)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="usd")
    credit_cost = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=CourseStatus.PENDING.value, index=True)
    is_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    coach = relationship("Coach", back_populates="courses")
    reviews = relationship("Review", back_populates="course", cascade="all, delete-orphan")
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_active) and self.status == CourseStatus.APPROVED.value

    def __repr__(self) -> str:
        return f"<Course {self.title} ({self.status})>"


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("course_id", "user_id", name="uq_reviews_course_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_review_rating_range"),
    )

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    course = relationship("Course", back_populates="reviews")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<Review course={self.course_id} rating={self.rating}>"
