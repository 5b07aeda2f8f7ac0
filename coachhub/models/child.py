# coachhub/models/child.py
"""Children managed by parent accounts and their course enrollments."""

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import EnrollmentStatus
from ..database import Base


class Child(Base):
    __tablename__ = "children"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    parent_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(20), nullable=True)
    current_grade = Column(String(20), nullable=True)
    school_name = Column(String(200), nullable=True)
    special_needs = Column(Text, nullable=True)
    interests = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    parent = relationship("User", back_populates="children")
    enrollments = relationship("Enrollment", back_populates="child", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Child {self.full_name}>"


class Enrollment(Base):
    """One child in one course, optionally paid with credits."""

    __tablename__ = "enrollments"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    child_id = Column(String(26), ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=EnrollmentStatus.ACTIVE.value)
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now())
    credits_spent = Column(Numeric(12, 2), nullable=False, default=0)
    credit_transaction_id = Column(String(26), ForeignKey("credit_transactions.id"), nullable=True)

    child = relationship("Child", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    def __repr__(self) -> str:
        return f"<Enrollment child={self.child_id} course={self.course_id} ({self.status})>"
