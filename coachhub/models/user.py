# coachhub/models/user.py
"""
User model for the CoachHub platform.

A single users table backs parents, coaches and admins. The same email may
register once per role, so uniqueness is enforced on (email, role) and
tokens carry the user id rather than the email.
"""

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import UserRole
from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """
    Account record used for authentication and role checks.

    Attributes:
        id: ULID primary key
        email: Login email, unique per role
        hashed_password: Bcrypt hash
        role: ADMIN, COACH or PARENT
        is_verified: Whether the email was confirmed
        is_active: Inactive accounts cannot log in
        login_attempts: Consecutive failed logins since the last success
        locked_until: Set once login_attempts reaches the configured limit
        timezone: IANA timezone used for coach availability
    """

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", "role", name="uq_users_email_role"),)

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.PARENT.value)
    timezone = Column(String(50), nullable=False, default="UTC")

    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    verification_token = Column(String(64), nullable=True, index=True)
    verification_token_expires = Column(DateTime(timezone=True), nullable=True)
    reset_token = Column(String(64), nullable=True, index=True)
    reset_token_expires = Column(DateTime(timezone=True), nullable=True)
    refresh_token = Column(String, nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    coach_profile = relationship(
        "Coach",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        foreign_keys="Coach.user_id",
    )
    children = relationship("Child", back_populates="parent", cascade="all, delete-orphan")
    credit_balance = relationship(
        "CreditBalance", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        logger.debug(f"Creating User with email: {kwargs.get('email')}, role: {kwargs.get('role')}")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_coach(self) -> bool:
        return self.role == UserRole.COACH.value

    @property
    def is_parent(self) -> bool:
        return self.role == UserRole.PARENT.value

    def lock_remaining_minutes(self, now: Optional[datetime] = None) -> int:
        """Minutes until the login lock expires, 0 when not locked."""
        if self.locked_until is None:
            return 0
        now = now or datetime.now(timezone.utc)
        locked_until = self.locked_until
        if locked_until.tzinfo is None:
            locked_until = locked_until.replace(tzinfo=timezone.utc)
        remaining = (locked_until - now).total_seconds()
        if remaining <= 0:
            return 0
        return int(remaining // 60) + (1 if remaining % 60 else 0)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
