# coachhub/services/auth_service.py
"""
Authentication Service for the CoachHub platform.

Handles registration of parents and coaches, login with lockout after
repeated failures, token refresh, email verification and password reset.
An email address may hold one account per role, so login accepts an
optional role to pick the account when several exist.
"""

from dataclasses import dataclass
from datetime import timedelta
import logging
from typing import Any, Dict, List, Optional

from jwt import PyJWTError
from sqlalchemy.orm import Session

from ..auth import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_token,
    get_password_hash,
    verify_password,
)
from ..core.config import settings
from ..core.enums import CoachStatus, UserRole
from ..core.exceptions import (
    AccountLockedException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, utc_now
from ..models.user import User
from ..repositories import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"

COACH_STATUS_MESSAGES = {
    CoachStatus.PENDING.value: "Your coach application is pending approval",
    CoachStatus.REJECTED.value: "Your coach application was rejected",
    CoachStatus.SUSPENDED.value: "Your coach account has been suspended",
}


@dataclass
class AuthResult:
    user: User
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthService(BaseService):
    """Service for handling authentication operations."""

    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.coach_repository = RepositoryFactory.create_coach_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _create_user(self, data: Dict[str, Any], role: UserRole) -> User:
        email = self.user_repository.normalize_email(data["email"])
        if self.user_repository.get_by_email_and_role(email, role.value):
            raise ConflictException(
                f"An account with this email already exists for role {role.value}",
                code="EMAIL_ALREADY_REGISTERED",
            )
        return self.user_repository.create(
            email=email,
            hashed_password=get_password_hash(data["password"]),
            first_name=data["first_name"].strip(),
            last_name=data["last_name"].strip(),
            phone=data.get("phone"),
            timezone=data.get("timezone") or "UTC",
            role=role.value,
            verification_token=generate_token(),
            verification_token_expires=utc_now() + timedelta(hours=settings.verification_token_hours),
        )

    @BaseService.measure_operation("register_parent")
    def register_parent(self, data: Dict[str, Any]) -> User:
        """
        Register a parent account and email a verification link.

        Raises:
            ConflictException: A parent account already uses this email
        """
        with self.transaction():
            user = self._create_user(data, UserRole.PARENT)

        self.logger.info(f"Parent registered: {user.email}")
        self.notification_service.send_verification_email(user, user.verification_token)
        return user

    @BaseService.measure_operation("register_coach")
    def register_coach(self, data: Dict[str, Any]) -> User:
        """Register a coach account with a PENDING profile awaiting admin approval."""
        with self.transaction():
            user = self._create_user(data, UserRole.COACH)
            self.coach_repository.create(
                user_id=user.id,
                domain=data["domain"],
                experience_description=data.get("experience_description"),
                address=data.get("address"),
                languages=data.get("languages") or [],
                hourly_rate=data.get("hourly_rate"),
                bio=data.get("bio"),
                status=CoachStatus.PENDING.value,
            )

        self.logger.info(f"Coach registered: {user.email} (pending approval)")
        self.notification_service.send_verification_email(user, user.verification_token)
        return user

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def _resolve_account(self, email: str, role: Optional[str], allowed_roles: List[str]) -> User:
        if role:
            if role not in allowed_roles:
                raise UnauthorizedException(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")
            user = self.user_repository.get_by_email_and_role(email, role)
            if user is None:
                raise UnauthorizedException(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")
            return user

        accounts = [u for u in self.user_repository.find_by_email(email) if u.role in allowed_roles]
        if not accounts:
            raise UnauthorizedException(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")
        if len(accounts) > 1:
            raise ValidationException(
                "Multiple accounts use this email; specify a role",
                code="ROLE_REQUIRED",
                details={"roles": [u.role for u in accounts]},
            )
        return accounts[0]

    def _record_failed_attempt(self, user: User) -> bool:
        """Count a failed password. Returns True when the account became locked."""
        with self.transaction():
            user.login_attempts = (user.login_attempts or 0) + 1
            locked = user.login_attempts >= settings.max_login_attempts
            if locked:
                user.locked_until = utc_now() + timedelta(minutes=settings.account_lock_minutes)
                user.login_attempts = 0
        if locked:
            self.logger.warning(f"Account locked after repeated failed logins: {user.email} ({user.role})")
        return locked

    def _issue_tokens(self, user: User) -> AuthResult:
        claims = {"sub": user.id, "role": user.role}
        access_token = create_access_token(claims)
        refresh_token = create_refresh_token({"sub": user.id})
        user.refresh_token = refresh_token
        return AuthResult(user=user, access_token=access_token, refresh_token=refresh_token)

    def _authenticate(self, email: str, password: str, role: Optional[str], allowed_roles: List[str]) -> AuthResult:
        user = self._resolve_account(email, role, allowed_roles)

        now = utc_now()
        if user.locked_until is not None and ensure_utc(user.locked_until) > now:
            raise AccountLockedException(user.lock_remaining_minutes(now))

        if not verify_password(password, user.hashed_password):
            if self._record_failed_attempt(user):
                raise AccountLockedException(settings.account_lock_minutes)
            raise UnauthorizedException(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

        if not user.is_active:
            raise ForbiddenException("Account is deactivated", code="ACCOUNT_INACTIVE")

        if user.is_coach:
            coach = self.coach_repository.get_by_user_id(user.id)
            if coach is None or coach.status != CoachStatus.APPROVED.value:
                status_value = coach.status if coach is not None else None
                raise ForbiddenException(
                    COACH_STATUS_MESSAGES.get(status_value, "Coach account is not approved"),
                    code="COACH_NOT_APPROVED",
                    details={"status": status_value},
                )

        with self.transaction():
            user.login_attempts = 0
            user.locked_until = None
            user.last_login = now
            result = self._issue_tokens(user)

        self.logger.info(f"User logged in: {user.email} ({user.role})")
        return result

    @BaseService.measure_operation("login")
    def login(self, email: str, password: str, role: Optional[str] = None) -> AuthResult:
        """
        Authenticate a parent or coach.

        Raises:
            UnauthorizedException: Unknown account or wrong password
            AccountLockedException: Too many failed attempts
            ForbiddenException: Account deactivated or coach not approved
        """
        return self._authenticate(email, password, role, [UserRole.PARENT.value, UserRole.COACH.value])

    @BaseService.measure_operation("admin_login")
    def admin_login(self, email: str, password: str) -> AuthResult:
        return self._authenticate(email, password, UserRole.ADMIN.value, [UserRole.ADMIN.value])

    def logout(self, user: User) -> None:
        with self.transaction():
            user.refresh_token = None
        self.logger.info(f"User logged out: {user.id}")

    @BaseService.measure_operation("refresh_tokens")
    def refresh(self, refresh_token: str) -> AuthResult:
        """
        Exchange a refresh token for a new token pair.

        Only the most recently issued refresh token is accepted; using it
        rotates it.
        """
        try:
            payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        except PyJWTError:
            raise UnauthorizedException("Invalid refresh token", code="INVALID_REFRESH_TOKEN")

        user = self.user_repository.get_by_id(payload["sub"], load_relationships=False)
        if user is None or user.refresh_token != refresh_token:
            raise UnauthorizedException("Invalid refresh token", code="INVALID_REFRESH_TOKEN")
        if not user.is_active:
            raise ForbiddenException("Account is deactivated", code="ACCOUNT_INACTIVE")

        with self.transaction():
            result = self._issue_tokens(user)
        return result

    # ------------------------------------------------------------------
    # Email verification and password reset
    # ------------------------------------------------------------------

    @BaseService.measure_operation("verify_email")
    def verify_email(self, token: str) -> User:
        user = self.user_repository.get_by_verification_token(token)
        if user is None:
            raise ValidationException("Invalid verification token", code="INVALID_TOKEN")
        if user.verification_token_expires and ensure_utc(user.verification_token_expires) < utc_now():
            raise ValidationException("Verification token has expired", code="TOKEN_EXPIRED")

        with self.transaction():
            user.is_verified = True
            user.verification_token = None
            user.verification_token_expires = None
        self.logger.info(f"Email verified: {user.email} ({user.role})")
        return user

    def resend_verification(self, email: str, role: Optional[str] = None) -> None:
        """Issue a fresh verification token to unverified accounts with this email."""
        accounts = self.user_repository.find_by_email(email)
        targets = [u for u in accounts if not u.is_verified and (role is None or u.role == role)]
        if not targets:
            self.logger.info("Verification resend requested with no pending account")
            return

        with self.transaction():
            for user in targets:
                user.verification_token = generate_token()
                user.verification_token_expires = utc_now() + timedelta(hours=settings.verification_token_hours)
        for user in targets:
            self.notification_service.send_verification_email(user, user.verification_token)

    @BaseService.measure_operation("forgot_password")
    def forgot_password(self, email: str, role: Optional[str] = None) -> None:
        """Email a reset link. Silent when no account matches."""
        accounts = [u for u in self.user_repository.find_by_email(email) if role is None or u.role == role]
        if not accounts:
            self.logger.info("Password reset requested for unknown email")
            return

        with self.transaction():
            for user in accounts:
                user.reset_token = generate_token()
                user.reset_token_expires = utc_now() + timedelta(hours=settings.reset_token_hours)
        for user in accounts:
            self.notification_service.send_password_reset_email(user, user.reset_token)

    @BaseService.measure_operation("reset_password")
    def reset_password(self, token: str, new_password: str) -> User:
        """Set a new password, clearing the lock and revoking the refresh token."""
        user = self.user_repository.get_by_reset_token(token)
        if user is None:
            raise ValidationException("Invalid or expired reset token", code="INVALID_TOKEN")
        if user.reset_token_expires is None or ensure_utc(user.reset_token_expires) < utc_now():
            raise ValidationException("Invalid or expired reset token", code="TOKEN_EXPIRED")

        with self.transaction():
            user.hashed_password = get_password_hash(new_password)
            user.reset_token = None
            user.reset_token_expires = None
            user.login_attempts = 0
            user.locked_until = None
            user.refresh_token = None
        self.logger.info(f"Password reset for {user.email} ({user.role})")
        return user

    def get_profile(self, user: User) -> Dict[str, Any]:
        profile: Dict[str, Any] = {"user": user, "coach": None}
        if user.is_coach:
            coach = self.coach_repository.get_by_user_id(user.id)
            if coach is None:
                raise NotFoundException("Coach profile not found", code="COACH_NOT_FOUND")
            profile["coach"] = coach
        return profile
