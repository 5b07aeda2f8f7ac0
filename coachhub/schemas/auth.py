"""Request and response schemas for authentication and user profiles."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
import pytz

from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import UserRole
from .base import Money, StandardizedModel, StrictRequestModel, UTCDateTime


class RegisterBase(StrictRequestModel):
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    timezone: Optional[str] = "UTC"

    @field_validator("timezone")
    def validate_timezone(cls, v):
        if v and v not in pytz.all_timezones:
            raise ValueError(f"Invalid timezone: {v}")
        return v


class ParentRegisterRequest(RegisterBase):
    pass


class CoachRegisterRequest(RegisterBase):
    domain: str = Field(min_length=1, max_length=100)
    experience_description: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=255)
    languages: List[str] = Field(default_factory=list)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    bio: Optional[str] = None


class LoginRequest(StrictRequestModel):
    email: EmailStr
    password: str
    role: Optional[UserRole] = Field(
        default=None, description="Pick the account when one email has several roles"
    )


class AdminLoginRequest(StrictRequestModel):
    email: EmailStr
    password: str


class RefreshRequest(StrictRequestModel):
    refresh_token: str


class EmailRequest(StrictRequestModel):
    email: EmailStr
    role: Optional[UserRole] = None


class ResetPasswordRequest(StrictRequestModel):
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)


class UserResponse(StandardizedModel):
    id: str
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: str
    timezone: str
    is_verified: bool
    is_active: bool
    last_login: Optional[UTCDateTime] = None
    created_at: Optional[UTCDateTime] = None


class CoachResponse(StandardizedModel):
    id: str
    user_id: str
    domain: str
    experience_description: Optional[str] = None
    address: Optional[str] = None
    languages: List[str] = []
    hourly_rate: Optional[Money] = None
    bio: Optional[str] = None
    status: str
    is_frozen: bool = False
    approved_at: Optional[UTCDateTime] = None
    created_at: Optional[UTCDateTime] = None


class CoachWithUserResponse(CoachResponse):
    """Coach profile as administrators see it."""

    user: UserResponse
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    rejected_at: Optional[UTCDateTime] = None


class TokenResponse(BaseModel):
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class ProfileResponse(BaseModel):
    user: UserResponse
    coach: Optional[CoachResponse] = None
