"""Admin dashboard, moderation and audit schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .auth import CoachWithUserResponse
from .base import Money, StandardizedModel, StrictRequestModel, UTCDateTime
from .course import CourseResponse


class CountsByStatus(BaseModel):
    total: int
    pending: int = 0
    by_status: Dict[str, int]


class UserCounts(BaseModel):
    total: int
    by_role: Dict[str, int]


class SessionCounts(BaseModel):
    total: int
    by_status: Dict[str, int]


class CreditTotals(BaseModel):
    users_with_balance: int
    total_balance: Money
    total_earned: Money
    total_spent: Money


class DashboardStats(BaseModel):
    users: UserCounts
    coaches: CountsByStatus
    courses: CountsByStatus
    sessions: SessionCounts
    revenue: Money
    credits: CreditTotals


class AdminNotesRequest(StrictRequestModel):
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class RejectCoachRequest(StrictRequestModel):
    reason: str = Field(min_length=1, max_length=1000)
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class SuspendCoachRequest(StrictRequestModel):
    reason: Optional[str] = Field(default=None, max_length=1000)
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class RejectCourseRequest(StrictRequestModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class CoachDetailsResponse(BaseModel):
    coach: CoachWithUserResponse
    courses: List[CourseResponse]
    course_count: int
    session_count: int


class AdminActivityResponse(StandardizedModel):
    id: str
    admin_id: str
    action: str
    target_type: str
    target_id: str
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[UTCDateTime] = None
