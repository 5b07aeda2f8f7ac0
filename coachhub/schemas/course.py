"""Course catalog and review schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..core.constants import MAX_RATING
from ..core.enums import CourseLevel
from .base import Money, StandardizedModel, StrictRequestModel, UTCDateTime


class CourseCreate(StrictRequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: str = Field(min_length=1, max_length=100)
    level: CourseLevel = CourseLevel.BEGINNER
    duration: int = Field(gt=0, description="Minutes")
    price: Decimal = Field(ge=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    credit_cost: Decimal = Field(default=Decimal("0"), ge=0, description="Credits per enrolled child")


class CourseUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    level: Optional[CourseLevel] = None
    duration: Optional[int] = Field(default=None, gt=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    credit_cost: Optional[Decimal] = Field(default=None, ge=0)


class CoachSummary(StandardizedModel):
    id: str
    domain: str
    full_name: Optional[str] = None


class CourseResponse(StandardizedModel):
    id: str
    coach_id: str
    title: str
    description: Optional[str] = None
    category: str
    level: str
    duration: int
    price: Money
    currency: str
    credit_cost: Money
    status: str
    is_active: bool
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None


class CourseDetailResponse(CourseResponse):
    average_rating: Optional[float] = None


class ReviewCreate(StrictRequestModel):
    rating: int = Field(ge=1, le=MAX_RATING)
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewResponse(StandardizedModel):
    id: str
    course_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[UTCDateTime] = None


class ToggleStatusResponse(BaseModel):
    id: str
    is_active: bool
    status: str
