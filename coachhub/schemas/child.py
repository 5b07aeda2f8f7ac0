"""Child profile schemas for parent accounts."""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .base import Money, StandardizedModel, StrictRequestModel, UTCDateTime


class ChildCreate(StrictRequestModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    date_of_birth: date
    gender: Optional[str] = Field(default=None, max_length=20)
    current_grade: Optional[str] = Field(default=None, max_length=20)
    school_name: Optional[str] = Field(default=None, max_length=200)
    special_needs: Optional[str] = None
    interests: List[str] = []


class ChildUpdate(StrictRequestModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)
    current_grade: Optional[str] = Field(default=None, max_length=20)
    school_name: Optional[str] = Field(default=None, max_length=200)
    special_needs: Optional[str] = None
    interests: Optional[List[str]] = None


class ChildResponse(StandardizedModel):
    id: str
    parent_id: str
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Optional[str] = None
    current_grade: Optional[str] = None
    school_name: Optional[str] = None
    special_needs: Optional[str] = None
    interests: List[str] = []
    created_at: Optional[UTCDateTime] = None


class EnrollmentCounts(BaseModel):
    total: int
    by_status: Dict[str, int]


class ChildProgressResponse(BaseModel):
    child_id: str
    period: str
    since: UTCDateTime
    enrollments: EnrollmentCounts
    credits_spent: Money
    total_sessions: int
    completed_sessions: int
    completion_rate: float
    total_hours: float
