"""Weekly coach availability, booking request and schedule notification schemas."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.enums import AvailabilityReviewStatus, ScheduleNotificationType, SessionRequestStatus
from .base import StandardizedModel, StrictRequestModel, UTCDateTime

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeSlotIn(StrictRequestModel):
    start_time: str = Field(description="HH:MM in the coach's timezone")
    end_time: str = Field(description="HH:MM in the coach's timezone")
    is_available: bool = True


class DayAvailabilityIn(StrictRequestModel):
    day_of_week: int = Field(description="0 = Monday ... 6 = Sunday")
    is_active: bool = True
    slots: List[TimeSlotIn] = []


class WeeklyAvailabilityRequest(StrictRequestModel):
    days: List[DayAvailabilityIn] = Field(max_length=7)


class TimeSlotResponse(StandardizedModel):
    id: str
    start_time: str
    end_time: str
    is_available: bool


class DayAvailabilityResponse(StandardizedModel):
    id: str
    coach_id: str
    day_of_week: int
    is_active: bool
    review_status: AvailabilityReviewStatus = AvailabilityReviewStatus.PENDING
    time_slots: List[TimeSlotResponse] = []


class WeeklyAvailabilityResponse(BaseModel):
    coach_id: str
    days: List[DayAvailabilityResponse]


class AvailabilityReviewResponse(DayAvailabilityResponse):
    reviewed_at: Optional[UTCDateTime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None


class ReviewRejectRequest(StrictRequestModel):
    reason: str = Field(min_length=1, max_length=1000)
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


# Booking requests


class SessionRequestCreate(StrictRequestModel):
    """Ask for a session inside one of a coach's weekly time slots."""

    time_slot_id: str
    course_id: str
    session_date: date = Field(description="Calendar date; must fall on the slot's weekday")
    start_time: Optional[str] = Field(
        default=None, pattern=_HHMM, description="HH:MM inside the slot, defaults to the slot start"
    )
    notes: Optional[str] = Field(default=None, max_length=2000)
    student_id: Optional[str] = None


class SessionRequestResponse(StandardizedModel):
    id: str
    time_slot_id: Optional[str] = None
    coach_id: str
    student_id: str
    course_id: str
    session_id: Optional[str] = None
    title: str
    notes: Optional[str] = None
    start_time: UTCDateTime
    end_time: UTCDateTime
    duration: int
    status: SessionRequestStatus
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    approved_at: Optional[UTCDateTime] = None
    rejected_at: Optional[UTCDateTime] = None
    created_at: Optional[UTCDateTime] = None


class ScheduleNotificationResponse(StandardizedModel):
    id: str
    request_id: Optional[str] = None
    type: ScheduleNotificationType
    title: str
    message: str
    is_read: bool
    created_at: Optional[UTCDateTime] = None


class NotificationsReadResponse(BaseModel):
    updated: int
