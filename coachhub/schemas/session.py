"""Coaching session schemas."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..core.constants import MAX_BULK_SESSIONS
from ..core.enums import SessionStatus, SessionType
from .base import StandardizedModel, StrictRequestModel, UTCDateTime


class _Window(StrictRequestModel):
    start_time: datetime
    end_time: datetime

    @model_validator(mode="after")
    def check_order(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class SessionBookRequest(_Window):
    """Parent (or admin on a student's behalf) books a course session."""

    course_id: str
    session_type: SessionType = SessionType.ONE_ON_ONE
    notes: Optional[str] = Field(default=None, max_length=2000)
    student_id: Optional[str] = None


class BulkWindow(_Window):
    session_type: SessionType = SessionType.ONE_ON_ONE


class BulkBookRequest(StrictRequestModel):
    course_id: str
    sessions: List[BulkWindow] = Field(min_length=1, max_length=MAX_BULK_SESSIONS)
    student_id: Optional[str] = None


class SessionCreate(_Window):
    """Coach schedules a session for a student in one of their courses."""

    course_id: str
    student_id: str
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    session_type: SessionType = SessionType.ONE_ON_ONE
    meeting_url: Optional[str] = Field(default=None, max_length=500)


class SessionUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    meeting_url: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class CompleteRequest(StrictRequestModel):
    notes: Optional[str] = None
    recording_url: Optional[str] = Field(default=None, max_length=500)


class ReasonRequest(StrictRequestModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class NotesRequest(StrictRequestModel):
    notes: str


class RescheduleRequest(_Window):
    reason: Optional[str] = Field(default=None, max_length=1000)


class ConflictCheckRequest(_Window):
    coach_id: str
    exclude_session_id: Optional[str] = None


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: List[Dict[str, Any]] = []


class SessionResponse(StandardizedModel):
    id: str
    course_id: str
    coach_id: str
    student_id: str
    title: str
    description: Optional[str] = None
    session_type: str
    start_time: UTCDateTime
    end_time: UTCDateTime
    duration: int
    status: SessionStatus
    meeting_url: Optional[str] = None
    notes: Optional[str] = None
    recording_url: Optional[str] = None
    started_at: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    cancelled_at: Optional[UTCDateTime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[UTCDateTime] = None


class CalendarEntry(BaseModel):
    id: str
    title: str
    start: UTCDateTime
    end: UTCDateTime
    status: str
    course_title: Optional[str] = None
    course_category: Optional[str] = None
    coach_name: Optional[str] = None
    student_name: Optional[str] = None
    background_color: str
    border_color: str


class AvailableSlot(BaseModel):
    start_time: UTCDateTime
    end_time: UTCDateTime
    duration: int


class AvailableSlotsResponse(BaseModel):
    coach_id: str
    date: date
    slots: List[AvailableSlot]


class JoinResponse(BaseModel):
    meeting_url: str
    session: Dict[str, Any]
