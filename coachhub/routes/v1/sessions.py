# coachhub/routes/v1/sessions.py
"""
Coaching session routes - API v1

Versioned session endpoints under /api/v1/sessions.
All business logic, including permission checks on individual sessions,
is delegated to SessionService.

Endpoints:
    POST /                        → Book a session (parent, or admin for a student)
    POST /bulk                    → Book several sessions, all or nothing
    POST /coach                   → Coach schedules a session in an own course
    GET  /                        → Sessions visible to the caller
    GET  /upcoming                → Next live sessions
    GET  /calendar                → Caller's calendar for a date range
    GET  /calendar/{user_id}      → Another user's calendar (self or admin)
    POST /check-conflicts         → Overlapping live sessions for a coach
    GET  /available-slots         → Free slots for a coach on a date
    GET  /{session_id}            → Session details
    PUT  /{session_id}            → Coach edits details or time
    POST /{session_id}/start      → SCHEDULED → IN_PROGRESS (±5 min of start)
    POST /{session_id}/complete   → IN_PROGRESS → COMPLETED
    POST /{session_id}/cancel     → SCHEDULED | IN_PROGRESS → CANCELLED
    POST /{session_id}/no-show    → SCHEDULED → NO_SHOW
    POST /{session_id}/join       → Student joins, meeting URL returned
    PUT  /{session_id}/notes      → Coach notes
    POST /{session_id}/reschedule → Move a SCHEDULED session
"""

import asyncio
from datetime import date, datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies.auth import get_current_user, require_coach, require_role
from ...api.dependencies.services import get_session_service
from ...core.constants import DEFAULT_PAGE_SIZE, DEFAULT_SLOT_DURATION, MAX_PAGE_SIZE
from ...core.enums import SessionStatus, UserRole
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.base_responses import ApiResponse, PaginatedData
from ...schemas.session import (
    AvailableSlot,
    AvailableSlotsResponse,
    BulkBookRequest,
    CalendarEntry,
    CompleteRequest,
    ConflictCheckRequest,
    ConflictCheckResponse,
    JoinResponse,
    NotesRequest,
    ReasonRequest,
    RescheduleRequest,
    SessionBookRequest,
    SessionCreate,
    SessionResponse,
    SessionUpdate,
)
from ...services.session_service import SessionService, SessionWindow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions-v1"])

require_booker = require_role(UserRole.PARENT, UserRole.ADMIN)


def _reason(payload: Optional[ReasonRequest]) -> Optional[str]:
    return payload.reason if payload else None


def _session(session) -> SessionResponse:
    return SessionResponse.model_validate(session)


# =============================================================================
# Static routes first (before dynamic routes with path parameters)
# =============================================================================


@router.post("", response_model=ApiResponse[SessionResponse], status_code=status.HTTP_201_CREATED)
async def book_session(
    payload: SessionBookRequest,
    current_user: User = Depends(require_booker),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    """Book a session; 409 when the coach already has a live session in the window."""
    try:
        session = await asyncio.to_thread(
            session_service.book_session,
            current_user,
            payload.course_id,
            payload.start_time,
            payload.end_time,
            payload.session_type,
            payload.notes,
            payload.student_id,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session booked", status.HTTP_201_CREATED)


@router.post(
    "/bulk",
    response_model=ApiResponse[List[SessionResponse]],
    status_code=status.HTTP_201_CREATED,
)
async def bulk_book_sessions(
    payload: BulkBookRequest,
    current_user: User = Depends(require_booker),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[List[SessionResponse]]:
    windows = [
        SessionWindow(start_time=item.start_time, end_time=item.end_time, session_type=item.session_type)
        for item in payload.sessions
    ]
    try:
        sessions = await asyncio.to_thread(
            session_service.bulk_book_sessions, current_user, payload.course_id, windows, payload.student_id
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[List[SessionResponse]].ok(
        [_session(s) for s in sessions], f"{len(sessions)} sessions booked", status.HTTP_201_CREATED
    )


@router.post("/coach", response_model=ApiResponse[SessionResponse], status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreate,
    current_user: User = Depends(require_coach),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(session_service.create_session, current_user, payload.model_dump())
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session created", status.HTTP_201_CREATED)


@router.get("", response_model=ApiResponse[PaginatedData[SessionResponse]])
async def list_sessions(
    status_filter: Optional[SessionStatus] = Query(None, alias="status"),
    course_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[PaginatedData[SessionResponse]]:
    try:
        sessions, total = await asyncio.to_thread(
            lambda: session_service.list_sessions(
                current_user,
                status=status_filter.value if status_filter else None,
                course_id=course_id,
                start_date=start_date,
                end_date=end_date,
                page=page,
                limit=limit,
            )
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[PaginatedData[SessionResponse]].ok(
        PaginatedData[SessionResponse].build([_session(s) for s in sessions], page, limit, total),
        "Sessions retrieved",
    )


@router.get("/upcoming", response_model=ApiResponse[List[SessionResponse]])
async def upcoming_sessions(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[List[SessionResponse]]:
    try:
        sessions = await asyncio.to_thread(session_service.upcoming_sessions, current_user, limit)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[List[SessionResponse]].ok(
        [_session(s) for s in sessions], "Upcoming sessions retrieved"
    )


@router.get("/calendar", response_model=ApiResponse[List[CalendarEntry]])
async def calendar(
    start_date: datetime,
    end_date: datetime,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[List[CalendarEntry]]:
    try:
        entries = await asyncio.to_thread(session_service.calendar, current_user, start_date, end_date)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[List[CalendarEntry]].ok(
        [CalendarEntry.model_validate(entry) for entry in entries], "Calendar retrieved"
    )


@router.get("/calendar/{user_id}", response_model=ApiResponse[List[CalendarEntry]])
async def user_calendar(
    user_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[List[CalendarEntry]]:
    try:
        entries = await asyncio.to_thread(
            session_service.user_calendar, current_user, user_id, start_date, end_date
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[List[CalendarEntry]].ok(
        [CalendarEntry.model_validate(entry) for entry in entries], "Calendar retrieved"
    )


@router.post("/check-conflicts", response_model=ApiResponse[ConflictCheckResponse])
async def check_conflicts(
    payload: ConflictCheckRequest,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[ConflictCheckResponse]:
    try:
        result = await asyncio.to_thread(
            session_service.check_conflicts,
            payload.coach_id,
            payload.start_time,
            payload.end_time,
            payload.exclude_session_id,
        )
    except DomainException as e:
        raise e.to_http_exception()
    message = "Conflicts found" if result["has_conflicts"] else "No conflicts"
    return ApiResponse[ConflictCheckResponse].ok(ConflictCheckResponse(**result), message)


@router.get("/available-slots", response_model=ApiResponse[AvailableSlotsResponse])
async def available_slots(
    coach_id: str,
    day: date = Query(..., alias="date"),
    duration: int = Query(DEFAULT_SLOT_DURATION, description="Slot length in minutes"),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[AvailableSlotsResponse]:
    """Public: free slots from the coach's weekly availability minus live sessions."""
    try:
        slots = await asyncio.to_thread(session_service.available_slots, coach_id, day, duration)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[AvailableSlotsResponse].ok(
        AvailableSlotsResponse(
            coach_id=coach_id, date=day, slots=[AvailableSlot.model_validate(slot) for slot in slots]
        ),
        "Available slots retrieved",
    )


# =============================================================================
# Single-session routes
# =============================================================================


@router.get("/{session_id}", response_model=ApiResponse[SessionResponse])
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(session_service.get_session, current_user, session_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session retrieved")


@router.put("/{session_id}", response_model=ApiResponse[SessionResponse])
async def update_session(
    session_id: str,
    payload: SessionUpdate,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(
            session_service.update_session, current_user, session_id, payload.model_dump(exclude_unset=True)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session updated")


@router.post("/{session_id}/start", response_model=ApiResponse[SessionResponse])
async def start_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(session_service.start_session, current_user, session_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session started")


@router.post("/{session_id}/complete", response_model=ApiResponse[SessionResponse])
async def complete_session(
    session_id: str,
    payload: Optional[CompleteRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(
            session_service.complete_session,
            current_user,
            session_id,
            payload.notes if payload else None,
            payload.recording_url if payload else None,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session completed")


@router.post("/{session_id}/cancel", response_model=ApiResponse[SessionResponse])
async def cancel_session(
    session_id: str,
    payload: Optional[ReasonRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(
            session_service.cancel_session, current_user, session_id, _reason(payload)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session cancelled")


@router.post("/{session_id}/no-show", response_model=ApiResponse[SessionResponse])
async def mark_no_show(
    session_id: str,
    payload: Optional[ReasonRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(
            session_service.mark_no_show, current_user, session_id, _reason(payload)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session marked as no-show")


@router.post("/{session_id}/join", response_model=ApiResponse[JoinResponse])
async def join_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[JoinResponse]:
    try:
        result = await asyncio.to_thread(session_service.join_session, current_user, session_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[JoinResponse].ok(JoinResponse(**result), "Joined session")


@router.put("/{session_id}/notes", response_model=ApiResponse[SessionResponse])
async def update_notes(
    session_id: str,
    payload: NotesRequest,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    try:
        session = await asyncio.to_thread(
            session_service.update_notes, current_user, session_id, payload.notes
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Notes updated")


@router.post("/{session_id}/reschedule", response_model=ApiResponse[SessionResponse])
async def reschedule_session(
    session_id: str,
    payload: RescheduleRequest,
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    """Only SCHEDULED sessions move; the new window is re-checked for conflicts."""
    try:
        session = await asyncio.to_thread(
            session_service.reschedule_session,
            current_user,
            session_id,
            payload.start_time,
            payload.end_time,
            payload.reason,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionResponse].ok(_session(session), "Session rescheduled")
