# coachhub/routes/v1/availability.py
"""
Availability routes - API v1

Weekly recurring availability of coaches, admin-moderated booking requests
against it and the schedule notifications they raise, under
/api/v1/availability.

Endpoints:
    PUT  /coaches/me                       → Replace the calling coach's weekly schedule
    GET  /coaches/{coach_id}               → Weekly schedule of a coach (public)
    POST /requests                         → Request a session inside a time slot
    GET  /requests                         → Requests visible to the caller
    GET  /requests/{request_id}            → One request
    POST /requests/{request_id}/approve    → Admin: create the session
    POST /requests/{request_id}/reject     → Admin: reject, freeing the window
    POST /requests/{request_id}/cancel     → Requester withdraws a pending request
    GET  /notifications                    → The caller's schedule notifications
    POST /notifications/read-all           → Mark every notification read
    POST /notifications/{notification_id}/read → Mark one notification read
    GET  /admin/schedules                  → Admin: schedule days awaiting review
    POST /admin/schedules/{availability_id}/approve → Admin: approve and activate a day
    POST /admin/schedules/{availability_id}/reject  → Admin: reject and deactivate a day
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies.auth import get_current_coach, get_current_user, require_admin
from ...api.dependencies.services import get_availability_service, get_schedule_request_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import AvailabilityReviewStatus, SessionRequestStatus
from ...core.exceptions import DomainException
from ...models.coach import Coach
from ...models.user import User
from ...schemas.admin import AdminNotesRequest
from ...schemas.availability import (
    AvailabilityReviewResponse,
    DayAvailabilityResponse,
    NotificationsReadResponse,
    ReviewRejectRequest,
    ScheduleNotificationResponse,
    SessionRequestCreate,
    SessionRequestResponse,
    WeeklyAvailabilityRequest,
    WeeklyAvailabilityResponse,
)
from ...schemas.base_responses import ApiResponse, PaginatedData
from ...services.availability_service import AvailabilityService
from ...services.schedule_request_service import ScheduleRequestService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


def _weekly(coach_id: str, days: list) -> WeeklyAvailabilityResponse:
    return WeeklyAvailabilityResponse(
        coach_id=coach_id, days=[DayAvailabilityResponse.model_validate(day) for day in days]
    )


def _notes(payload: Optional[AdminNotesRequest]) -> Optional[str]:
    return payload.admin_notes if payload else None


@router.put("/coaches/me", response_model=ApiResponse[WeeklyAvailabilityResponse])
async def set_my_availability(
    payload: WeeklyAvailabilityRequest,
    coach: Coach = Depends(get_current_coach),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> ApiResponse[WeeklyAvailabilityResponse]:
    """
    Replace the whole weekly schedule.

    Days left out of the payload end up without availability. Slots of one
    day must not overlap. Saved days go back to PENDING review.
    """
    days = [day.model_dump() for day in payload.days]
    try:
        saved = await asyncio.to_thread(availability_service.set_weekly_availability, coach, days)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[WeeklyAvailabilityResponse].ok(_weekly(coach.id, saved), "Availability updated")


@router.get("/coaches/{coach_id}", response_model=ApiResponse[WeeklyAvailabilityResponse])
async def get_coach_availability(
    coach_id: str,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> ApiResponse[WeeklyAvailabilityResponse]:
    try:
        days = await asyncio.to_thread(availability_service.get_for_coach, coach_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[WeeklyAvailabilityResponse].ok(_weekly(coach_id, days), "Availability retrieved")


# Booking requests


@router.post(
    "/requests",
    response_model=ApiResponse[SessionRequestResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_session_request(
    payload: SessionRequestCreate,
    user: User = Depends(get_current_user),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[SessionRequestResponse]:
    """
    Hold a window inside one of the coach's time slots until an
    administrator approves or rejects it.
    """
    try:
        request = await asyncio.to_thread(
            lambda: request_service.create_request(
                user,
                time_slot_id=payload.time_slot_id,
                course_id=payload.course_id,
                day=payload.session_date,
                start_time=payload.start_time,
                notes=payload.notes,
                student_id=payload.student_id,
            )
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionRequestResponse].ok(
        SessionRequestResponse.model_validate(request),
        "Session request submitted for approval",
        status.HTTP_201_CREATED,
    )


@router.get("/requests", response_model=ApiResponse[PaginatedData[SessionRequestResponse]])
async def list_session_requests(
    status_filter: Optional[SessionRequestStatus] = Query(None, alias="status"),
    coach_id: Optional[str] = None,
    student_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: User = Depends(get_current_user),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[PaginatedData[SessionRequestResponse]]:
    requests, total = await asyncio.to_thread(
        lambda: request_service.list_requests(
            user,
            status=status_filter.value if status_filter else None,
            coach_id=coach_id,
            student_id=student_id,
            page=page,
            limit=limit,
        )
    )
    items = [SessionRequestResponse.model_validate(request) for request in requests]
    return ApiResponse[PaginatedData[SessionRequestResponse]].ok(
        PaginatedData[SessionRequestResponse].build(items, page, limit, total), "Session requests retrieved"
    )


@router.get("/requests/{request_id}", response_model=ApiResponse[SessionRequestResponse])
async def get_session_request(
    request_id: str,
    user: User = Depends(get_current_user),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[SessionRequestResponse]:
    try:
        request = await asyncio.to_thread(request_service.get_request, user, request_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionRequestResponse].ok(
        SessionRequestResponse.model_validate(request), "Session request retrieved"
    )


@router.post("/requests/{request_id}/approve", response_model=ApiResponse[SessionRequestResponse])
async def approve_session_request(
    request_id: str,
    payload: Optional[AdminNotesRequest] = Body(None),
    admin: User = Depends(require_admin),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[SessionRequestResponse]:
    try:
        request = await asyncio.to_thread(request_service.approve_request, admin, request_id, _notes(payload))
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionRequestResponse].ok(
        SessionRequestResponse.model_validate(request), "Session request approved"
    )


@router.post("/requests/{request_id}/reject", response_model=ApiResponse[SessionRequestResponse])
async def reject_session_request(
    request_id: str,
    payload: ReviewRejectRequest,
    admin: User = Depends(require_admin),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[SessionRequestResponse]:
    try:
        request = await asyncio.to_thread(
            request_service.reject_request, admin, request_id, payload.reason, payload.admin_notes
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionRequestResponse].ok(
        SessionRequestResponse.model_validate(request), "Session request rejected"
    )


@router.post("/requests/{request_id}/cancel", response_model=ApiResponse[SessionRequestResponse])
async def cancel_session_request(
    request_id: str,
    user: User = Depends(get_current_user),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[SessionRequestResponse]:
    try:
        request = await asyncio.to_thread(request_service.cancel_request, user, request_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[SessionRequestResponse].ok(
        SessionRequestResponse.model_validate(request), "Session request cancelled"
    )


# Notifications


@router.get("/notifications", response_model=ApiResponse[PaginatedData[ScheduleNotificationResponse]])
async def list_notifications(
    is_read: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: User = Depends(get_current_user),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[PaginatedData[ScheduleNotificationResponse]]:
    notifications, total = await asyncio.to_thread(
        lambda: request_service.list_notifications(user, is_read=is_read, page=page, limit=limit)
    )
    items = [ScheduleNotificationResponse.model_validate(item) for item in notifications]
    return ApiResponse[PaginatedData[ScheduleNotificationResponse]].ok(
        PaginatedData[ScheduleNotificationResponse].build(items, page, limit, total),
        "Notifications retrieved",
    )


@router.post("/notifications/read-all", response_model=ApiResponse[NotificationsReadResponse])
async def mark_all_notifications_read(
    user: User = Depends(get_current_user),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[NotificationsReadResponse]:
    result = await asyncio.to_thread(request_service.mark_all_notifications_read, user)
    return ApiResponse[NotificationsReadResponse].ok(
        NotificationsReadResponse(**result), "Notifications marked as read"
    )


@router.post(
    "/notifications/{notification_id}/read", response_model=ApiResponse[ScheduleNotificationResponse]
)
async def mark_notification_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    request_service: ScheduleRequestService = Depends(get_schedule_request_service),
) -> ApiResponse[ScheduleNotificationResponse]:
    try:
        notification = await asyncio.to_thread(request_service.mark_notification_read, user, notification_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[ScheduleNotificationResponse].ok(
        ScheduleNotificationResponse.model_validate(notification), "Notification marked as read"
    )


# Admin schedule review


@router.get("/admin/schedules", response_model=ApiResponse[PaginatedData[AvailabilityReviewResponse]])
async def list_schedules_for_review(
    review_status: Optional[AvailabilityReviewStatus] = None,
    coach_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: User = Depends(require_admin),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> ApiResponse[PaginatedData[AvailabilityReviewResponse]]:
    days, total = await asyncio.to_thread(
        lambda: availability_service.list_for_review(
            review_status=review_status.value if review_status else None,
            coach_id=coach_id,
            page=page,
            limit=limit,
        )
    )
    items = [AvailabilityReviewResponse.model_validate(day) for day in days]
    return ApiResponse[PaginatedData[AvailabilityReviewResponse]].ok(
        PaginatedData[AvailabilityReviewResponse].build(items, page, limit, total), "Schedules retrieved"
    )


@router.post(
    "/admin/schedules/{availability_id}/approve", response_model=ApiResponse[AvailabilityReviewResponse]
)
async def approve_schedule(
    availability_id: str,
    payload: Optional[AdminNotesRequest] = Body(None),
    admin: User = Depends(require_admin),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> ApiResponse[AvailabilityReviewResponse]:
    try:
        availability = await asyncio.to_thread(
            availability_service.approve_availability, admin, availability_id, _notes(payload)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[AvailabilityReviewResponse].ok(
        AvailabilityReviewResponse.model_validate(availability), "Availability approved"
    )


@router.post(
    "/admin/schedules/{availability_id}/reject", response_model=ApiResponse[AvailabilityReviewResponse]
)
async def reject_schedule(
    availability_id: str,
    payload: ReviewRejectRequest,
    admin: User = Depends(require_admin),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> ApiResponse[AvailabilityReviewResponse]:
    try:
        availability = await asyncio.to_thread(
            availability_service.reject_availability,
            admin,
            availability_id,
            payload.reason,
            payload.admin_notes,
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[AvailabilityReviewResponse].ok(
        AvailabilityReviewResponse.model_validate(availability), "Availability rejected"
    )
