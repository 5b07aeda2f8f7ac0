# coachhub/routes/v1/admin.py
"""
Admin routes - API v1

Moderation and reporting under /api/v1/admin. Every endpoint requires an
administrator; every state change is recorded in the activity log.

Endpoints:
    GET  /dashboard                     → Platform statistics
    GET  /activities                    → Admin activity log
    GET  /coaches                       → Coaches, filterable by status
    GET  /coaches/{coach_id}            → Coach with courses and counts
    POST /coaches/{coach_id}/approve    → PENDING → APPROVED
    POST /coaches/{coach_id}/reject     → PENDING → REJECTED
    POST /coaches/{coach_id}/suspend    → APPROVED → SUSPENDED (deactivates the user)
    POST /coaches/{coach_id}/reactivate → SUSPENDED → APPROVED
    PUT  /coaches/{coach_id}/notes      → Update admin notes
    GET  /courses                       → Courses in every status
    GET  /courses/{course_id}           → One course
    POST /courses/{course_id}/approve   → APPROVED and active
    POST /courses/{course_id}/reject    → REJECTED and inactive
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from ...api.dependencies.auth import require_admin
from ...api.dependencies.services import get_admin_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import CoachStatus, CourseStatus
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.admin import (
    AdminActivityResponse,
    AdminNotesRequest,
    CoachDetailsResponse,
    DashboardStats,
    RejectCoachRequest,
    RejectCourseRequest,
    SuspendCoachRequest,
)
from ...schemas.auth import CoachWithUserResponse
from ...schemas.base_responses import ApiResponse, PaginatedData
from ...schemas.course import CourseResponse
from ...services.admin_service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-v1"])


def _notes(payload: Optional[AdminNotesRequest]) -> Optional[str]:
    return payload.admin_notes if payload else None


@router.get("/dashboard", response_model=ApiResponse[DashboardStats])
async def dashboard(
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[DashboardStats]:
    stats = await asyncio.to_thread(admin_service.dashboard_stats)
    return ApiResponse[DashboardStats].ok(DashboardStats(**stats), "Dashboard statistics retrieved")


@router.get("/activities", response_model=ApiResponse[PaginatedData[AdminActivityResponse]])
async def list_activities(
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[PaginatedData[AdminActivityResponse]]:
    activities, total = await asyncio.to_thread(
        lambda: admin_service.list_activities(action=action, target_type=target_type, page=page, limit=limit)
    )
    items = [AdminActivityResponse.model_validate(activity) for activity in activities]
    return ApiResponse[PaginatedData[AdminActivityResponse]].ok(
        PaginatedData[AdminActivityResponse].build(items, page, limit, total), "Activities retrieved"
    )


# Coaches


@router.get("/coaches", response_model=ApiResponse[PaginatedData[CoachWithUserResponse]])
async def list_coaches(
    status_filter: Optional[CoachStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[PaginatedData[CoachWithUserResponse]]:
    coaches, total = await asyncio.to_thread(
        lambda: admin_service.list_coaches(
            status=status_filter.value if status_filter else None, search=search, page=page, limit=limit
        )
    )
    items = [CoachWithUserResponse.model_validate(coach) for coach in coaches]
    return ApiResponse[PaginatedData[CoachWithUserResponse]].ok(
        PaginatedData[CoachWithUserResponse].build(items, page, limit, total), "Coaches retrieved"
    )


@router.get("/coaches/{coach_id}", response_model=ApiResponse[CoachDetailsResponse])
async def get_coach_details(
    coach_id: str,
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CoachDetailsResponse]:
    try:
        details = await asyncio.to_thread(admin_service.get_coach_details, coach_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachDetailsResponse].ok(
        CoachDetailsResponse(
            coach=CoachWithUserResponse.model_validate(details["coach"]),
            courses=[CourseResponse.model_validate(course) for course in details["courses"]],
            course_count=details["course_count"],
            session_count=details["session_count"],
        ),
        "Coach details retrieved",
    )


@router.post("/coaches/{coach_id}/approve", response_model=ApiResponse[CoachWithUserResponse])
async def approve_coach(
    coach_id: str,
    payload: Optional[AdminNotesRequest] = Body(None),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CoachWithUserResponse]:
    """Only PENDING coaches can be approved. The coach is notified by email."""
    try:
        coach = await asyncio.to_thread(admin_service.approve_coach, admin, coach_id, _notes(payload))
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachWithUserResponse].ok(CoachWithUserResponse.model_validate(coach), "Coach approved")


@router.post("/coaches/{coach_id}/reject", response_model=ApiResponse[CoachWithUserResponse])
async def reject_coach(
    coach_id: str,
    payload: RejectCoachRequest,
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CoachWithUserResponse]:
    try:
        coach = await asyncio.to_thread(
            admin_service.reject_coach, admin, coach_id, payload.reason, payload.admin_notes
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachWithUserResponse].ok(CoachWithUserResponse.model_validate(coach), "Coach rejected")


@router.post("/coaches/{coach_id}/suspend", response_model=ApiResponse[CoachWithUserResponse])
async def suspend_coach(
    coach_id: str,
    payload: Optional[SuspendCoachRequest] = Body(None),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CoachWithUserResponse]:
    """Suspension also deactivates the coach's user account and revokes its refresh token."""
    reason = payload.reason if payload else None
    admin_notes = payload.admin_notes if payload else None
    try:
        coach = await asyncio.to_thread(admin_service.suspend_coach, admin, coach_id, reason, admin_notes)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachWithUserResponse].ok(CoachWithUserResponse.model_validate(coach), "Coach suspended")


@router.post("/coaches/{coach_id}/reactivate", response_model=ApiResponse[CoachWithUserResponse])
async def reactivate_coach(
    coach_id: str,
    payload: Optional[AdminNotesRequest] = Body(None),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CoachWithUserResponse]:
    try:
        coach = await asyncio.to_thread(admin_service.reactivate_coach, admin, coach_id, _notes(payload))
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachWithUserResponse].ok(
        CoachWithUserResponse.model_validate(coach), "Coach reactivated"
    )


@router.put("/coaches/{coach_id}/notes", response_model=ApiResponse[CoachWithUserResponse])
async def update_coach_notes(
    coach_id: str,
    payload: AdminNotesRequest,
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CoachWithUserResponse]:
    try:
        coach = await asyncio.to_thread(admin_service.update_coach_notes, admin, coach_id, payload.admin_notes)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachWithUserResponse].ok(
        CoachWithUserResponse.model_validate(coach), "Admin notes updated"
    )


# Courses


@router.get("/courses", response_model=ApiResponse[PaginatedData[CourseResponse]])
async def list_courses(
    status_filter: Optional[CourseStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[PaginatedData[CourseResponse]]:
    courses, total = await asyncio.to_thread(
        lambda: admin_service.list_courses(
            status=status_filter.value if status_filter else None,
            search=search,
            category=category,
            page=page,
            limit=limit,
        )
    )
    items = [CourseResponse.model_validate(course) for course in courses]
    return ApiResponse[PaginatedData[CourseResponse]].ok(
        PaginatedData[CourseResponse].build(items, page, limit, total), "Courses retrieved"
    )


@router.get("/courses/{course_id}", response_model=ApiResponse[CourseResponse])
async def get_course_details(
    course_id: str,
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CourseResponse]:
    try:
        course = await asyncio.to_thread(admin_service.get_course_details, course_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CourseResponse].ok(CourseResponse.model_validate(course), "Course retrieved")


@router.post("/courses/{course_id}/approve", response_model=ApiResponse[CourseResponse])
async def approve_course(
    course_id: str,
    payload: Optional[AdminNotesRequest] = Body(None),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CourseResponse]:
    try:
        course = await asyncio.to_thread(admin_service.approve_course, admin, course_id, _notes(payload))
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CourseResponse].ok(CourseResponse.model_validate(course), "Course approved")


@router.post("/courses/{course_id}/reject", response_model=ApiResponse[CourseResponse])
async def reject_course(
    course_id: str,
    payload: Optional[RejectCourseRequest] = Body(None),
    admin: User = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> ApiResponse[CourseResponse]:
    reason = payload.reason if payload else None
    try:
        course = await asyncio.to_thread(admin_service.reject_course, admin, course_id, reason)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CourseResponse].ok(CourseResponse.model_validate(course), "Course rejected")
