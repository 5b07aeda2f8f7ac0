# coachhub/routes/v1/courses.py
"""
Course routes - API v1

Versioned course catalog endpoints under /api/v1/courses.

Endpoints:
    GET    /                      → Catalog (public) or own courses (coach, ?mine=true)
    POST   /                      → Create a course (approved coach, starts PENDING)
    GET    /{course_id}           → Course details with average rating
    PUT    /{course_id}           → Update own course
    DELETE /{course_id}           → Delete own course (no live sessions)
    PATCH  /{course_id}/toggle-status → Activate / deactivate own approved course
    GET    /{course_id}/reviews   → Reviews, paginated
    POST   /{course_id}/reviews   → Review after a completed session
"""

import asyncio
from decimal import Decimal
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_coach, get_current_user, get_current_user_optional
from ...api.dependencies.services import get_course_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import CourseLevel
from ...core.exceptions import DomainException
from ...models.coach import Coach
from ...models.user import User
from ...schemas.base_responses import ApiResponse, MessageData, PaginatedData
from ...schemas.course import (
    CourseCreate,
    CourseDetailResponse,
    CourseResponse,
    CourseUpdate,
    ReviewCreate,
    ReviewResponse,
    ToggleStatusResponse,
)
from ...services.course_service import CourseService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["courses-v1"])


@router.get("", response_model=ApiResponse[PaginatedData[CourseResponse]])
async def list_courses(
    mine: bool = Query(False, description="Coach only: list own courses in every status"),
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = None,
    level: Optional[CourseLevel] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: Optional[User] = Depends(get_current_user_optional),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[PaginatedData[CourseResponse]]:
    try:
        courses, total = await asyncio.to_thread(
            lambda: course_service.list_courses(
                current_user,
                mine=mine,
                search=search,
                category=category,
                level=level.value if level else None,
                min_price=min_price,
                max_price=max_price,
                page=page,
                limit=limit,
            )
        )
    except DomainException as e:
        raise e.to_http_exception()
    items = [CourseResponse.model_validate(course) for course in courses]
    return ApiResponse[PaginatedData[CourseResponse]].ok(
        PaginatedData[CourseResponse].build(items, page, limit, total), "Courses retrieved"
    )


@router.post("", response_model=ApiResponse[CourseResponse], status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    coach: Coach = Depends(get_current_coach),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[CourseResponse]:
    """New courses are PENDING and inactive until an admin approves them."""
    try:
        course = await asyncio.to_thread(course_service.create_course, coach, payload.model_dump())
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CourseResponse].ok(
        CourseResponse.model_validate(course),
        "Course created and submitted for review",
        status.HTTP_201_CREATED,
    )


@router.get("/{course_id}", response_model=ApiResponse[CourseDetailResponse])
async def get_course(
    course_id: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[CourseDetailResponse]:
    try:
        course = await asyncio.to_thread(course_service.get_course, course_id, current_user)
        rating = await asyncio.to_thread(course_service.average_rating, course.id)
    except DomainException as e:
        raise e.to_http_exception()
    detail = CourseDetailResponse.model_validate(course).model_copy(update={"average_rating": rating})
    return ApiResponse[CourseDetailResponse].ok(detail, "Course retrieved")


@router.put("/{course_id}", response_model=ApiResponse[CourseResponse])
async def update_course(
    course_id: str,
    payload: CourseUpdate,
    current_user: User = Depends(get_current_user),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[CourseResponse]:
    try:
        course = await asyncio.to_thread(
            course_service.update_course, current_user, course_id, payload.model_dump(exclude_unset=True)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CourseResponse].ok(CourseResponse.model_validate(course), "Course updated")


@router.delete("/{course_id}", response_model=ApiResponse[MessageData])
async def delete_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[MessageData]:
    try:
        await asyncio.to_thread(course_service.delete_course, current_user, course_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[MessageData].ok(MessageData(id=course_id), "Course deleted")


@router.patch("/{course_id}/toggle-status", response_model=ApiResponse[ToggleStatusResponse])
async def toggle_course_status(
    course_id: str,
    current_user: User = Depends(get_current_user),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[ToggleStatusResponse]:
    try:
        course = await asyncio.to_thread(course_service.toggle_status, current_user, course_id)
    except DomainException as e:
        raise e.to_http_exception()
    state = "activated" if course.is_active else "deactivated"
    return ApiResponse[ToggleStatusResponse].ok(
        ToggleStatusResponse(id=course.id, is_active=course.is_active, status=course.status),
        f"Course {state}",
    )


@router.get("/{course_id}/reviews", response_model=ApiResponse[PaginatedData[ReviewResponse]])
async def list_reviews(
    course_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[PaginatedData[ReviewResponse]]:
    try:
        reviews, total = await asyncio.to_thread(course_service.list_reviews, course_id, page, limit)
    except DomainException as e:
        raise e.to_http_exception()
    items = [ReviewResponse.model_validate(review) for review in reviews]
    return ApiResponse[PaginatedData[ReviewResponse]].ok(
        PaginatedData[ReviewResponse].build(items, page, limit, total), "Reviews retrieved"
    )


@router.post(
    "/{course_id}/reviews",
    response_model=ApiResponse[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_review(
    course_id: str,
    payload: ReviewCreate,
    current_user: User = Depends(get_current_user),
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[ReviewResponse]:
    """One review per user per course, after a completed session."""
    try:
        review = await asyncio.to_thread(
            course_service.add_review, current_user, course_id, payload.rating, payload.comment
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[ReviewResponse].ok(
        ReviewResponse.model_validate(review), "Review added", status.HTTP_201_CREATED
    )
