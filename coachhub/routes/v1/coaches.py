# coachhub/routes/v1/coaches.py
"""
Coach profile routes - API v1

Public profile lookups under /api/v1/coaches used by the parent dashboard.

Endpoints:
    GET /by-course/{course_id} → Profile of the coach teaching a course
    GET /{coach_id}            → Profile by coach id or coach user id
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies.services import get_course_service
from ...core.exceptions import DomainException
from ...schemas.base_responses import ApiResponse
from ...schemas.coach import CoachPublicProfileResponse
from ...services.course_service import CourseService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["coaches-v1"])


@router.get("/by-course/{course_id}", response_model=ApiResponse[CoachPublicProfileResponse])
async def get_coach_profile_by_course(
    course_id: str,
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[CoachPublicProfileResponse]:
    try:
        profile = await asyncio.to_thread(course_service.get_coach_profile_for_course, course_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachPublicProfileResponse].ok(
        CoachPublicProfileResponse.from_profile(profile), "Coach profile retrieved"
    )


@router.get("/{coach_id}", response_model=ApiResponse[CoachPublicProfileResponse])
async def get_coach_profile(
    coach_id: str,
    course_service: CourseService = Depends(get_course_service),
) -> ApiResponse[CoachPublicProfileResponse]:
    """Only approved coaches have a public profile; anything else is a 404."""
    try:
        profile = await asyncio.to_thread(course_service.get_coach_profile, coach_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[CoachPublicProfileResponse].ok(
        CoachPublicProfileResponse.from_profile(profile), "Coach profile retrieved"
    )
