# coachhub/routes/v1/children.py
"""
Children routes - API v1

Child profiles of the calling parent under /api/v1/children.

Endpoints:
    GET    /                          → Own children
    POST   /                          → Add a child (under 18, no duplicates)
    GET    /{child_id}                → One child
    PUT    /{child_id}                → Update a child
    DELETE /{child_id}                → Remove a child without active enrollments
    GET    /{child_id}/enrollments    → Course enrollments
    GET    /{child_id}/progress       → Progress summary (?period=day|week|month|year)
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import require_parent
from ...api.dependencies.services import get_child_service
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.base_responses import ApiResponse, MessageData
from ...schemas.child import ChildCreate, ChildProgressResponse, ChildResponse, ChildUpdate
from ...schemas.credit import EnrollmentResponse
from ...services.child_service import ChildService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["children-v1"])


@router.get("", response_model=ApiResponse[List[ChildResponse]])
async def list_children(
    parent: User = Depends(require_parent),
    child_service: ChildService = Depends(get_child_service),
) -> ApiResponse[List[ChildResponse]]:
    children = await asyncio.to_thread(child_service.list_children, parent)
    return ApiResponse[List[ChildResponse]].ok(
        [ChildResponse.model_validate(child) for child in children], "Children retrieved"
    )


@router.post("", response_model=ApiResponse[ChildResponse], status_code=status.HTTP_201_CREATED)
async def add_child(
    payload: ChildCreate,
    parent: User = Depends(require_parent),
    child_service: ChildService = Depends(get_child_service),
) -> ApiResponse[ChildResponse]:
    try:
        child = await asyncio.to_thread(child_service.add_child, parent, payload.model_dump())
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[ChildResponse].ok(
        ChildResponse.model_validate(child), "Child added", status.HTTP_201_CREATED
    )


@router.get("/{child_id}", response_model=ApiResponse[ChildResponse])
async def get_child(
    child_id: str,
    parent: User = Depends(require_parent),
    child_service: ChildService = Depends(get_child_service),
) -> ApiResponse[ChildResponse]:
    try:
        child = await asyncio.to_thread(child_service.get_child, parent, child_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[ChildResponse].ok(ChildResponse.model_validate(child), "Child retrieved")


@router.put("/{child_id}", response_model=ApiResponse[ChildResponse])
async def update_child(
    child_id: str,
    payload: ChildUpdate,
    parent: User = Depends(require_parent),
    child_service: ChildService = Depends(get_child_service),
) -> ApiResponse[ChildResponse]:
    try:
        child = await asyncio.to_thread(
            child_service.update_child, parent, child_id, payload.model_dump(exclude_unset=True)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[ChildResponse].ok(ChildResponse.model_validate(child), "Child updated")


@router.delete("/{child_id}", response_model=ApiResponse[MessageData])
async def remove_child(
    child_id: str,
    parent: User = Depends(require_parent),
    child_service: ChildService = Depends(get_child_service),
) -> ApiResponse[MessageData]:
    try:
        await asyncio.to_thread(child_service.remove_child, parent, child_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[MessageData].ok(MessageData(id=child_id), "Child removed")


@router.get("/{child_id}/enrollments", response_model=ApiResponse[List[EnrollmentResponse]])
async def list_enrollments(
    child_id: str,
    parent: User = Depends(require_parent),
    child_service: ChildService = Depends(get_child_service),
) -> ApiResponse[List[EnrollmentResponse]]:
    try:
        enrollments = await asyncio.to_thread(child_service.list_enrollments, parent, child_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[List[EnrollmentResponse]].ok(
        [EnrollmentResponse.model_validate(enrollment) for enrollment in enrollments], "Enrollments retrieved"
    )


@router.get("/{child_id}/progress", response_model=ApiResponse[ChildProgressResponse])
async def get_progress(
    child_id: str,
    period: str = Query("month"),
    parent: User = Depends(require_parent),
    child_service: ChildService = Depends(get_child_service),
) -> ApiResponse[ChildProgressResponse]:
    try:
        progress = await asyncio.to_thread(child_service.get_progress, parent, child_id, period)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[ChildProgressResponse].ok(ChildProgressResponse(**progress), "Progress retrieved")
