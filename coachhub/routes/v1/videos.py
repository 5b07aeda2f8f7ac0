# coachhub/routes/v1/videos.py
"""
Video routes - API v1

Coach video library under /api/v1/videos. Uploads and playback use
presigned object-storage URLs; the API never proxies video bytes.

Endpoints:
    GET    /                        → Own videos (coach)
    POST   /                        → Register a video, returns a presigned upload URL
    GET    /analytics               → View analytics (?period=day|week|month|year&video_id=)
    GET    /{video_id}              → One video (owner, or anyone when public)
    PUT    /{video_id}              → Update metadata
    DELETE /{video_id}              → Delete the video and its stored objects
    POST   /{video_id}/thumbnail    → Presigned upload URL for a thumbnail
    GET    /{video_id}/stream       → Presigned playback URL
    POST   /{video_id}/view         → Record a view
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_coach, get_current_user
from ...api.dependencies.services import get_video_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.exceptions import DomainException
from ...models.coach import Coach
from ...models.user import User
from ...schemas.base_responses import ApiResponse, MessageData, PaginatedData
from ...schemas.video import (
    PresignedUrlResponse,
    ThumbnailRequest,
    TrackViewRequest,
    VideoAnalyticsResponse,
    VideoCreate,
    VideoResponse,
    VideoStreamResponse,
    VideoUpdate,
    VideoUploadResponse,
    VideoViewResponse,
)
from ...services.video_service import VideoService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["videos-v1"])


def _upload_response(result: dict) -> VideoUploadResponse:
    return VideoUploadResponse(
        video=VideoResponse.model_validate(result["video"]),
        upload=PresignedUrlResponse.model_validate(result["upload"]),
    )


@router.get("", response_model=ApiResponse[PaginatedData[VideoResponse]])
async def list_videos(
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = None,
    is_public: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    coach: Coach = Depends(get_current_coach),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[PaginatedData[VideoResponse]]:
    videos, total = await asyncio.to_thread(
        lambda: video_service.list_videos(
            coach, search=search, category=category, is_public=is_public, page=page, limit=limit
        )
    )
    items = [VideoResponse.model_validate(video) for video in videos]
    return ApiResponse[PaginatedData[VideoResponse]].ok(
        PaginatedData[VideoResponse].build(items, page, limit, total), "Videos retrieved"
    )


@router.post("", response_model=ApiResponse[VideoUploadResponse], status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: VideoCreate,
    coach: Coach = Depends(get_current_coach),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[VideoUploadResponse]:
    """The client PUTs the file to ``upload.url`` with ``upload.headers``."""
    try:
        result = await asyncio.to_thread(video_service.create_video, coach, payload.model_dump())
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[VideoUploadResponse].ok(
        _upload_response(result), "Video created", status.HTTP_201_CREATED
    )


@router.get("/analytics", response_model=ApiResponse[VideoAnalyticsResponse])
async def video_analytics(
    period: str = Query("month"),
    video_id: Optional[str] = None,
    coach: Coach = Depends(get_current_coach),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[VideoAnalyticsResponse]:
    try:
        stats = await asyncio.to_thread(video_service.analytics, coach, period, video_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[VideoAnalyticsResponse].ok(VideoAnalyticsResponse(**stats), "Video analytics retrieved")


@router.get("/{video_id}", response_model=ApiResponse[VideoResponse])
async def get_video(
    video_id: str,
    current_user: User = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[VideoResponse]:
    try:
        video = await asyncio.to_thread(video_service.get_video, current_user, video_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[VideoResponse].ok(VideoResponse.model_validate(video), "Video retrieved")


@router.put("/{video_id}", response_model=ApiResponse[VideoResponse])
async def update_video(
    video_id: str,
    payload: VideoUpdate,
    coach: Coach = Depends(get_current_coach),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[VideoResponse]:
    try:
        video = await asyncio.to_thread(
            video_service.update_video, coach, video_id, payload.model_dump(exclude_unset=True)
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[VideoResponse].ok(VideoResponse.model_validate(video), "Video updated")


@router.delete("/{video_id}", response_model=ApiResponse[MessageData])
async def delete_video(
    video_id: str,
    coach: Coach = Depends(get_current_coach),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[MessageData]:
    try:
        await asyncio.to_thread(video_service.delete_video, coach, video_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[MessageData].ok(MessageData(id=video_id), "Video deleted")


@router.post("/{video_id}/thumbnail", response_model=ApiResponse[VideoUploadResponse])
async def thumbnail_upload(
    video_id: str,
    payload: ThumbnailRequest,
    coach: Coach = Depends(get_current_coach),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[VideoUploadResponse]:
    try:
        result = await asyncio.to_thread(
            video_service.thumbnail_upload, coach, video_id, payload.content_type, payload.filename
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[VideoUploadResponse].ok(_upload_response(result), "Thumbnail upload URL created")


@router.get("/{video_id}/stream", response_model=ApiResponse[VideoStreamResponse])
async def stream_video(
    video_id: str,
    current_user: User = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[VideoStreamResponse]:
    try:
        result = await asyncio.to_thread(video_service.stream_url, current_user, video_id)
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[VideoStreamResponse].ok(
        VideoStreamResponse(
            video=VideoResponse.model_validate(result["video"]),
            stream=PresignedUrlResponse.model_validate(result["stream"]),
        ),
        "Stream URL created",
    )


@router.post("/{video_id}/view", response_model=ApiResponse[VideoViewResponse])
async def track_view(
    video_id: str,
    payload: TrackViewRequest,
    current_user: User = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
) -> ApiResponse[VideoViewResponse]:
    try:
        view = await asyncio.to_thread(
            video_service.track_view, current_user, video_id, payload.watch_time, payload.progress
        )
    except DomainException as e:
        raise e.to_http_exception()
    return ApiResponse[VideoViewResponse].ok(VideoViewResponse.model_validate(view), "View recorded")
