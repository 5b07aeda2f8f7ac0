"""
Base response schemas for standardized API responses.

Every endpoint answers with the same envelope::

    {"success": true, "message": "...", "data": ..., "statusCode": 200,
     "timestamp": "2025-01-20T10:30:00+00:00"}

Errors use the same shape with ``success`` false (see ``coachhub.errors``).
"""

from datetime import datetime, timezone
from math import ceil
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel, Generic[T]):
    """Standard envelope for every response."""

    success: bool = Field(default=True, description="Operation success status")
    message: str = Field(description="Human-readable message")
    data: Optional[T] = Field(default=None, description="Response payload")
    status_code: int = Field(default=200, alias="statusCode", description="HTTP status code")
    timestamp: datetime = Field(default_factory=_now, description="Response timestamp")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Operation completed successfully",
                "data": {},
                "statusCode": 200,
                "timestamp": "2025-01-20T10:30:00+00:00",
            }
        },
    )

    @classmethod
    def ok(cls, data: Any = None, message: str = "Success", status_code: int = 200) -> "ApiResponse[Any]":
        return cls(success=True, message=message, data=data, status_code=status_code)

    @classmethod
    def error(cls, message: str, status_code: int, data: Any = None) -> "ApiResponse[Any]":
        return cls(success=False, message=message, data=data, status_code=status_code)


class Pagination(BaseModel):
    page: int = Field(ge=1, description="Current page number")
    limit: int = Field(ge=1, description="Items per page")
    total: int = Field(ge=0, description="Total number of items")
    pages: int = Field(ge=0, description="Total number of pages")
    has_next: bool = Field(description="Whether there's a next page")
    has_previous: bool = Field(description="Whether there's a previous page")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        pages = ceil(total / limit) if limit else 0
        return cls(page=page, limit=limit, total=total, pages=pages, has_next=page < pages, has_previous=page > 1)


class PaginatedData(BaseModel, Generic[T]):
    """Standard paginated payload for all list endpoints."""

    items: List[T] = Field(description="List of items")
    pagination: Pagination

    @classmethod
    def build(cls, items: List[Any], page: int, limit: int, total: int) -> "PaginatedData[Any]":
        return cls(items=items, pagination=Pagination.build(page, limit, total))


class MessageData(BaseModel):
    """Payload for operations that only report an outcome."""

    id: Optional[str] = None
    detail: Optional[str] = None
