"""
Exception handlers that render every failure in the response envelope.

Domain errors arrive either as ``DomainException`` (raised outside a route
handler) or as the ``HTTPException`` produced by ``to_http_exception()``;
both end up as ``{"success": false, "message", "data": {"code",
"details"}, "statusCode", "timestamp"}``.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException
from .schemas.base_responses import ApiResponse

logger = logging.getLogger(__name__)


def _title_from_status(status_code: int) -> str:
    mapping = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        422: "Unprocessable Entity",
        423: "Locked",
        500: "Internal Server Error",
    }
    return mapping.get(status_code, "Error")


def _parse_detail(detail: Any) -> tuple[Optional[str], Optional[Dict[str, Any]]]:
    if isinstance(detail, dict):
        message = detail.get("message") or detail.get("detail")
        data = {"code": detail.get("code"), "details": detail.get("details") or {}}
        return (message if isinstance(message, str) else None), data
    if isinstance(detail, str):
        return detail, None
    if detail is None:
        return None, None
    return str(detail), None


def _envelope(
    status_code: int,
    message: Optional[str],
    data: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ApiResponse.error(message or _title_from_status(status_code), status_code, data)
    return JSONResponse(
        content=jsonable_encoder(body.model_dump(by_alias=True)),
        status_code=status_code,
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message, data = _parse_detail(exc.detail)
        return _envelope(exc.status_code, message, data, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        logger.info(f"Request validation failed on {request.method} {request.url.path}: {len(errors)} errors")
        return _envelope(400, "Validation failed", errors)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        message, data = _parse_detail(http_exc.detail)
        return _envelope(http_exc.status_code, message, data, http_exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return _envelope(500, "Internal server error")
