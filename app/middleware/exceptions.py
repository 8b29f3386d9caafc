from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.core.errors import OriginTimeoutError, RateLimitExceeded
from app.schemas.response import ErrorResponse, ErrorDetail
from datetime import datetime
from typing import Any, Dict, Optional
import logging
import uuid

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        429: "RATE_LIMITED",
        500: "INTERNAL_SERVER_ERROR",
        501: "NOT_IMPLEMENTED",
        503: "SERVICE_UNAVAILABLE",
        504: "ORIGIN_TIMEOUT",
    }
    return code_map.get(status_code, f"HTTP_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _error_response(
    request: Request,
    status_code: int,
    message: str,
    *,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    error_response = ErrorResponse(
        error=ErrorDetail(code=code or _get_error_code(status_code), message=message, details=details),
        timestamp=datetime.utcnow().isoformat(),
        path=str(request.url),
        request_id=_request_id(request)
    )
    response = JSONResponse(status_code=status_code, content=jsonable_encoder(error_response), headers=headers)
    response.headers["Cache-Control"] = "no-store"
    return response

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"[{_request_id(request)}] Validation error: {exc.errors()}")
    return _error_response(
        request, 422, "Request validation failed",
        details={"validation_errors": jsonable_encoder(exc.errors())},
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"[{_request_id(request)}] HTTP {exc.status_code}: {exc.detail}")
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(request, exc.status_code, message, headers=getattr(exc, "headers", None))

async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"[{_request_id(request)}] Rate limit exceeded ({exc.route_class}, limit {exc.limit})")
    return _error_response(
        request, 429, "Too many requests, please try again later",
        details={"route_class": exc.route_class, "limit": exc.limit, "retry_after": exc.retry_after},
        headers={"Retry-After": str(exc.retry_after)},
    )

async def origin_timeout_exception_handler(request: Request, exc: OriginTimeoutError):
    logger.error(f"[{_request_id(request)}] {exc}")
    return _error_response(request, 504, "The data source took too long to respond", details={"timeout": exc.timeout})

async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"[{_request_id(request)}] Unhandled exception: {exc}", exc_info=True)
    return _error_response(
        request, 500, "An unexpected error occurred",
        details={"error_type": type(exc).__name__},
    )
