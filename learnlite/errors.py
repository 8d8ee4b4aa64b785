"""
learnlite/errors.py
Centralized HTTP error handling and response envelopes

ERROR RESPONSE STRUCTURE:
{
    "ok": false,
    "error": {
        "code": "UNIQUE_ERROR_CODE",
        "message": "Human-readable description",
        "fields": [{"field": ..., "message": ...}]   (validation errors only)
        "requestId": "...",
        "timestamp": "..."
    },
    "version": "v1.2"
}

SUCCESS RESPONSE STRUCTURE:
{
    "ok": true,
    "data": ...,
    "pagination": {"page", "limit", "total", "totalPages"}   (lists only)
    "version": "v1.2"
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input or a business rule rejected the request
- 401: Authentication missing or expired
- 403: Role or ownership mismatch
- 404: Resource does not exist
- 409: Duplicate of a uniquely constrained row
- 429: Rate limit exceeded
- 500: Never caused by user input (internal only)
"""
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnlite.config.settings import settings
from learnlite.exceptions import (
    DomainError,
    ValidationError,
    BusinessRuleError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    InternalError,
)

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"

    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    AUTH_EXPIRED = "AUTH_EXPIRED"

    FORBIDDEN = "FORBIDDEN"
    NOT_OWNER = "NOT_OWNER"
    NOT_ENROLLED = "NOT_ENROLLED"

    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    LESSON_NOT_FOUND = "LESSON_NOT_FOUND"
    ENROLLMENT_NOT_FOUND = "ENROLLMENT_NOT_FOUND"
    QUIZ_NOT_FOUND = "QUIZ_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"

    COURSE_NOT_PUBLISHED = "COURSE_NOT_PUBLISHED"
    ENROLLMENT_NOT_ACTIVE = "ENROLLMENT_NOT_ACTIVE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    INVALID_ANSWERS_LENGTH = "INVALID_ANSWERS_LENGTH"
    LESSON_COUNT_MISMATCH = "LESSON_COUNT_MISMATCH"
    INVALID_LESSON_IDS = "INVALID_LESSON_IDS"
    INVALID_INSTRUCTOR = "INVALID_INSTRUCTOR"

    ALREADY_ENROLLED = "ALREADY_ENROLLED"
    ALREADY_ISSUED = "ALREADY_ISSUED"
    EMAIL_EXISTS = "EMAIL_EXISTS"

    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Every DomainError variant maps to exactly one status.
STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    BusinessRuleError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DomainError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: DomainError) -> int:
    """Resolve the HTTP status of a domain error by its class."""
    for klass in type(exc).__mro__:
        if klass in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[klass]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# ================= ENVELOPES =================

def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_request_id(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    return getattr(request.state, "request_id", None)


def envelope(data: Any = None, pagination: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    """Success envelope."""
    body = {"ok": True, "data": data}
    if pagination is not None:
        body["pagination"] = pagination
    body["version"] = settings.api_version
    return body


def paginated(items: List[Any], total: int, page: int, limit: int) -> Dict[str, Any]:
    """Success envelope for a page of a list endpoint."""
    return envelope(
        items,
        pagination={
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    )


def error_body(
    code: str,
    message: str,
    request: Optional[Request] = None,
    fields: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    error = {"code": code, "message": message}
    if fields:
        error["fields"] = fields
    error["requestId"] = get_request_id(request)
    error["timestamp"] = _timestamp()
    return {"ok": False, "error": error, "version": settings.api_version}


def error_response(
    status_code: int,
    code: str,
    message: str,
    request: Optional[Request] = None,
    fields: Optional[List[Dict[str, str]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(code, message, request, fields),
        headers=headers,
    )


# ================= HANDLERS =================

async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] Domain error on {request.url.path}: {exc.code} - {exc.message}")
        return error_response(
            status_code, ErrorCode.INTERNAL_ERROR,
            f"An internal error occurred (log id {log_id})", request
        )

    logger.warning(f"Domain error on {request.url.path}: {exc.code} - {exc.message}")
    fields = exc.fields if isinstance(exc, ValidationError) else None
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return error_response(status_code, exc.code, exc.message, request, fields, headers)


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {"field": _field_name(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    # errors() carries the rejected input, which may be a password
    logger.warning(f"Validation error on {request.url.path}: {[item['field'] for item in fields]}")
    return error_response(
        status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR,
        "Validation failed", request, fields
    )


HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.RATE_LIMITED,
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    code = HTTP_STATUS_CODES.get(
        exc.status_code,
        ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.VALIDATION_ERROR
    )
    logger.warning(f"HTTP exception on {request.url.path}: {exc.status_code} {message}")
    return error_response(exc.status_code, code, message, request, headers=getattr(exc, "headers", None))


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded on {request.url.path}: {exc.detail}")
    return error_response(
        status.HTTP_429_TOO_MANY_REQUESTS, ErrorCode.RATE_LIMITED,
        f"Rate limit exceeded: {exc.detail}", request
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_id = str(uuid.uuid4())[:8]
    logger.error(
        f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR,
        f"An unexpected error occurred (log id {log_id})", request
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Register every exception handler on the application."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, global_exception_handler)
