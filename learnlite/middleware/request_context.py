"""
learnlite/middleware/request_context.py
Request id propagation and access logging

Every request gets an id (the caller's X-Request-ID when present, a new
UUID4 otherwise). It is stored on request.state for error envelopes,
echoed in the X-Request-ID response header and written into one access
log line per request.
"""
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("learnlite.access")

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


def _incoming_request_id(request: Request) -> str:
    candidate = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH and candidate.isprintable():
        return candidate
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _incoming_request_id(request)
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.error(f"[{request_id}] {request.method} {request.url.path} 500 {duration_ms:.1f}ms")
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            f"[{request_id}] {request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms"
        )
        return response
