"""Logging middleware for FastAPI.

Adds a per-request UUID, binds the acting user id (taken from the `user_id` /
`requester_id` query parameters, since authentication lives in a separate service)
and client IP to the logging contextvars, and measures latency.
"""

import time
import uuid
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.logging_config import (
    bind_request_context,
    log_request,
    reset_request_context,
)
from fastapi import Request, Response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests/responses with timing and correlation metadata."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        user_id = request.query_params.get("user_id") or request.query_params.get(
            "requester_id"
        )
        ip_address = request.client.host if request.client else "unknown"

        tokens = bind_request_context(
            request_id=request_id, user_id=user_id, ip_address=ip_address
        )

        start_time = time.time()

        response: Optional[Response] = None
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.time() - start_time) * 1000

            log_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code if response else 500,
                duration_ms=duration_ms,
                ip_address=ip_address,
                user_id=user_id,
                request_id=request_id,
            )
            reset_request_context(tokens)

        response.headers["X-Request-ID"] = request_id
        return response
