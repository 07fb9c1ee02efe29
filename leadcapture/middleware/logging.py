# leadcapture/middleware/logging.py
from __future__ import annotations

import time
import uuid
from typing import Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from leadcapture.core.logging import get_structlog_logger, set_request_id

logger = get_structlog_logger(__name__)

QUIET_PATHS = ("/health",)
SENSITIVE_HEADERS = ("authorization", "cookie", "x-debug-token", "apikey", "token", "secret")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request ID to the log context and log each request/response pair."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        set_request_id(request_id)
        quiet = request.url.path in QUIET_PATHS

        try:
            if not quiet:
                logger.info(
                    "request.received",
                    method=request.method,
                    path=request.url.path,
                    origin=request.headers.get("origin"),
                    client_ip=request.client.host if request.client else "unknown",
                    content_length=request.headers.get("content-length", "0"),
                    headers=filter_headers(request.headers),
                )

            response = await call_next(request)

            response_time_ms = (time.perf_counter() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{response_time_ms / 1000:.3f}"

            if not quiet:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "response.sent",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    response_time_ms=round(response_time_ms, 2),
                )
            return response
        finally:
            set_request_id(None)


def filter_headers(headers) -> Dict[str, str]:
    """Redact credentials from logged headers."""
    filtered = {}
    for key, value in headers.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_HEADERS):
            filtered[key] = "[REDACTED]"
        else:
            filtered[key] = value
    return filtered
