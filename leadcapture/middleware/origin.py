# leadcapture/middleware/origin.py
from __future__ import annotations

import re
from typing import Optional, Sequence

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from leadcapture.core.logging import get_structlog_logger

logger = get_structlog_logger(__name__)


class OriginPolicy:
    """Allow-list of browser origins.

    Accepts exact origins, a subdomain suffix (``.example.it`` matches
    ``https://www.example.it``), or both. With neither configured the policy is
    disabled and every origin passes.
    """

    def __init__(self, origins: Sequence[str] = (), suffix: Optional[str] = None):
        self.origins = [origin.rstrip("/") for origin in origins if origin]
        self.suffix = suffix or None
        self._suffix_pattern = re.compile(self.cors_regex()) if self.suffix else None

    @property
    def enabled(self) -> bool:
        return bool(self.origins or self.suffix)

    def cors_regex(self) -> Optional[str]:
        if not self.suffix:
            return None
        domain = self.suffix.lstrip(".")
        return rf"https?://([A-Za-z0-9-]+\.)*{re.escape(domain)}(:\d+)?"

    def is_allowed(self, origin: Optional[str]) -> bool:
        # No Origin header: server-to-server calls and tooling.
        if not origin:
            return True
        if not self.enabled:
            return True
        if origin.rstrip("/") in self.origins:
            return True
        return bool(self._suffix_pattern and self._suffix_pattern.fullmatch(origin))


class OriginGateMiddleware(BaseHTTPMiddleware):
    """Refuse requests from origins outside the allow-list before they reach a route.

    The refusal is a bare 403 without CORS headers, so browsers report a failed
    cross-origin request instead of handing the page a JSON error body.
    """

    def __init__(self, app, policy: OriginPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")
        if not self.policy.is_allowed(origin):
            logger.warning(
                "origin.blocked",
                origin=origin,
                method=request.method,
                path=request.url.path,
            )
            return PlainTextResponse(f"CORS blocked for origin: {origin}", status_code=403)
        return await call_next(request)
