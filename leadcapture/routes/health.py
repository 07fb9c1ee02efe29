# leadcapture/routes/health.py
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from leadcapture.core.exceptions import StoreError
from leadcapture.core.logging import get_structlog_logger
from leadcapture.schemas.health import HealthResponse, ServiceInfo, StoreDiagnostic

logger = get_structlog_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness probe. No side effects."""
    return HealthResponse()


@router.get("/", response_model=ServiceInfo)
async def root(request: Request):
    settings = request.app.state.settings
    return ServiceInfo(
        name=request.app.title,
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/api/debug-supabase",
    response_model=StoreDiagnostic,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def debug_store(request: Request, x_debug_token: Optional[str] = Header(None)):
    """Operator-only store connectivity check. Disabled unless DEBUG_TOKEN is set."""
    settings = request.app.state.settings
    if not settings.debug_token:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    if not x_debug_token or not hmac.compare_digest(x_debug_token, settings.debug_token):
        logger.warning("debug.unauthorized", client_ip=request.client.host if request.client else "unknown")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    try:
        result = await request.app.state.store.ping()
    except StoreError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=StoreDiagnostic(
                status="Connection Failed",
                error=e.details.get("error"),
                code=e.details.get("code"),
            ).model_dump(exclude_none=True),
        )

    logger.info("debug.store_connected", rows=result.get("rows"))
    return StoreDiagnostic(status="Connected", rows=result.get("rows"))
