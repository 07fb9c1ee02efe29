# leadcapture/main.py
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from leadcapture.core.config import Settings, get_settings
from leadcapture.core.exceptions import BaseAPIException
from leadcapture.core.logging import configure_structlog, get_structlog_logger
from leadcapture.middleware.logging import LoggingMiddleware
from leadcapture.middleware.origin import OriginGateMiddleware, OriginPolicy
from leadcapture.routes import health, leads
from leadcapture.schemas.lead import LeadError
from leadcapture.services.background import BackgroundTaskRegistry
from leadcapture.services.forms import build_form
from leadcapture.services.lead_intake import LeadIntake
from leadcapture.services.lead_store import LeadStore, SupabaseLeadStore, connect_supabase_store
from leadcapture.services.notifier import Notifier, build_resend_notifier

logger = get_structlog_logger(__name__)

GENERIC_SERVER_ERROR = "Errore server"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build outbound clients once per process; drain notification tasks on shutdown."""
    settings: Settings = app.state.settings
    logger.info("application.starting", environment=settings.environment, form=settings.lead_form)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            integrations=[StarletteIntegration(), FastApiIntegration()],
            traces_sample_rate=0.0,
            send_default_pii=False,
        )
        logger.info("sentry.initialized")

    if not app.state.origin_policy.enabled:
        logger.warning("origin.enforcement_disabled", reason="no allowed origins configured")

    owned_store: Optional[SupabaseLeadStore] = None
    if app.state.store is None:
        owned_store = await connect_supabase_store(settings)
        app.state.store = owned_store

    http_client: Optional[httpx.AsyncClient] = None
    if app.state.notifier is None and settings.notify_enabled:
        http_client = httpx.AsyncClient(timeout=settings.notify_timeout_seconds)
        app.state.notifier = build_resend_notifier(settings, http_client)
        logger.info("notifier.enabled", recipients=len(settings.notify_recipients()))

    tasks = BackgroundTaskRegistry()
    app.state.tasks = tasks
    app.state.intake = LeadIntake(
        form=build_form(settings.lead_form, settings.roles(), settings.revenue_brackets()),
        store=app.state.store,
        tasks=tasks,
        notifier=app.state.notifier,
        legacy_columns=settings.legacy_columns,
        default_source=settings.default_source,
    )

    logger.info("application.started")
    yield

    logger.info("application.shutting_down")
    await tasks.drain(settings.shutdown_grace_seconds)
    if http_client is not None:
        await http_client.aclose()
    if owned_store is not None:
        await owned_store.close()
        app.state.store = None
    logger.info("application.shutdown_complete")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[LeadStore] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """Assemble the application. ``store`` and ``notifier`` default to the Supabase and Resend clients."""
    settings = settings or get_settings()
    configure_structlog(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Lead Capture API",
        version=settings.app_version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )
    policy = OriginPolicy(settings.origins(), settings.origin_suffix())
    app.state.settings = settings
    app.state.origin_policy = policy
    app.state.store = store
    app.state.notifier = notifier

    # Last added runs first: logging, then CORS, then the origin gate.
    app.add_middleware(OriginGateMiddleware, policy=policy)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=policy.origins if policy.enabled else ["*"],
        allow_origin_regex=policy.cors_regex(),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(BaseAPIException, api_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(health.router)
    app.include_router(leads.router)

    logger.info("application.configured", environment=settings.environment, origins=policy.origins)
    return app


async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Client sees ``exc.message`` only; details go to the log."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "api.exception",
        status_code=exc.status_code,
        code=exc.code,
        path=request.url.path,
        method=request.method,
        details=exc.details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=LeadError(error=exc.message).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception):
    error_id = f"err_{int(time.time())}_{hash(str(exc)) % 10000:04d}"
    logger.error(
        "unhandled.exception",
        error_id=error_id,
        error_type=type(exc).__name__,
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=LeadError(error=GENERIC_SERVER_ERROR).model_dump(),
        headers={"X-Error-ID": error_id},
    )
