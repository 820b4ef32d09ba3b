"""PieceJob API - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from piecejob import __version__
from piecejob.bootstrap import build_marketplace
from piecejob.config import MarketplaceConfig
from piecejob.marketplace.models import JobStatus
from piecejob.marketplace.service import (
    InvalidStateError,
    MarketplaceError,
    MarketplaceService,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

from .config import Settings, get_settings
from .rate_limit import limiter
from .routes import (
    bids_router,
    jobs_router,
    notifications_router,
    providers_router,
    safety_router,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
)


def status_for_error(exc: MarketplaceError) -> int:
    """HTTP status code for a marketplace error."""
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    code = status_for_error(exc)
    logger.info(f"{request.method} {request.url.path} | {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app(
    service: Optional[MarketplaceService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the API around a marketplace instance.

    Args:
        service: Marketplace to serve. Defaults to a new one built from the
            environment, seeded with demo data when ``seed_demo_data`` is set.
        settings: API settings. Defaults to ``get_settings()``.
    """
    settings = settings or get_settings()
    if service is None:
        service = build_marketplace(
            config=MarketplaceConfig.from_env(),
            seed=settings.seed_demo_data,
            instance_id="api",
            record_events=settings.record_events,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        logger.info(f"Starting PieceJob API (debug={settings.debug})")
        if settings.monitor_enabled and service.monitor is not None:
            service.monitor.start()
        yield
        # Shutdown
        if service.monitor is not None:
            await service.monitor.stop()
        logger.info("Shutting down PieceJob API")

    app = FastAPI(
        title="PieceJob API",
        description="Local services marketplace: jobs, bids and safety monitoring",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.marketplace = service
    app.state.settings = settings

    # Rate limiting. The route decorators share one process-wide limiter, so
    # the most recently created app decides whether limits are enforced.
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(jobs_router)
    app.include_router(bids_router)
    app.include_router(providers_router)
    app.include_router(safety_router)
    app.include_router(notifications_router)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "service": "piecejob-api",
            "version": __version__,
            "status": "ok",
        }

    @app.get("/health")
    async def health():
        """Detailed health check with marketplace and monitor state."""
        m: MarketplaceService = app.state.marketplace
        monitor_status = "disabled"
        monitored = 0
        if m.monitor is not None:
            monitor_status = "running" if m.monitor.is_running else "stopped"
            monitored = len(m.monitor.active_job_ids())

        expected_running = settings.monitor_enabled and m.monitor is not None
        overall = "degraded" if expected_running and monitor_status != "running" else "healthy"

        return {
            "status": overall,
            "monitor": monitor_status,
            "monitored_jobs": monitored,
            "open_jobs": len(m.list_jobs(status=JobStatus.POSTED)),
        }

    return app
