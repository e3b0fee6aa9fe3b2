"""
observe_me.api.app

FastAPI app factory for the Observe.Me service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own the telemetry pipeline for the life of the app and wire it into logging and HTTP.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware

from observe_me import __version__
from observe_me.api.routers.forecasts import router as forecasts_router
from observe_me.api.routers.health import router as health_router
from observe_me.observability.logging import configure_logging, get_logger
from observe_me.observability.middleware import RequestContextMiddleware
from observe_me.observability.telemetry import TelemetryPipeline
from observe_me.services.forecast_service import ForecastService
from observe_me.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, telemetry: TelemetryPipeline | None = None) -> FastAPI:
    # One pipeline per app; the OTLP exporters are attached only if an endpoint is configured.
    telemetry = telemetry or TelemetryPipeline.from_settings(settings)

    # Configure logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        renderer=settings.log_renderer,
        handlers=[telemetry.logging_handler()],
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info(
            "startup",
            env=settings.env,
            telemetry_export="otlp" if telemetry.exporting else "local",
        )
        try:
            yield
        finally:
            log.info("shutdown")
            # Flushes pending batches; export errors are handled inside the SDK.
            telemetry.shutdown()

    app = FastAPI(
        title="Observe.Me",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.telemetry = telemetry
    app.state.forecast_service = ForecastService(
        telemetry=telemetry,
        days=settings.forecast_days,
    )

    app.add_middleware(RequestContextMiddleware)
    if settings.https_redirect:
        app.add_middleware(HTTPSRedirectMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(forecasts_router, tags=["forecasts"])

    # Server spans and HTTP metrics wrap everything registered above.
    telemetry.instrument_app(app)
    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; payload logic stays in the service layer.
