"""
observe_me.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for the telemetry pipeline and services.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Request

from observe_me.observability.telemetry import TelemetryPipeline
from observe_me.services.forecast_service import ForecastService


def telemetry_dep(request: Request) -> TelemetryPipeline:
    # The pipeline is created once in `observe_me.api.app.create_app`.
    return request.app.state.telemetry  # type: ignore[attr-defined]


def forecast_service_dep(request: Request) -> ForecastService:
    return request.app.state.forecast_service  # type: ignore[attr-defined]


# --- Module Notes -----------------------------------------------------------
# Components only reference the pipeline; ownership stays with the app.
