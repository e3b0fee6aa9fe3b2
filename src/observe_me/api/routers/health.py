"""
observe_me.api.routers.health

Health endpoint.

Responsibilities:
- Provide liveness probe (`/healthz`), excluded from HTTP instrumentation.
- Report whether telemetry is being exported or kept local.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from observe_me.api.deps import telemetry_dep
from observe_me.observability.telemetry import TelemetryPipeline

router = APIRouter()


@router.get("/healthz")
async def healthz(telemetry: TelemetryPipeline = Depends(telemetry_dep)) -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {
        "status": "ok",
        "telemetry_export": "otlp" if telemetry.exporting else "local",
    }
