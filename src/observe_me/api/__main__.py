"""
observe_me.api.__main__

Entrypoint for running the FastAPI application via `python -m observe_me.api`.

Responsibilities:
- Load settings.
- Build the telemetry pipeline and register it for third-party global lookups.
- Create the app and start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import uvicorn

from observe_me.api.app import create_app
from observe_me.observability.telemetry import TelemetryPipeline
from observe_me.settings import get_settings


def main() -> None:
    settings = get_settings()
    telemetry = TelemetryPipeline.from_settings(settings)
    telemetry.install_global()
    app = create_app(settings=settings, telemetry=telemetry)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# Export destination: set OTEL_EXPORTER_OTLP_ENDPOINT (e.g. http://localhost:4317 for an
# Aspire dashboard or an OpenTelemetry collector). Unset, telemetry stays local.
