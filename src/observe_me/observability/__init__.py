"""
observe_me.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
- The OpenTelemetry pipeline shared by traces, metrics and logs.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Components receive the `TelemetryPipeline` explicitly; nothing here is looked up globally.
