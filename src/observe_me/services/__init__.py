"""
observe_me.services

Service-layer package.

Responsibilities:
- Produce response payloads.
- Emit spans, logs and metrics through the injected telemetry pipeline.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services take the pipeline as a constructor argument, which keeps them testable with
# in-memory exporters.
