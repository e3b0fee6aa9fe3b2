"""
observe_me.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the service and its telemetry.
- Read the OTLP export destination from the standard OpenTelemetry variables.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    - Strict env-driven configuration
    - Defaults safe for local dev (no export destination, console logs only)
    - Read once at startup, then passed explicitly
    """

    model_config = SettingsConfigDict(
        env_prefix="OBSERVE_ME_",
        case_sensitive=False,
        populate_by_name=True,
    )

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "observe-me"
    service_version: str = "1.0.0"
    log_level: str = "INFO"
    log_renderer: Literal["json", "console"] = "json"

    api_host: str = "0.0.0.0"
    api_port: int = 8080
    https_redirect: bool = False

    # Number of records returned per forecast request.
    forecast_days: int = Field(default=5, ge=0)

    # Export destination; absent means local-only telemetry.
    otlp_endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "OTEL_EXPORTER_OTLP_ENDPOINT", "OBSERVE_ME_OTLP_ENDPOINT"
        ),
    )
    otlp_protocol: Literal["grpc", "http/protobuf"] = Field(
        default="grpc",
        validation_alias=AliasChoices(
            "OTEL_EXPORTER_OTLP_PROTOCOL", "OBSERVE_ME_OTLP_PROTOCOL"
        ),
    )
    otlp_insecure: bool = True
    otlp_timeout: float = 10.0

    # Batching is tuning, not contract.
    metric_export_interval_ms: int = 60_000
    console_export: bool = False

    @field_validator("otlp_endpoint", mode="before")
    @classmethod
    def _blank_endpoint_is_absent(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def export_enabled(self) -> bool:
        return self.otlp_endpoint is not None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Configuration is immutable for the life of the process.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# OTEL_EXPORTER_OTLP_ENDPOINT is read without the service prefix: the same variable
# configures every OpenTelemetry-aware process in a deployment.
