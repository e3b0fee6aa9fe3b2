"""
observe_me.observability.telemetry

OpenTelemetry export pipeline for traces, metrics and logs.

Responsibilities:
- Build one explicitly owned pipeline (tracer, meter and logger providers) per process.
- Declare the service's own span source and forecast counter.
- Attach OTLP exporters only when an export destination is configured.
- Register instrumentation scopes by name; telemetry from other scopes is not exported.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import httpx
from fastapi import FastAPI
from opentelemetry import _logs, metrics, trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import (
    OTLPLogExporter as GrpcLogExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
    OTLPMetricExporter as GrpcMetricExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
    OTLPSpanExporter as GrpcSpanExporter,
)
from opentelemetry.exporter.otlp.proto.http._log_exporter import (
    OTLPLogExporter as HttpLogExporter,
)
from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
    OTLPMetricExporter as HttpMetricExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter as HttpSpanExporter,
)
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.metrics import Counter, Meter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler, LogRecordProcessor
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    ConsoleLogExporter,
    LogExporter,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.metrics.view import DropAggregation, View
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.trace import Tracer

from observe_me.settings import Settings

# Span source and meter of the service itself.
SOURCE_NAME = "Observe.Me"
SOURCE_VERSION = "1.0.0"

FORECAST_COUNTER_NAME = "forecasts.count"
FORECAST_COUNTER_DESCRIPTION = "Counts the number of weather forecasts sent"

# Built-in instrumentation for the HTTP server and client layers.
HTTP_INSTRUMENTATION_SCOPES = (
    "opentelemetry.instrumentation.fastapi",
    "opentelemetry.instrumentation.asgi",
    "opentelemetry.instrumentation.httpx",
)

REGISTERED_SCOPES = frozenset((SOURCE_NAME, *HTTP_INSTRUMENTATION_SCOPES))


@dataclass(frozen=True, slots=True)
class OtlpExporters:
    spans: SpanExporter
    metrics: MetricExporter
    logs: LogExporter


def build_otlp_exporters(settings: Settings) -> OtlpExporters:
    """
    OTLP exporters for the configured destination.

    The HTTP exporters take a full signal URL when given an explicit endpoint, so the
    standard `/v1/<signal>` paths are appended here; gRPC takes the endpoint as-is.
    """

    endpoint = settings.otlp_endpoint
    if endpoint is None:
        raise ValueError("no OTLP endpoint configured")

    if settings.otlp_protocol == "http/protobuf":
        base = endpoint.rstrip("/")
        return OtlpExporters(
            spans=HttpSpanExporter(endpoint=f"{base}/v1/traces", timeout=settings.otlp_timeout),
            metrics=HttpMetricExporter(
                endpoint=f"{base}/v1/metrics", timeout=settings.otlp_timeout
            ),
            logs=HttpLogExporter(endpoint=f"{base}/v1/logs", timeout=settings.otlp_timeout),
        )

    return OtlpExporters(
        spans=GrpcSpanExporter(
            endpoint=endpoint, insecure=settings.otlp_insecure, timeout=settings.otlp_timeout
        ),
        metrics=GrpcMetricExporter(
            endpoint=endpoint, insecure=settings.otlp_insecure, timeout=settings.otlp_timeout
        ),
        logs=GrpcLogExporter(
            endpoint=endpoint, insecure=settings.otlp_insecure, timeout=settings.otlp_timeout
        ),
    )


class ScopeFilterSpanProcessor(SpanProcessor):
    """
    Forwards only spans whose instrumentation scope is registered.
    Spans from other tracers are still created and closed, just never exported.
    """

    def __init__(self, delegate: SpanProcessor, scopes: Iterable[str]) -> None:
        self._delegate = delegate
        self._scopes = frozenset(scopes)

    def _accepts(self, span: ReadableSpan) -> bool:
        scope = span.instrumentation_scope
        return scope is not None and scope.name in self._scopes

    def on_start(self, span: Span, parent_context: Context | None = None) -> None:
        if self._accepts(span):
            self._delegate.on_start(span, parent_context=parent_context)

    def on_end(self, span: ReadableSpan) -> None:
        if self._accepts(span):
            self._delegate.on_end(span)

    def shutdown(self) -> None:
        self._delegate.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._delegate.force_flush(timeout_millis)


def registered_meter_views(meter_names: Iterable[str]) -> list[View]:
    # Every instrument matches the drop view; registered meters also get a default stream.
    views = [View(instrument_name="*", aggregation=DropAggregation())]
    views.extend(View(instrument_name="*", meter_name=name) for name in meter_names)
    return views


class _ExcludeLoggers(logging.Filter):
    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self._prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(self._prefixes)


class TelemetryPipeline:
    """
    Process-wide telemetry pipeline, created once at startup and handed to the
    components that emit telemetry.

    With or without an export destination the pipeline has the same shape: spans are
    created and closed, the counter accumulates and logs are emitted. Only the OTLP
    exporters are omitted when no destination is configured.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        span_processors: Sequence[SpanProcessor] = (),
        metric_readers: Sequence[MetricReader] = (),
        log_processors: Sequence[LogRecordProcessor] = (),
    ) -> None:
        self._shutdown = False
        self._logging_handler: LoggingHandler | None = None

        self.resource = Resource.create(
            {
                SERVICE_NAME: settings.service_name,
                SERVICE_VERSION: settings.service_version,
            }
        )

        span_sinks: list[SpanProcessor] = list(span_processors)
        readers: list[MetricReader] = list(metric_readers)
        log_sinks: list[LogRecordProcessor] = list(log_processors)

        exporters = build_otlp_exporters(settings) if settings.export_enabled else None
        self.exporting = exporters is not None
        if exporters is not None:
            span_sinks.append(BatchSpanProcessor(exporters.spans))
            readers.append(
                PeriodicExportingMetricReader(
                    exporters.metrics,
                    export_interval_millis=settings.metric_export_interval_ms,
                )
            )
            log_sinks.append(BatchLogRecordProcessor(exporters.logs))

        if settings.console_export:
            span_sinks.append(BatchSpanProcessor(ConsoleSpanExporter()))
            readers.append(
                PeriodicExportingMetricReader(
                    ConsoleMetricExporter(),
                    export_interval_millis=settings.metric_export_interval_ms,
                )
            )
            log_sinks.append(BatchLogRecordProcessor(ConsoleLogExporter()))

        self.tracer_provider = TracerProvider(resource=self.resource)
        for processor in span_sinks:
            self.tracer_provider.add_span_processor(
                ScopeFilterSpanProcessor(processor, REGISTERED_SCOPES)
            )

        self.meter_provider = MeterProvider(
            resource=self.resource,
            metric_readers=readers,
            views=registered_meter_views(REGISTERED_SCOPES),
        )

        self.logger_provider = LoggerProvider(resource=self.resource)
        for processor in log_sinks:
            self.logger_provider.add_log_record_processor(processor)

        self.tracer: Tracer = self.tracer_provider.get_tracer(SOURCE_NAME, SOURCE_VERSION)
        self.meter: Meter = self.meter_provider.get_meter(SOURCE_NAME, SOURCE_VERSION)
        self.forecast_counter: Counter = self.meter.create_counter(
            FORECAST_COUNTER_NAME,
            unit="{forecast}",
            description=FORECAST_COUNTER_DESCRIPTION,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> TelemetryPipeline:
        return cls(settings=settings)

    def logging_handler(self) -> LoggingHandler:
        """Stdlib handler that forwards log records into this pipeline's logger provider."""
        if self._logging_handler is None:
            handler = LoggingHandler(level=logging.NOTSET, logger_provider=self.logger_provider)
            # The SDK logs its own export problems; those must not loop back into export.
            handler.addFilter(_ExcludeLoggers("opentelemetry"))
            self._logging_handler = handler
        return self._logging_handler

    def instrument_app(self, app: FastAPI) -> None:
        # Server spans plus request duration / active request metrics.
        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=self.tracer_provider,
            meter_provider=self.meter_provider,
            excluded_urls="healthz",
        )

    def instrument_http_client(self, client: httpx.Client | httpx.AsyncClient) -> None:
        HTTPXClientInstrumentor.instrument_client(client, tracer_provider=self.tracer_provider)

    def install_global(self) -> None:
        """
        Register the providers with the OpenTelemetry API for third-party code that
        uses the global lookup. The API accepts this once per process.
        """
        trace.set_tracer_provider(self.tracer_provider)
        metrics.set_meter_provider(self.meter_provider)
        _logs.set_logger_provider(self.logger_provider)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        spans_ok = self.tracer_provider.force_flush(timeout_millis)
        metrics_ok = self.meter_provider.force_flush(timeout_millis)
        logs_ok = self.logger_provider.force_flush(timeout_millis)
        return bool(spans_ok and metrics_ok and logs_ok)

    def shutdown(self) -> None:
        if self._shutdown:
            return
        self._shutdown = True

        if self._logging_handler is not None:
            logging.getLogger().removeHandler(self._logging_handler)

        # Pending batches are flushed by each provider; transport errors stay inside the SDK.
        self.tracer_provider.shutdown()
        self.meter_provider.shutdown()
        self.logger_provider.shutdown()


# --- Module Notes -----------------------------------------------------------
# Batch sizes and export intervals are left to SDK defaults except the metric interval,
# which is exposed through `Settings.metric_export_interval_ms`.
