"""
tests.conftest

Shared fixtures for telemetry-aware tests.

Responsibilities:
- Build pipelines whose signals land in OpenTelemetry in-memory exporters/readers.
- Run the app lifespan around httpx ASGI clients.
- Keep root logging handlers from leaking between tests.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from opentelemetry.sdk._logs.export import InMemoryLogExporter, SimpleLogRecordProcessor
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from observe_me.observability.telemetry import FORECAST_COUNTER_NAME, TelemetryPipeline
from observe_me.settings import Settings


@dataclass
class LocalSinks:
    spans: InMemorySpanExporter = field(default_factory=InMemorySpanExporter)
    metrics: InMemoryMetricReader = field(default_factory=InMemoryMetricReader)
    logs: InMemoryLogExporter = field(default_factory=InMemoryLogExporter)

    def finished_spans(self, name: str | None = None) -> list[ReadableSpan]:
        spans = list(self.spans.get_finished_spans())
        if name is None:
            return spans
        return [s for s in spans if s.name == name]

    def metric_names(self) -> set[str]:
        data = self.metrics.get_metrics_data()
        if data is None:
            return set()
        return {
            metric.name
            for rm in data.resource_metrics
            for sm in rm.scope_metrics
            for metric in sm.metrics
        }

    def counter_total(self, name: str = FORECAST_COUNTER_NAME) -> int:
        data = self.metrics.get_metrics_data()
        if data is None:
            return 0
        total = 0
        for rm in data.resource_metrics:
            for sm in rm.scope_metrics:
                for metric in sm.metrics:
                    if metric.name == name:
                        total += sum(point.value for point in metric.data.data_points)
        return total

    def log_records(self, body: str | None = None) -> list[Any]:
        # Exported items wrap the SDK log record.
        records = [getattr(item, "log_record", item) for item in self.logs.get_finished_logs()]
        if body is None:
            return records
        return [r for r in records if r.body == body]


@pytest.fixture
def sinks() -> LocalSinks:
    return LocalSinks()


@pytest.fixture
def make_pipeline(sinks: LocalSinks) -> Iterator[Callable[..., TelemetryPipeline]]:
    created: list[TelemetryPipeline] = []

    def factory(settings: Settings | None = None) -> TelemetryPipeline:
        pipeline = TelemetryPipeline(
            settings=settings or Settings(env="test", otlp_endpoint=None),
            span_processors=[SimpleSpanProcessor(sinks.spans)],
            metric_readers=[sinks.metrics],
            log_processors=[SimpleLogRecordProcessor(sinks.logs)],
        )
        created.append(pipeline)
        return pipeline

    yield factory

    for pipeline in created:
        pipeline.shutdown()


@pytest.fixture(autouse=True)
def _reset_root_handlers() -> Iterator[None]:
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_observe_me_handler", False):
            root.removeHandler(handler)


@asynccontextmanager
async def _serve(app: FastAPI, **transport_kwargs: Any) -> AsyncIterator[httpx.AsyncClient]:
    # httpx ASGITransport does not manage lifespan; run it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app, **transport_kwargs)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def serve() -> Callable[..., Any]:
    return _serve


# --- Module Notes -----------------------------------------------------------
# Pipelines built here never have an OTLP endpoint unless a test passes one explicitly.
