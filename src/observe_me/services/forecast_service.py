"""
observe_me.services.forecast_service

Weather forecast service (the instrumented operation).

Responsibilities:
- Generate a small batch of random forecasts.
- Wrap each invocation in one span, one log line and one counter increment.
"""

from __future__ import annotations

import datetime as dt
import random
from collections.abc import Callable
from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, computed_field

from observe_me.observability.logging import get_logger
from observe_me.observability.telemetry import SOURCE_NAME, TelemetryPipeline

log = get_logger(__name__)

SUMMARIES = (
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
)

MIN_TEMPERATURE_C = -20
MAX_TEMPERATURE_C = 54

SPAN_NAME = "WeatherForecastActivity"
FORECAST_TAG = "forecast"
FORECAST_TAG_VALUE = f"Proudly provided by {SOURCE_NAME}"


class WeatherForecast(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: dt.date
    temperature_c: int = Field(alias="temperatureC")
    summary: str | None = None

    @computed_field(alias="temperatureF")  # type: ignore[prop-decorator]
    @property
    def temperature_f(self) -> int:
        return 32 + int(self.temperature_c / 0.5556)


class ForecastService:
    """
    Produces forecasts and the telemetry that goes with them.

    Per invocation the order is fixed: open span, log, build payload, add to the
    counter, tag the span, close the span. The span is closed on every exit path;
    a failure while building the payload is recorded on it before propagating.
    """

    def __init__(
        self,
        *,
        telemetry: TelemetryPipeline,
        days: int = 5,
        rng: random.Random | None = None,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self._telemetry = telemetry
        self._days = days
        self._rng = rng or random.Random()
        self._today = today

    def send_forecasts(self) -> list[WeatherForecast]:
        with self._telemetry.tracer.start_as_current_span(SPAN_NAME) as span:
            log.info("Sending forecasts", days=self._days)

            forecasts = self._build_forecasts()

            self._telemetry.forecast_counter.add(len(forecasts))
            span.set_attribute(FORECAST_TAG, FORECAST_TAG_VALUE)
            return forecasts

    def _build_forecasts(self) -> list[WeatherForecast]:
        start = self._today()
        return [
            WeatherForecast(
                date=start + timedelta(days=offset),
                temperature_c=self._rng.randint(MIN_TEMPERATURE_C, MAX_TEMPERATURE_C),
                summary=self._rng.choice(SUMMARIES),
            )
            for offset in range(1, self._days + 1)
        ]


# --- Module Notes -----------------------------------------------------------
# Telemetry export happens on the pipeline's background workers; nothing here waits for it.
