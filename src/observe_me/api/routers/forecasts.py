"""
observe_me.api.routers.forecasts

Weather forecast endpoint.

Responsibilities:
- Serve `GET /weatherforecast` as a JSON array of forecasts.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from observe_me.api.deps import forecast_service_dep
from observe_me.services.forecast_service import ForecastService, WeatherForecast

router = APIRouter()


@router.get("/weatherforecast", response_model=list[WeatherForecast])
async def weather_forecast(
    service: ForecastService = Depends(forecast_service_dep),
) -> list[WeatherForecast]:
    # Telemetry is emitted inside the service; only payload errors propagate (as 500).
    return service.send_forecasts()
