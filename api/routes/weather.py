"""Weather routes: cities, single-source and ensemble forecasts."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.deps import get_gazetteer, get_orchestrator, get_single_source
from api.models import CitiesResponse, CityResponse, ErrorResponse
from ensemble.cities import Gazetteer
from ensemble.fallback import SingleSourceForecaster
from ensemble.models import EnsembleForecast, WeatherForecast
from ensemble.orchestrator import EnsembleOrchestrator
from ensemble.periods import ForecastPeriod

logger = logging.getLogger(__name__)

router = APIRouter()

# Rate limiter (will use app.state.limiter at runtime)
limiter = Limiter(key_func=get_remote_address)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.get("/cities", response_model=CitiesResponse)
@limiter.limit("60/minute")
async def list_cities(
    request: Request,
    gazetteer: Gazetteer = Depends(get_gazetteer),
) -> CitiesResponse:
    """All cities a forecast can be requested for."""
    cities = [CityResponse(**c.model_dump()) for c in gazetteer.all()]
    return CitiesResponse(country=gazetteer.country, count=len(cities), cities=cities)


@router.get("/weather/ensemble", response_model=EnsembleForecast, responses=_ERROR_RESPONSES)
@limiter.limit("60/minute")
async def ensemble_forecast(
    request: Request,
    city: str = Query(..., description="City name, case-insensitive"),
    period: Optional[str] = Query(None, description="current_week (default) or next_week"),
    day: Optional[int] = Query(None, description="Weekday for next_week, Monday=0 .. Sunday=6"),
    orchestrator: EnsembleOrchestrator = Depends(get_orchestrator),
) -> EnsembleForecast:
    """Reconciled multi-provider forecast with per-day confidence.

    Period is parsed before the city is resolved so an invalid day never
    reaches the providers.
    """
    forecast_period = ForecastPeriod.from_query(period, day)
    forecast = await orchestrator.get_forecast_by_name(city, forecast_period)
    logger.info(f"Ensemble forecast for {forecast.city}: {len(forecast.days)} day(s)")
    return forecast


@router.get("/weather", response_model=WeatherForecast, responses=_ERROR_RESPONSES)
@limiter.limit("60/minute")
async def single_source_forecast(
    request: Request,
    city: str = Query(..., description="City name, case-insensitive"),
    forecaster: SingleSourceForecaster = Depends(get_single_source),
) -> WeatherForecast:
    """Seven days from the first provider that answers.

    Tries Open-Meteo, then OpenWeatherMap, then WeatherAPI. Not averaged and
    not cached; use /weather/ensemble for the reconciled forecast.
    """
    forecast = await forecaster.get_forecast_by_name(city)
    logger.info(f"Single-source forecast for {forecast.city} from {forecast.provider.value}")
    return forecast
