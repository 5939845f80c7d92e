"""
Ensemble weather forecasting engine
- Per-day concurrent fetch from three providers with partial-failure tolerance
- Weighted temperature averaging and priority-tie-broken condition voting
- Confidence tiers from temperature spread and condition agreement
- TTL + capacity bounded cache with single-flight population
- Worker pool bounding concurrent day fetches
- Single-source fallback forecast (first provider that answers)
"""

from .models import (
    Confidence,
    DayEnsemble,
    EnsembleForecast,
    FinalForecast,
    PerSourceData,
    Provider,
    ProviderForecast,
    PROVIDER_PRIORITY,
    UNKNOWN_CONDITION,
    WeatherForecast,
)
from .errors import (
    CityNotFoundError,
    DayFetchError,
    ForecastError,
    InvalidInputError,
    InvalidPeriodError,
    NoProviderDataError,
    TooManyFailedDaysError,
)
from .averaging import weighted_average, PROVIDER_WEIGHTS, NO_DATA_SENTINEL
from .voting import Vote, majority_vote
from .confidence import classify, calculate_confidence, confidence_details, max_deviation
from .reconcile import reconcile
from .cache import ForecastCache
from .worker_pool import WorkerPool, default_worker_count
from .periods import ForecastPeriod
from .cities import City, Gazetteer, validate_city_input
from .fetcher import DayFetcher, OutcomeStatus, ProviderOutcome
from .orchestrator import EnsembleOrchestrator
from .fallback import SingleSourceForecaster

__all__ = [
    "Confidence",
    "DayEnsemble",
    "EnsembleForecast",
    "FinalForecast",
    "PerSourceData",
    "Provider",
    "ProviderForecast",
    "PROVIDER_PRIORITY",
    "UNKNOWN_CONDITION",
    "WeatherForecast",
    "CityNotFoundError",
    "DayFetchError",
    "ForecastError",
    "InvalidInputError",
    "InvalidPeriodError",
    "NoProviderDataError",
    "TooManyFailedDaysError",
    "weighted_average",
    "PROVIDER_WEIGHTS",
    "NO_DATA_SENTINEL",
    "Vote",
    "majority_vote",
    "classify",
    "calculate_confidence",
    "confidence_details",
    "max_deviation",
    "reconcile",
    "ForecastCache",
    "WorkerPool",
    "default_worker_count",
    "ForecastPeriod",
    "City",
    "Gazetteer",
    "validate_city_input",
    "DayFetcher",
    "OutcomeStatus",
    "ProviderOutcome",
    "EnsembleOrchestrator",
    "SingleSourceForecaster",
]
