"""Pydantic models for the ensemble forecast.

All models are frozen: a forecast is assembled once and then only read,
cached and serialized.
"""
from datetime import date as date_type
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Provider(str, Enum):
    """External forecast sources, declared most- to least-trusted."""
    OPEN_METEO = "open_meteo"
    OPEN_WEATHER = "open_weather"
    WEATHER_API = "weather_api"


# Priority order used for weighting and vote tie-breaks
PROVIDER_PRIORITY: tuple[Provider, ...] = (
    Provider.OPEN_METEO,
    Provider.OPEN_WEATHER,
    Provider.WEATHER_API,
)


# Condition reported when nothing could be categorised or nobody voted
UNKNOWN_CONDITION = "Unknown"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _validate_iso_date(value: str) -> str:
    try:
        date_type.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"date must be an ISO 8601 calendar date, got {value!r}")
    return value


class ProviderForecast(BaseModel):
    """One provider's claim for one day."""
    model_config = ConfigDict(frozen=True)

    date: str
    temp_max: float
    temp_min: float
    condition: str = Field(..., min_length=1)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _validate_iso_date(v)

    @model_validator(mode="after")
    def validate_temperature_order(self) -> "ProviderForecast":
        if self.temp_max < self.temp_min:
            raise ValueError(f"temp_max {self.temp_max} is below temp_min {self.temp_min}")
        return self


class PerSourceData(BaseModel):
    """Up to three provider forecasts for one day, one slot per provider."""
    model_config = ConfigDict(frozen=True)

    open_meteo: Optional[ProviderForecast] = None
    open_weather: Optional[ProviderForecast] = None
    weather_api: Optional[ProviderForecast] = None

    @classmethod
    def from_outcomes(cls, forecasts: dict[Provider, ProviderForecast]) -> "PerSourceData":
        return cls(**{provider.value: forecast for provider, forecast in forecasts.items()})

    def get(self, provider: Provider) -> Optional[ProviderForecast]:
        return getattr(self, provider.value)

    def present(self) -> list[tuple[Provider, ProviderForecast]]:
        """Present forecasts in provider priority order."""
        return [
            (provider, self.get(provider))
            for provider in PROVIDER_PRIORITY
            if self.get(provider) is not None
        ]

    def provider_count(self) -> int:
        return len(self.present())

    def is_empty(self) -> bool:
        return self.provider_count() == 0

    def max_temperatures(self) -> list[float]:
        return [forecast.temp_max for _, forecast in self.present()]

    def min_temperatures(self) -> list[float]:
        return [forecast.temp_min for _, forecast in self.present()]


class FinalForecast(BaseModel):
    """Reconciled result for one day."""
    model_config = ConfigDict(frozen=True)

    temp_max: float
    temp_min: float
    condition: str
    confidence: Confidence

    @model_validator(mode="after")
    def validate_temperature_order(self) -> "FinalForecast":
        if self.temp_max < self.temp_min:
            raise ValueError(f"temp_max {self.temp_max} is below temp_min {self.temp_min}")
        return self


class DayEnsemble(BaseModel):
    """Per-source data plus the reconciled forecast for one calendar day.

    ``final_forecast`` is None only when every provider failed for the day,
    in which case ``per_source`` is empty.
    """
    model_config = ConfigDict(frozen=True)

    date: str
    per_source: PerSourceData = Field(default_factory=PerSourceData)
    final_forecast: Optional[FinalForecast] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _validate_iso_date(v)


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat()


class EnsembleForecast(BaseModel):
    """Top-level multi-day response, cached by value."""
    model_config = ConfigDict(frozen=True)

    city: str
    province: str
    country: str
    latitude: float
    longitude: float
    source_timestamp: str = Field(default_factory=_now_rfc3339)
    days: tuple[DayEnsemble, ...] = ()


class WeatherForecast(BaseModel):
    """Forecast from a single provider, the first one in priority order that answered."""
    model_config = ConfigDict(frozen=True)

    city: str
    province: str
    country: str
    latitude: float
    longitude: float
    provider: Provider
    last_updated: str = Field(default_factory=_now_rfc3339)
    forecast: tuple[ProviderForecast, ...] = ()


__all__ = [
    "Provider",
    "PROVIDER_PRIORITY",
    "UNKNOWN_CONDITION",
    "Confidence",
    "ProviderForecast",
    "PerSourceData",
    "FinalForecast",
    "DayEnsemble",
    "EnsembleForecast",
    "WeatherForecast",
]
