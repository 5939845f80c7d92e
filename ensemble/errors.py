"""Forecast error taxonomy.

Every error that can reach a caller carries a stable ``code``, an HTTP-class
``status_code`` and a human-readable ``message``. Status mapping to actual
responses happens in the API layer.
"""
from typing import Optional


class ForecastError(Exception):
    """Base class for errors surfaced by the ensemble engine."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ForecastError):
    """Malformed request input (city name, period, day)."""

    code = "INVALID_INPUT"
    status_code = 400


class InvalidPeriodError(InvalidInputError):
    """Period selector that cannot be turned into target dates."""


class CityNotFoundError(ForecastError):
    code = "CITY_NOT_FOUND"
    status_code = 404

    def __init__(self, name: str):
        super().__init__(f"City '{name}' not found in database")
        self.name = name


class NoProviderDataError(ForecastError):
    """Reconciliation was asked to work on a day with zero providers."""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503


class DayFetchError(ForecastError):
    """All providers were absent or failed for a single day."""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503

    def __init__(self, day_offset: int, reason: Optional[str] = None):
        message = f"All providers failed for day {day_offset}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.day_offset = day_offset


class TooManyFailedDaysError(ForecastError):
    code = "SERVICE_UNAVAILABLE"
    status_code = 503

    def __init__(self, failed: int, total: int):
        super().__init__(f"Too many failed days: {failed}/{total}")
        self.failed = failed
        self.total = total


__all__ = [
    "ForecastError",
    "InvalidInputError",
    "InvalidPeriodError",
    "CityNotFoundError",
    "NoProviderDataError",
    "DayFetchError",
    "TooManyFailedDaysError",
]
