"""
Forecast periods: which calendar days a request covers.

- current week: 7 consecutive days starting today (offsets 0..6)
- next week, weekday N (Monday=0): one day, the occurrence of N that comes
  after the next one, so always 7 to 13 days out
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

from ensemble.errors import InvalidPeriodError

CURRENT_WEEK = "current_week"
NEXT_WEEK = "next_week"
DAYS_IN_WEEK = 7


@dataclass(frozen=True)
class ForecastPeriod:
    kind: str = CURRENT_WEEK
    day: Optional[int] = None

    @classmethod
    def current_week(cls) -> "ForecastPeriod":
        return cls(CURRENT_WEEK)

    @classmethod
    def next_week(cls, day: int) -> "ForecastPeriod":
        period = cls(NEXT_WEEK, day)
        period.validate()
        return period

    @classmethod
    def from_query(cls, period: Optional[str] = None, day: Union[int, str, None] = None) -> "ForecastPeriod":
        """Build from the ``period`` and ``day`` query parameters."""
        kind = (period or CURRENT_WEEK).strip().lower()
        if kind == CURRENT_WEEK:
            return cls.current_week()
        if kind != NEXT_WEEK:
            raise InvalidPeriodError(f"Invalid period '{period}'. Use 'current_week' or 'next_week'")
        if day is None or (isinstance(day, str) and not day.strip()):
            raise InvalidPeriodError("Parameter 'day' is required when period is 'next_week'")
        try:
            day_number = int(day)
        except (TypeError, ValueError):
            raise InvalidPeriodError(f"Invalid day '{day}'. Must be an integer 0-6 (Monday=0)")
        return cls.next_week(day_number)

    def validate(self) -> None:
        if self.kind == CURRENT_WEEK:
            return
        if self.kind != NEXT_WEEK:
            raise InvalidPeriodError(f"Invalid period '{self.kind}'")
        if self.day is None or not 0 <= self.day < DAYS_IN_WEEK:
            raise InvalidPeriodError(f"Invalid day {self.day}. Must be 0-6 (Monday=0, Sunday=6)")

    def cache_key(self, city_name: str) -> str:
        city = city_name.strip().lower()
        if self.kind == NEXT_WEEK:
            return f"forecast:{city}:{NEXT_WEEK}:{self.day}"
        return f"forecast:{city}:{CURRENT_WEEK}"

    def day_offsets(self, today: date) -> List[int]:
        """Offsets from ``today`` for each target day, ascending."""
        self.validate()
        if self.kind == CURRENT_WEEK:
            return list(range(DAYS_IN_WEEK))
        return [next_week_offset(today, self.day)]


def next_week_offset(today: date, weekday: int) -> int:
    """Days from ``today`` to weekday N of next week, always in 7..13."""
    if not 0 <= weekday < DAYS_IN_WEEK:
        raise InvalidPeriodError(f"Invalid day {weekday}. Must be 0-6 (Monday=0, Sunday=6)")
    return (weekday - today.weekday()) % DAYS_IN_WEEK + DAYS_IN_WEEK
