"""
Confidence Scorer — how much the providers agree on one day.

Spread is the maximum absolute deviation from the mean, taken separately for
the max and min temperature series and then averaged. ``classify`` turns
(provider count, spread, condition agreement) into a tier; rows are tried in
order and the last one catches everything, so every input has a tier.
"""

import math
from dataclasses import dataclass
from typing import Sequence

from ensemble.models import Confidence, PerSourceData

HIGH_SPREAD_WITH_CONSENSUS = 2.0
HIGH_SPREAD_ANY_AGREEMENT = 1.5
MEDIUM_SPREAD_THREE = 4.0
MEDIUM_SPREAD_TWO = 3.0
CONSENSUS_AGREEMENT = 2 / 3
_EPS = 1e-9


def max_deviation(values: Sequence[float]) -> float:
    """Largest |v - mean|; 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return max(abs(v - mean) for v in values)


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def temperature_spread(per_source: PerSourceData) -> float:
    return (
        max_deviation(per_source.max_temperatures())
        + max_deviation(per_source.min_temperatures())
    ) / 2


def classify(provider_count: int, spread: float, agreement: float) -> Confidence:
    """Map (provider count, spread °C, agreement 0-1) to a confidence tier."""
    if provider_count <= 1:
        return Confidence.LOW
    if provider_count == 3:
        if spread <= HIGH_SPREAD_WITH_CONSENSUS and agreement + _EPS >= CONSENSUS_AGREEMENT:
            return Confidence.HIGH
        if spread <= HIGH_SPREAD_ANY_AGREEMENT:
            return Confidence.HIGH
        if spread <= MEDIUM_SPREAD_THREE:
            return Confidence.MEDIUM
        return Confidence.LOW
    if provider_count == 2 and spread <= MEDIUM_SPREAD_TWO:
        return Confidence.MEDIUM
    return Confidence.LOW


def calculate_confidence(per_source: PerSourceData, agreement: float) -> Confidence:
    return classify(per_source.provider_count(), temperature_spread(per_source), agreement)


@dataclass(frozen=True)
class ConfidenceDetails:
    """Breakdown logged alongside each reconciled day."""
    tier: Confidence
    score: float
    max_temp_deviation: float
    min_temp_deviation: float
    temp_stddev: float
    condition_agreement: float
    provider_count: int


def confidence_details(per_source: PerSourceData, agreement: float) -> ConfidenceDetails:
    """Tier plus a 0-1 score: agreement scaled down by the temperature stddev.

    ``score = agreement * (1 - min(stddev / 10, 1))`` over every max and min
    temperature reported for the day.
    """
    all_temps = per_source.max_temperatures() + per_source.min_temperatures()
    sd = stddev(all_temps)
    score = agreement * (1.0 - min(sd / 10.0, 1.0))
    return ConfidenceDetails(
        tier=calculate_confidence(per_source, agreement),
        score=round(min(max(score, 0.0), 1.0), 3),
        max_temp_deviation=max_deviation(per_source.max_temperatures()),
        min_temp_deviation=max_deviation(per_source.min_temperatures()),
        temp_stddev=sd,
        condition_agreement=agreement,
        provider_count=per_source.provider_count(),
    )
