"""Turn one day's per-provider data into a single FinalForecast."""

from typing import Optional

from ensemble.averaging import weighted_average
from ensemble.confidence import calculate_confidence
from ensemble.errors import NoProviderDataError
from ensemble.models import FinalForecast, PerSourceData, PROVIDER_PRIORITY
from ensemble.voting import Vote, majority_vote


def reconcile(per_source: PerSourceData, vote: Optional[Vote] = None) -> FinalForecast:
    """Weighted temperatures, voted condition and confidence for one day.

    Pass ``vote`` when the caller already ran ``majority_vote`` over the same
    data; otherwise it is computed here.

    Raises:
        NoProviderDataError: no provider reported for the day
    """
    if per_source.is_empty():
        raise NoProviderDataError("No provider data to reconcile")

    temp_max = weighted_average({p: getattr(per_source.get(p), "temp_max", None) for p in PROVIDER_PRIORITY})
    temp_min = weighted_average({p: getattr(per_source.get(p), "temp_min", None) for p in PROVIDER_PRIORITY})

    if vote is None:
        vote = majority_vote((p, f.condition) for p, f in per_source.present())
    confidence = calculate_confidence(per_source, vote.agreement)

    return FinalForecast(
        temp_max=round(temp_max, 1),
        temp_min=round(temp_min, 1),
        condition=vote.condition,
        confidence=confidence,
    )
