"""Plurality vote over normalized provider conditions."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from ensemble.models import PROVIDER_PRIORITY, UNKNOWN_CONDITION, Provider


@dataclass(frozen=True)
class Vote:
    condition: str
    agreement: float
    supporters: Tuple[Provider, ...] = field(default_factory=tuple)


def majority_vote(ballots: Iterable[Tuple[Provider, Optional[str]]]) -> Vote:
    """Pick the most common condition among present providers.

    A tie goes to the candidate backed by the highest-priority provider.
    With no ballots the result is ``Unknown`` with zero agreement.
    """
    present = [(p, c) for p, c in ballots if c is not None]
    if not present:
        return Vote(UNKNOWN_CONDITION, 0.0)

    counts = Counter(c for _, c in present)
    top = max(counts.values())
    tied = {c for c, n in counts.items() if n == top}

    rank = {p: i for i, p in enumerate(PROVIDER_PRIORITY)}
    winner = min(
        (c for _, c in present if c in tied),
        key=lambda c: min(rank[p] for p, cond in present if cond == c),
    )
    supporters = tuple(sorted((p for p, c in present if c == winner), key=rank.__getitem__))
    return Vote(winner, top / len(present), supporters)
