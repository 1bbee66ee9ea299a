from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from analysis.records import DerivedPair


def mean(values: Iterable[float]) -> float:
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    if count == 0:
        return 0.0
    return total / count


def rate(hits: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return hits / total


# round() is half-to-even on the binary value: round2(0.125) == 0.12, round2(0.375) == 0.38
def round2(value: float) -> float:
    return round(float(value), 2)


def percent(hits: int, total: int) -> int:
    return int(round(rate(hits, total) * 100))


@dataclass(frozen=True)
class Baseline:
    review_count: int = 0
    avg_outcome_score: float = 0.0
    avg_surprise: float = 0.0
    avg_calibration_error: float = 0.0


EMPTY_BASELINE = Baseline()


def compute_baseline(pairs: Sequence[DerivedPair]) -> Baseline:
    if not pairs:
        return EMPTY_BASELINE
    return Baseline(
        review_count=len(pairs),
        avg_outcome_score=round2(mean(pair.outcome_score for pair in pairs)),
        avg_surprise=round2(mean(pair.surprise_score for pair in pairs)),
        avg_calibration_error=round2(mean(pair.calibration_error for pair in pairs)),
    )
