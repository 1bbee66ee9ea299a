from __future__ import annotations

from dataclasses import dataclass, field
from itertools import product
from typing import Sequence

from analysis.baseline import Baseline, mean, rate
from analysis.cards import InsightCard, InsightEvidence, InsightStrength
from analysis.records import (
    ConfidenceBand,
    DecisionSpeed,
    DecisionType,
    DerivedPair,
    Importance,
    WouldRepeat,
)

SEGMENT_MIN_SAMPLES = 5
MAX_SEGMENT_CARDS = 6

# a segment becomes a card once any of these is crossed
OUTCOME_LIFT_THRESHOLD = 0.5
SURPRISE_LIFT_THRESHOLD = 12.0
CALIBRATION_LIFT_THRESHOLD = 0.15
REPEAT_RATE_FLOOR = 0.5

STRONG_SCORE = 3.0
MEDIUM_SCORE = 1.2
SAMPLE_BONUS_MIN_N = 6

SEGMENT_ACTION_HINT = "Notice the pattern and consider how you can test this in future decisions."

SegmentKey = tuple[DecisionType, Importance, DecisionSpeed, ConfidenceBand]


def segment_keys() -> list[SegmentKey]:
    # declaration order of each enum; also the tie-break order for ranking
    return list(product(DecisionType, Importance, DecisionSpeed, ConfidenceBand))


# running totals for one type/importance/speed/band combination
@dataclass
class SegmentAggregate:
    key: SegmentKey
    outcome_scores: list[int] = field(default_factory=list)
    surprise_scores: list[int] = field(default_factory=list)
    calibration_errors: list[float] = field(default_factory=list)
    repeat_yes_count: int = 0

    @property
    def sample_size(self) -> int:
        return len(self.outcome_scores)

    def add(self, pair: DerivedPair) -> None:
        self.outcome_scores.append(pair.outcome_score)
        self.surprise_scores.append(pair.surprise_score)
        self.calibration_errors.append(pair.calibration_error)
        if pair.review.would_repeat == WouldRepeat.YES:
            self.repeat_yes_count += 1


@dataclass(frozen=True)
class SegmentStats:
    key: SegmentKey
    sample_size: int
    avg_outcome: float
    avg_surprise: float
    repeat_rate: float
    avg_calibration_error: float
    outcome_lift: float
    surprise_lift: float
    cal_error_lift: float

    @property
    def is_interesting(self) -> bool:
        return (
            abs(self.outcome_lift) >= OUTCOME_LIFT_THRESHOLD
            or abs(self.surprise_lift) >= SURPRISE_LIFT_THRESHOLD
            or abs(self.cal_error_lift) >= CALIBRATION_LIFT_THRESHOLD
            or self.repeat_rate < REPEAT_RATE_FLOOR
        )

    @property
    def strength_score(self) -> float:
        return (
            2.0 * abs(self.outcome_lift)
            + abs(self.surprise_lift) / 10.0
            + 3.0 * abs(self.cal_error_lift)
            + (1.0 if self.sample_size >= SAMPLE_BONUS_MIN_N else 0.0)
        )

    @property
    def strength(self) -> InsightStrength:
        score = self.strength_score
        if score > STRONG_SCORE:
            return InsightStrength.STRONG
        if score > MEDIUM_SCORE:
            return InsightStrength.MEDIUM
        return InsightStrength.WEAK


def _group_pairs(pairs: Sequence[DerivedPair]) -> dict[SegmentKey, SegmentAggregate]:
    aggregates: dict[SegmentKey, SegmentAggregate] = {}
    for pair in pairs:
        key = pair.segment_key
        aggregate = aggregates.get(key)
        if aggregate is None:
            aggregate = SegmentAggregate(key=key)
            aggregates[key] = aggregate
        aggregate.add(pair)
    return aggregates


def score_segment(aggregate: SegmentAggregate, baseline: Baseline) -> SegmentStats:
    avg_outcome = mean(aggregate.outcome_scores)
    avg_surprise = mean(aggregate.surprise_scores)
    avg_calibration_error = mean(aggregate.calibration_errors)
    return SegmentStats(
        key=aggregate.key,
        sample_size=aggregate.sample_size,
        avg_outcome=avg_outcome,
        avg_surprise=avg_surprise,
        repeat_rate=rate(aggregate.repeat_yes_count, aggregate.sample_size),
        avg_calibration_error=avg_calibration_error,
        outcome_lift=avg_outcome - baseline.avg_outcome_score,
        surprise_lift=avg_surprise - baseline.avg_surprise,
        cal_error_lift=avg_calibration_error - baseline.avg_calibration_error,
    )


def segment_card(stats: SegmentStats, baseline: Baseline) -> InsightCard:
    decision_type, importance, speed, band = stats.key
    n = stats.sample_size
    plural = "s" if n > 1 else ""
    return InsightCard(
        id=f"seg-{decision_type.value}-{importance.value}-{speed.value}-{band.value}",
        title=f"{decision_type.value.capitalize()} / {importance.value} / {speed.value} / {band.value}",
        message=(
            f"In {n} {decision_type.value} decision{plural} "
            f"(importance: {importance.value}, speed: {speed.value}), outcomes differ from your baseline."
        ),
        strength=stats.strength,
        tags=("segment", decision_type.value, importance.value, speed.value, band.value),
        evidence=(
            InsightEvidence(n, "avg_outcome", stats.avg_outcome, baseline.avg_outcome_score, stats.outcome_lift),
            InsightEvidence(n, "avg_surprise", stats.avg_surprise, baseline.avg_surprise, stats.surprise_lift),
            InsightEvidence(
                n,
                "avg_calibration_error",
                stats.avg_calibration_error,
                baseline.avg_calibration_error,
                stats.cal_error_lift,
            ),
            InsightEvidence(n, "repeat_rate", stats.repeat_rate),
        ),
        action_hint=SEGMENT_ACTION_HINT,
    )


def evaluate_segments(pairs: Sequence[DerivedPair], baseline: Baseline) -> list[SegmentStats]:
    """Score every candidate segment with enough samples, in enumeration order."""
    aggregates = _group_pairs(pairs)
    scored: list[SegmentStats] = []
    for key in segment_keys():
        aggregate = aggregates.get(key)
        if aggregate is None or aggregate.sample_size < SEGMENT_MIN_SAMPLES:
            continue
        scored.append(score_segment(aggregate, baseline))
    return scored


def mine_segments(
    pairs: Sequence[DerivedPair],
    baseline: Baseline,
    *,
    limit: int = MAX_SEGMENT_CARDS,
) -> list[InsightCard]:
    cards = [segment_card(stats, baseline) for stats in evaluate_segments(pairs, baseline) if stats.is_interesting]
    # sort is stable, so equal magnitudes keep enumeration order
    cards.sort(key=lambda card: card.lift_magnitude, reverse=True)
    return cards[:limit]
