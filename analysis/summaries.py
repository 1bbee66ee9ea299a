from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from analysis.baseline import Baseline, mean, percent, round2
from analysis.cards import InsightCard, InsightEvidence, InsightStrength
from analysis.records import DecisionSpeed, DecisionType, DerivedPair, WouldRepeat

SUMMARY_MIN_REVIEWS = 3
WELL_CALIBRATED_TOLERANCE = 0.15
STRONG_SUMMARY_MIN_REVIEWS = 8


@dataclass(frozen=True)
class ConfidenceSummary:
    average_confidence: int
    well_calibrated_count: int
    overconfident_count: int
    underconfident_count: int
    message: str = "How your confidence matches reality"


@dataclass(frozen=True)
class SurpriseSummary:
    average_surprise_score: float
    most_surprised_domain: DecisionType | None
    least_surprised_domain: DecisionType | None
    message: str = "Where outcomes surprised you"


@dataclass(frozen=True)
class SpeedSummary:
    quick_regret_rate: int
    moderate_regret_rate: int
    slow_regret_rate: int
    message: str = "Speed vs regret patterns"


@dataclass(frozen=True)
class RepeatSummary:
    repeat_rate: int
    would_repeat_count: int
    would_not_repeat_count: int
    unsure_count: int
    message: str = "How often you would repeat decisions"


def _has_enough(pairs: Sequence[DerivedPair], minimum: int) -> bool:
    return len(pairs) >= minimum


def median_confidence(pairs: Sequence[DerivedPair]) -> int:
    values = sorted(pair.decision.confidence for pair in pairs)
    if not values:
        return 0
    middle = len(values) // 2
    if len(values) % 2 == 1:
        return values[middle]
    return int(round((values[middle - 1] + values[middle]) / 2))


def confidence_iqr(pairs: Sequence[DerivedPair]) -> int:
    # lower-index quartiles: no interpolation
    values = sorted(pair.decision.confidence for pair in pairs)
    if not values:
        return 0
    q1 = values[int((len(values) - 1) * 0.25)]
    q3 = values[int((len(values) - 1) * 0.75)]
    return q3 - q1


def calibration_summary_card(pairs: Sequence[DerivedPair], baseline: Baseline) -> InsightCard:
    n = len(pairs)
    median = median_confidence(pairs)
    iqr = confidence_iqr(pairs)
    return InsightCard(
        id="calibration-summary",
        title="Confidence Calibration",
        message=f"Median confidence {median}%. Avg calibration error {baseline.avg_calibration_error}.",
        strength=InsightStrength.STRONG if n >= STRONG_SUMMARY_MIN_REVIEWS else InsightStrength.MEDIUM,
        tags=("calibration",),
        evidence=(
            InsightEvidence(n, "median_confidence", float(median)),
            InsightEvidence(n, "iqr", float(iqr)),
            InsightEvidence(n, "avg_calibration_error", baseline.avg_calibration_error),
        ),
        action_hint="Observe which contexts show higher calibration error.",
    )


def summarize_confidence(
    pairs: Sequence[DerivedPair],
    *,
    minimum: int = SUMMARY_MIN_REVIEWS,
) -> ConfidenceSummary | None:
    if not _has_enough(pairs, minimum):
        return None
    well = over = under = 0
    for pair in pairs:
        if abs(pair.confidence_prob - pair.outcome_prob) <= WELL_CALIBRATED_TOLERANCE:
            well += 1
        elif pair.confidence_prob > pair.outcome_prob:
            over += 1
        else:
            under += 1
    return ConfidenceSummary(
        average_confidence=int(round(mean(pair.decision.confidence for pair in pairs))),
        well_calibrated_count=well,
        overconfident_count=over,
        underconfident_count=under,
    )


def summarize_surprise(
    pairs: Sequence[DerivedPair],
    *,
    minimum: int = SUMMARY_MIN_REVIEWS,
) -> SurpriseSummary | None:
    """Average surprise plus the decision types with the highest and lowest mean surprise.

    Types are visited in declaration order and only a strictly better mean replaces
    the current pick, so ties go to the earlier type.
    """
    if not _has_enough(pairs, minimum):
        return None
    by_type: dict[DecisionType, list[int]] = {}
    for pair in pairs:
        by_type.setdefault(pair.decision.decision_type, []).append(pair.surprise_score)

    most: DecisionType | None = None
    least: DecisionType | None = None
    most_value = float("-inf")
    least_value = float("inf")
    for decision_type in DecisionType:
        scores = by_type.get(decision_type)
        if not scores:
            continue
        avg = mean(scores)
        if avg > most_value:
            most, most_value = decision_type, avg
        if avg < least_value:
            least, least_value = decision_type, avg

    return SurpriseSummary(
        average_surprise_score=round2(mean(pair.surprise_score for pair in pairs)),
        most_surprised_domain=most,
        least_surprised_domain=least,
    )


def summarize_speed(
    pairs: Sequence[DerivedPair],
    *,
    minimum: int = SUMMARY_MIN_REVIEWS,
) -> SpeedSummary | None:
    if not _has_enough(pairs, minimum):
        return None
    totals = {speed: 0 for speed in DecisionSpeed}
    regrets = {speed: 0 for speed in DecisionSpeed}
    for pair in pairs:
        speed = pair.decision.decision_speed
        totals[speed] += 1
        if pair.review.would_repeat == WouldRepeat.NO:
            regrets[speed] += 1
    return SpeedSummary(
        quick_regret_rate=percent(regrets[DecisionSpeed.QUICK], totals[DecisionSpeed.QUICK]),
        moderate_regret_rate=percent(regrets[DecisionSpeed.MODERATE], totals[DecisionSpeed.MODERATE]),
        slow_regret_rate=percent(regrets[DecisionSpeed.SLOW], totals[DecisionSpeed.SLOW]),
    )


def summarize_repeat(
    pairs: Sequence[DerivedPair],
    *,
    minimum: int = SUMMARY_MIN_REVIEWS,
) -> RepeatSummary | None:
    if not _has_enough(pairs, minimum):
        return None
    yes = no = unsure = 0
    for pair in pairs:
        answer = pair.review.would_repeat
        if answer == WouldRepeat.YES:
            yes += 1
        elif answer == WouldRepeat.NO:
            no += 1
        else:
            unsure += 1
    return RepeatSummary(
        repeat_rate=percent(yes, len(pairs)),
        would_repeat_count=yes,
        would_not_repeat_count=no,
        unsure_count=unsure,
    )
