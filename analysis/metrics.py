from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence

from sklearn.metrics import brier_score_loss

from analysis.baseline import mean, percent
from analysis.records import (
    Decision,
    DecisionSpeed,
    ExpectationComparison,
    Importance,
    Review,
    WouldRepeat,
    index_reviews,
    outcome_score,
)
from ingestion.time_utils import now_utc

SUCCESS_COMPARISONS = frozenset(
    {
        ExpectationComparison.MUCH_BETTER,
        ExpectationComparison.SLIGHTLY_BETTER,
        ExpectationComparison.AS_EXPECTED,
    }
)
IMPORTANCE_WEIGHTS: dict[Importance, int] = {
    Importance.LOW: 1,
    Importance.MEDIUM: 2,
    Importance.HIGH: 3,
}
DEFAULT_COHORT_WINDOW_DAYS = 90
VOLATILITY_SCALE = 50.0


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _reviewed(decisions: Iterable[Decision], reviews: Iterable[Review]) -> list[tuple[Decision, Review]]:
    review_by_decision = index_reviews(reviews)
    out: list[tuple[Decision, Review]] = []
    for decision in decisions:
        review = review_by_decision.get(str(decision.id))
        if review is not None:
            out.append((decision, review))
    return out


def brier_score(predicted: Sequence[float], actual: Sequence[bool | int]) -> float:
    if not predicted or len(predicted) != len(actual):
        return 0.0
    y_true = [1 if value else 0 for value in actual]
    y_prob = [_clamp01(value) for value in predicted]
    return float(brier_score_loss(y_true, y_prob, pos_label=1))


def calibration_error_from_confidence(decisions: Iterable[Decision], reviews: Iterable[Review]) -> float:
    errors = []
    for decision, review in _reviewed(decisions, reviews):
        success = 1.0 if review.expectation_comparison in SUCCESS_COMPARISONS else 0.0
        errors.append(abs(decision.confidence / 100.0 - success))
    return mean(errors)


def surprise_volatility(reviews: Iterable[Review]) -> float:
    scores = [review.surprise_score for review in reviews]
    if not scores:
        return 0.0
    avg = mean(scores)
    return math.sqrt(mean((score - avg) ** 2 for score in scores))


def regret_rate_by_importance(decisions: Iterable[Decision], reviews: Iterable[Review]) -> dict[str, int]:
    review_by_decision = index_reviews(reviews)
    totals: dict[Importance, int] = {}
    regrets: dict[Importance, int] = {}
    for decision in decisions:
        totals.setdefault(decision.importance, 0)
        regrets.setdefault(decision.importance, 0)
        review = review_by_decision.get(str(decision.id))
        if review is None:
            continue
        totals[decision.importance] += 1
        if review.would_repeat == WouldRepeat.NO:
            regrets[decision.importance] += 1
    return {
        importance.value: percent(regrets[importance], totals[importance])
        for importance in Importance
        if importance in totals
    }


@dataclass(frozen=True)
class SpeedOutcome:
    avg_outcome: float
    count: int


def decision_speed_outcome_stats(
    decisions: Iterable[Decision],
    reviews: Iterable[Review],
) -> dict[str, SpeedOutcome]:
    review_by_decision = index_reviews(reviews)
    scores: dict[DecisionSpeed, list[int]] = {}
    for decision in decisions:
        bucket = scores.setdefault(decision.decision_speed, [])
        review = review_by_decision.get(str(decision.id))
        if review is not None:
            bucket.append(outcome_score(review.expectation_comparison))
    return {
        speed.value: SpeedOutcome(avg_outcome=mean(scores[speed]), count=len(scores[speed]))
        for speed in DecisionSpeed
        if speed in scores
    }


def time_to_review_correlation(decisions: Iterable[Decision], reviews: Iterable[Review]) -> float:
    """Pearson correlation between days-until-review and surprise score (0 when undefined)."""
    xs: list[float] = []
    ys: list[float] = []
    for decision, review in _reviewed(decisions, reviews):
        xs.append((review.reviewed_at - decision.created_at).total_seconds() / 86400.0)
        ys.append(float(review.surprise_score))
    if not xs:
        return 0.0
    mx = mean(xs)
    my = mean(ys)
    numerator = sum((x - mx) * (y - my) for x, y in zip(xs, ys))
    denominator = math.sqrt(sum((x - mx) ** 2 for x in xs) * sum((y - my) ** 2 for y in ys))
    if denominator == 0:
        return 0.0
    return numerator / denominator


@dataclass(frozen=True)
class CohortImprovement:
    recent_avg: float
    prior_avg: float
    delta: float


def cohort_improvement(
    decisions: Iterable[Decision],
    reviews: Iterable[Review],
    *,
    predicate: Callable[[Decision], bool] | None = None,
    window_days: int = DEFAULT_COHORT_WINDOW_DAYS,
    now: datetime | None = None,
) -> CohortImprovement:
    cutoff = (now or now_utc()) - timedelta(days=window_days)
    recent: list[int] = []
    prior: list[int] = []
    for decision, review in _reviewed(decisions, reviews):
        if predicate is not None and not predicate(decision):
            continue
        score = outcome_score(review.expectation_comparison)
        if review.reviewed_at >= cutoff:
            recent.append(score)
        else:
            prior.append(score)
    recent_avg = mean(recent)
    prior_avg = mean(prior)
    return CohortImprovement(recent_avg=recent_avg, prior_avg=prior_avg, delta=recent_avg - prior_avg)


def consistency_score(reviews: Iterable[Review]) -> int:
    volatility = surprise_volatility(reviews)
    return int(round((1.0 - min(1.0, volatility / VOLATILITY_SCALE)) * 100))


def risk_adjusted_repeat_rate(decisions: Iterable[Decision], reviews: Iterable[Review]) -> int:
    weighted_yes = 0.0
    total_weight = 0
    for decision, review in _reviewed(decisions, reviews):
        weight = IMPORTANCE_WEIGHTS.get(decision.importance, 1)
        total_weight += weight
        if review.would_repeat == WouldRepeat.YES:
            weighted_yes += weight * (1.0 - review.surprise_score / 100.0)
    if total_weight == 0:
        return 0
    return int(round(weighted_yes / total_weight * 100))


def outcome_roi(reviews: Iterable[Review]) -> float:
    return mean(outcome_score(review.expectation_comparison) for review in reviews)


@dataclass(frozen=True)
class DecisionMetrics:
    brier_score: float
    calibration_error: float
    surprise_volatility: float
    consistency_score: int
    regret_rate_by_importance: dict[str, int] = field(default_factory=dict)
    speed_outcomes: dict[str, SpeedOutcome] = field(default_factory=dict)
    time_to_review_correlation: float = 0.0
    cohort: CohortImprovement = CohortImprovement(0.0, 0.0, 0.0)
    risk_adjusted_repeat_rate: int = 0
    outcome_roi: float = 0.0


def compute_metrics(
    decisions: Sequence[Decision],
    reviews: Sequence[Review],
    *,
    now: datetime | None = None,
) -> DecisionMetrics:
    reviewed = _reviewed(decisions, reviews)
    paired_reviews = [review for _, review in reviewed]
    return DecisionMetrics(
        brier_score=brier_score(
            [decision.confidence / 100.0 for decision, _ in reviewed],
            [review.expectation_comparison in SUCCESS_COMPARISONS for _, review in reviewed],
        ),
        calibration_error=calibration_error_from_confidence(decisions, reviews),
        surprise_volatility=surprise_volatility(paired_reviews),
        consistency_score=consistency_score(paired_reviews),
        regret_rate_by_importance=regret_rate_by_importance(decisions, reviews),
        speed_outcomes=decision_speed_outcome_stats(decisions, reviews),
        time_to_review_correlation=time_to_review_correlation(decisions, reviews),
        cohort=cohort_improvement(decisions, reviews, now=now),
        risk_adjusted_repeat_rate=risk_adjusted_repeat_rate(decisions, reviews),
        outcome_roi=outcome_roi(paired_reviews),
    )
