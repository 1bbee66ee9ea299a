from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable


class DecisionType(str, Enum):
    PERSONAL = "personal"
    WORK = "work"
    FINANCE = "finance"
    HEALTH = "health"
    OTHER = "other"


class Importance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# how quickly the decision was made relative to its importance
class DecisionSpeed(str, Enum):
    QUICK = "quick"
    MODERATE = "moderate"
    SLOW = "slow"


# what primarily influenced the decision; carried but not analysed
class DecisionDriver(str, Enum):
    LOGIC = "logic"
    URGENCY = "urgency"
    FEAR = "fear"
    OPPORTUNITY = "opportunity"
    EXTERNAL_PRESSURE = "external_pressure"


# gap between what was expected and what actually happened
class ExpectationComparison(str, Enum):
    MUCH_WORSE = "much_worse"
    SLIGHTLY_WORSE = "slightly_worse"
    AS_EXPECTED = "as_expected"
    SLIGHTLY_BETTER = "slightly_better"
    MUCH_BETTER = "much_better"


# soundness of the thinking at decision time, independent of the outcome
class DecisionQuality(str, Enum):
    VERY_THOUGHTFUL = "very_thoughtful"
    REASONABLE = "reasonable"
    ACCEPTABLE = "acceptable"
    RUSHED = "rushed"
    EMOTIONAL = "emotional"


class WouldRepeat(str, Enum):
    YES = "yes"
    NO = "no"
    UNSURE = "unsure"


class ConfidenceBand(str, Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"
    VERY_HIGH = "very_high"


OUTCOME_SCORES: dict[ExpectationComparison, int] = {
    ExpectationComparison.MUCH_WORSE: -2,
    ExpectationComparison.SLIGHTLY_WORSE: -1,
    ExpectationComparison.AS_EXPECTED: 0,
    ExpectationComparison.SLIGHTLY_BETTER: 1,
    ExpectationComparison.MUCH_BETTER: 2,
}

# upper bound (inclusive) of each band, checked in order
CONFIDENCE_BAND_CEILINGS: tuple[tuple[ConfidenceBand, int], ...] = (
    (ConfidenceBand.LOW, 39),
    (ConfidenceBand.MID, 59),
    (ConfidenceBand.HIGH, 79),
    (ConfidenceBand.VERY_HIGH, 100),
)

CONFIDENCE_BAND_PROBABILITY: dict[ConfidenceBand, float] = {
    ConfidenceBand.LOW: 0.3,
    ConfidenceBand.MID: 0.5,
    ConfidenceBand.HIGH: 0.7,
    ConfidenceBand.VERY_HIGH: 0.9,
}


@dataclass(frozen=True)
class Decision:
    id: str
    title: str
    reasoning: str
    confidence: int
    decision_type: DecisionType
    importance: Importance
    decision_speed: DecisionSpeed
    created_at: datetime
    decision_driver: DecisionDriver | None = None
    expected_outcome: str = ""
    review_date: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Review:
    id: str
    decision_id: str
    expectation_comparison: ExpectationComparison
    surprise_score: int
    would_repeat: WouldRepeat | None
    reviewed_at: datetime
    decision_quality: DecisionQuality | None = None
    what_happened: str = ""
    learning_note: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class DerivedPair:
    decision: Decision
    review: Review
    outcome_score: int
    confidence_band: ConfidenceBand
    confidence_prob: float
    outcome_prob: float
    calibration_error: float

    @property
    def reviewed_at(self) -> datetime:
        return self.review.reviewed_at

    @property
    def surprise_score(self) -> int:
        return self.review.surprise_score

    @property
    def segment_key(self) -> tuple[DecisionType, Importance, DecisionSpeed, ConfidenceBand]:
        return (
            self.decision.decision_type,
            self.decision.importance,
            self.decision.decision_speed,
            self.confidence_band,
        )


def outcome_score(comparison: ExpectationComparison | str) -> int:
    try:
        return OUTCOME_SCORES[ExpectationComparison(comparison)]
    except ValueError:
        return 0


def confidence_band(confidence: int) -> ConfidenceBand:
    for band, ceiling in CONFIDENCE_BAND_CEILINGS:
        if confidence <= ceiling:
            return band
    return ConfidenceBand.VERY_HIGH


def outcome_probability(score: int) -> float:
    if score > 0:
        return 1.0
    if score == 0:
        return 0.5
    return 0.0


def derive_pair(decision: Decision, review: Review) -> DerivedPair:
    score = outcome_score(review.expectation_comparison)
    band = confidence_band(decision.confidence)
    confidence_prob = CONFIDENCE_BAND_PROBABILITY[band]
    outcome_prob = outcome_probability(score)
    return DerivedPair(
        decision=decision,
        review=review,
        outcome_score=score,
        confidence_band=band,
        confidence_prob=confidence_prob,
        outcome_prob=outcome_prob,
        calibration_error=abs(confidence_prob - outcome_prob),
    )


def index_reviews(reviews: Iterable[Review]) -> dict[str, Review]:
    """Map decision id -> review, keeping the earliest review when a decision has several.

    Ties on reviewed_at fall back to the smaller review id, then to the review seen first.
    """
    by_decision: dict[str, Review] = {}
    for review in reviews:
        key = str(review.decision_id)
        current = by_decision.get(key)
        if current is None or (review.reviewed_at, str(review.id)) < (current.reviewed_at, str(current.id)):
            by_decision[key] = review
    return by_decision


def derive_pairs(decisions: Iterable[Decision], reviews: Iterable[Review]) -> list[DerivedPair]:
    """Join each decision to its review and order the pairs by review time.

    Decisions without a review are left out entirely.
    """
    review_by_decision = index_reviews(reviews)
    pairs: list[DerivedPair] = []
    for decision in decisions:
        review = review_by_decision.get(str(decision.id))
        if review is None:
            continue
        pairs.append(derive_pair(decision, review))
    pairs.sort(key=lambda pair: (pair.reviewed_at, str(pair.decision.id)))
    return pairs
