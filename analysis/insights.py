"""Insight assembly for reviewed decisions.

generate_insights is a pure function of the decision and review collections it is
given: it derives decision/review pairs, computes the population baseline, and
collects cards from each stage the gating policy enables, in the order
calibration summary, segments, trends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from analysis.baseline import EMPTY_BASELINE, Baseline, compute_baseline
from analysis.cards import InsightCard
from analysis.gating import DEFAULT_GATING_POLICY, GatingPolicy, Stage
from analysis.records import Decision, Review, derive_pairs
from analysis.segments import mine_segments
from analysis.summaries import (
    ConfidenceSummary,
    RepeatSummary,
    SpeedSummary,
    SurpriseSummary,
    calibration_summary_card,
    summarize_confidence,
    summarize_repeat,
    summarize_speed,
    summarize_surprise,
)
from analysis.trends import analyze_trends

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsightsResult:
    cards: tuple[InsightCard, ...] = field(default_factory=tuple)
    baseline: Baseline = EMPTY_BASELINE
    review_count: int = 0
    minimum_reviews_needed: int = DEFAULT_GATING_POLICY.minimum_reviews_needed
    confidence: ConfidenceSummary | None = None
    surprise: SurpriseSummary | None = None
    speed: SpeedSummary | None = None
    repeat: RepeatSummary | None = None


def generate_insights(
    decisions: Iterable[Decision],
    reviews: Iterable[Review],
    *,
    policy: GatingPolicy = DEFAULT_GATING_POLICY,
) -> InsightsResult:
    pairs = derive_pairs(decisions, reviews)
    baseline = compute_baseline(pairs)
    review_count = len(pairs)
    stages = policy.enabled_stages(review_count)

    cards: list[InsightCard] = []
    confidence = surprise = speed = repeat = None
    if Stage.BASELINE in stages:
        minimum = policy.baseline_min_reviews
        cards.append(calibration_summary_card(pairs, baseline))
        confidence = summarize_confidence(pairs, minimum=minimum)
        surprise = summarize_surprise(pairs, minimum=minimum)
        speed = summarize_speed(pairs, minimum=minimum)
        repeat = summarize_repeat(pairs, minimum=minimum)
    if Stage.SEGMENTS in stages:
        cards.extend(mine_segments(pairs, baseline))
    if Stage.TRENDS in stages:
        cards.extend(analyze_trends(pairs))

    logger.debug(
        "Generated insights",
        extra={
            "review_count": review_count,
            "stages": sorted(stage.value for stage in stages),
            "card_count": len(cards),
        },
    )
    return InsightsResult(
        cards=tuple(cards),
        baseline=baseline,
        review_count=review_count,
        minimum_reviews_needed=policy.minimum_reviews_needed,
        confidence=confidence,
        surprise=surprise,
        speed=speed,
        repeat=repeat,
    )
