from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    BASELINE = "baseline"
    SEGMENTS = "segments"
    TRENDS = "trends"


# minimum reviewed decisions before each stage is shown
BASELINE_MIN_REVIEWS = 3
SEGMENTS_MIN_REVIEWS = 8
TRENDS_MIN_REVIEWS = 12


@dataclass(frozen=True)
class GatingPolicy:
    baseline_min_reviews: int = BASELINE_MIN_REVIEWS
    segments_min_reviews: int = SEGMENTS_MIN_REVIEWS
    trends_min_reviews: int = TRENDS_MIN_REVIEWS

    @property
    def minimum_reviews_needed(self) -> int:
        return self.baseline_min_reviews

    def enabled_stages(self, review_count: int) -> frozenset[Stage]:
        enabled: set[Stage] = set()
        if review_count >= self.baseline_min_reviews:
            enabled.add(Stage.BASELINE)
        if review_count >= self.segments_min_reviews:
            enabled.add(Stage.SEGMENTS)
        if review_count >= self.trends_min_reviews:
            enabled.add(Stage.TRENDS)
        return frozenset(enabled)


DEFAULT_GATING_POLICY = GatingPolicy()
