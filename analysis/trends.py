from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from analysis.baseline import mean, round2
from analysis.cards import InsightCard, InsightEvidence, InsightStrength
from analysis.records import DerivedPair

MAX_TREND_WINDOW = 10


@dataclass(frozen=True)
class TrendRule:
    card_id: str
    title: str
    metric_name: str
    tag: str
    extract: Callable[[DerivedPair], float]
    emit_threshold: float
    strong_threshold: float
    message_template: str
    action_hint: str

    def strength_for(self, delta: float) -> InsightStrength:
        if abs(delta) > self.strong_threshold:
            return InsightStrength.STRONG
        return InsightStrength.MEDIUM


TREND_RULES: tuple[TrendRule, ...] = (
    TrendRule(
        card_id="trend-outcome",
        title="Outcome Trend",
        metric_name="outcome_delta",
        tag="outcome",
        extract=lambda pair: pair.outcome_score,
        emit_threshold=0.5,
        strong_threshold=1.0,
        message_template="Your average outcome score changed by {delta} (last {window} vs previous {window}).",
        action_hint="Watch whether this persists over the next window.",
    ),
    TrendRule(
        card_id="trend-surprise",
        title="Surprise Trend",
        metric_name="surprise_delta",
        tag="surprise",
        extract=lambda pair: pair.surprise_score,
        emit_threshold=8.0,
        strong_threshold=15.0,
        message_template="Your surprise score changed by {delta} points (last {window} vs previous {window}).",
        action_hint="This suggests your mental model is shifting.",
    ),
    TrendRule(
        card_id="trend-calibration",
        title="Calibration Trend",
        metric_name="calibration_error_delta",
        tag="calibration",
        extract=lambda pair: pair.calibration_error,
        emit_threshold=0.05,
        strong_threshold=0.12,
        message_template="Your calibration error changed by {delta} (last {window} vs previous {window}).",
        action_hint="If this improves, you are getting better at predicting outcomes.",
    ),
)


def trend_window(total: int) -> int:
    return min(MAX_TREND_WINDOW, total // 2)


def split_windows(pairs: Sequence[DerivedPair]) -> tuple[list[DerivedPair], list[DerivedPair]] | None:
    """Return (previous, recent) windows of equal size, or None when there is not enough history."""
    window = trend_window(len(pairs))
    if window < 1 or len(pairs) < 2 * window:
        return None
    recent = list(pairs[-window:])
    previous = list(pairs[-2 * window : -window])
    return previous, recent


def window_delta(previous: Sequence[DerivedPair], recent: Sequence[DerivedPair], rule: TrendRule) -> float:
    return round2(mean(rule.extract(pair) for pair in recent) - mean(rule.extract(pair) for pair in previous))


def analyze_trends(pairs: Sequence[DerivedPair]) -> list[InsightCard]:
    # pairs must already be ordered by reviewed_at
    windows = split_windows(pairs)
    if windows is None:
        return []
    previous, recent = windows
    window = len(recent)
    cards: list[InsightCard] = []
    for rule in TREND_RULES:
        delta = window_delta(previous, recent, rule)
        if abs(delta) < rule.emit_threshold:
            continue
        cards.append(
            InsightCard(
                id=rule.card_id,
                title=rule.title,
                message=rule.message_template.format(delta=delta, window=window),
                strength=rule.strength_for(delta),
                tags=("trend", rule.tag),
                evidence=(InsightEvidence(window, rule.metric_name, delta),),
                action_hint=rule.action_hint,
            )
        )
    return cards
