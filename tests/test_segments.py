from __future__ import annotations

import unittest

from analysis.baseline import compute_baseline
from analysis.cards import InsightStrength
from analysis.records import derive_pairs
from analysis.segments import (
    MAX_SEGMENT_CARDS,
    SEGMENT_MIN_SAMPLES,
    evaluate_segments,
    mine_segments,
    segment_keys,
)
from tests.record_factory import make_journal


def _rushed_regrets_and_steady_personal():
    # five overconfident, regretted quick work calls
    rushed_decisions, rushed_reviews = make_journal(
        5,
        first_id=1,
        confidence=90,
        decision_type="work",
        importance="high",
        decision_speed="quick",
        expectation="much_worse",
        surprise=20,
        would_repeat="no",
    )
    # five calibrated personal calls
    steady_decisions, steady_reviews = make_journal(
        5,
        first_id=100,
        start_day=10,
        confidence=50,
        decision_type="personal",
        importance="medium",
        decision_speed="moderate",
        expectation="as_expected",
        surprise=20,
        would_repeat="yes",
    )
    return rushed_decisions + steady_decisions, rushed_reviews + steady_reviews


class SegmentMinerTests(unittest.TestCase):
    def test_candidate_space_is_full_product(self) -> None:
        keys = segment_keys()
        self.assertEqual(len(keys), 180)
        self.assertEqual(len(set(keys)), 180)

    def test_regretted_segment_becomes_strong_card(self) -> None:
        decisions, reviews = _rushed_regrets_and_steady_personal()
        pairs = derive_pairs(decisions, reviews)
        baseline = compute_baseline(pairs)
        cards = mine_segments(pairs, baseline)

        by_id = {card.id: card for card in cards}
        card = by_id["seg-work-high-quick-very_high"]
        # score = 2*|-1.0| + 0 + 3*|0.45| = 3.35
        self.assertEqual(card.strength, InsightStrength.STRONG)
        self.assertEqual(card.tags, ("segment", "work", "high", "quick", "very_high"))
        self.assertEqual(card.evidence_for("repeat_rate").value, 0.0)
        self.assertIsNotNone(card.action_hint)
        self.assertIn("5 work decisions", card.message)

    def test_evidence_lift_is_value_minus_baseline(self) -> None:
        decisions, reviews = _rushed_regrets_and_steady_personal()
        pairs = derive_pairs(decisions, reviews)
        baseline = compute_baseline(pairs)
        for card in mine_segments(pairs, baseline):
            for row in card.evidence:
                if row.lift is None:
                    continue
                self.assertAlmostEqual(row.lift, row.value - row.baseline, places=9)
        self.assertEqual(baseline.avg_outcome_score, -1.0)
        self.assertEqual(baseline.avg_calibration_error, 0.45)

    def test_equal_lift_magnitude_keeps_enumeration_order(self) -> None:
        decisions, reviews = _rushed_regrets_and_steady_personal()
        pairs = derive_pairs(decisions, reviews)
        cards = mine_segments(pairs, compute_baseline(pairs))
        self.assertEqual(
            [card.id for card in cards],
            ["seg-personal-medium-moderate-mid", "seg-work-high-quick-very_high"],
        )
        self.assertAlmostEqual(cards[0].lift_magnitude, cards[1].lift_magnitude, places=9)

    def test_small_segments_are_not_mined(self) -> None:
        decisions, reviews = make_journal(
            SEGMENT_MIN_SAMPLES - 1,
            confidence=95,
            decision_type="finance",
            expectation="much_worse",
            surprise=95,
            would_repeat="no",
        )
        filler_decisions, filler_reviews = make_journal(6, first_id=50, start_day=20)
        pairs = derive_pairs(decisions + filler_decisions, reviews + filler_reviews)
        cards = mine_segments(pairs, compute_baseline(pairs))
        self.assertFalse(any(card.id.startswith("seg-finance") for card in cards))

    def test_uninteresting_population_yields_no_cards(self) -> None:
        decisions, reviews = make_journal(12, surprise=30, would_repeat="yes")
        pairs = derive_pairs(decisions, reviews)
        baseline = compute_baseline(pairs)
        self.assertEqual(len(evaluate_segments(pairs, baseline)), 1)
        self.assertEqual(mine_segments(pairs, baseline), [])

    def test_low_repeat_rate_alone_is_interesting(self) -> None:
        decisions, reviews = make_journal(6, surprise=30, would_repeat="unsure")
        pairs = derive_pairs(decisions, reviews)
        cards = mine_segments(pairs, compute_baseline(pairs))
        self.assertEqual(len(cards), 1)
        # no lifts; only the n >= 6 bonus counts
        self.assertEqual(cards[0].strength, InsightStrength.WEAK)

    def test_top_cards_ranked_by_lift_magnitude(self) -> None:
        segments = [
            ("personal", "low"),
            ("personal", "medium"),
            ("personal", "high"),
            ("work", "low"),
            ("work", "medium"),
            ("work", "high"),
            ("finance", "low"),
        ]
        decisions = []
        reviews = []
        for index, (decision_type, importance) in enumerate(segments):
            seg_decisions, seg_reviews = make_journal(
                5,
                first_id=100 * (index + 1),
                start_day=10 * index,
                decision_type=decision_type,
                importance=importance,
                surprise=10 * index,
                would_repeat="no",
            )
            decisions.extend(seg_decisions)
            reviews.extend(seg_reviews)
        pairs = derive_pairs(decisions, reviews)
        baseline = compute_baseline(pairs)
        self.assertEqual(baseline.avg_surprise, 30.0)

        cards = mine_segments(pairs, baseline)
        self.assertEqual(len(cards), MAX_SEGMENT_CARDS)
        # every segment qualifies on repeat rate; the one with zero lift ranks last and is cut
        self.assertNotIn("seg-work-low-moderate-mid", [card.id for card in cards])
        magnitudes = [card.lift_magnitude for card in cards]
        self.assertEqual(magnitudes, sorted(magnitudes, reverse=True))
        self.assertEqual(
            [card.id for card in cards[:2]],
            ["seg-personal-low-moderate-mid", "seg-finance-low-moderate-mid"],
        )

    def test_empty_pairs(self) -> None:
        self.assertEqual(mine_segments([], compute_baseline([])), [])


if __name__ == "__main__":
    unittest.main()
