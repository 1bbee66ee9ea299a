from __future__ import annotations

import unittest
from datetime import datetime, timezone

from analysis.records import (
    DecisionDriver,
    DecisionSpeed,
    DecisionType,
    ExpectationComparison,
    Importance,
    WouldRepeat,
)
from ingestion.normalize_record import (
    InvalidRecordError,
    decision_to_row,
    normalize_decision,
    normalize_review,
    review_to_row,
)
from ingestion.time_utils import EPOCH_UTC, parse_utc, start_of_day, to_utc_iso


def _decision_payload(**overrides):
    payload = {
        "id": 7,
        "title": "  Take the new job  ",
        "reasoning": "Better team",
        "confidence": 70,
        "decision_type": "work",
        "importance": "high",
        "decision_speed": "slow",
        "decision_driver": "opportunity",
        "expected_outcome": "More growth",
        "review_date": "2026-03-01T00:00:00Z",
        "created_at": "2026-01-15T08:30:00Z",
    }
    payload.update(overrides)
    return payload


def _review_payload(**overrides):
    payload = {
        "id": 3,
        "decision_id": 7,
        "expectation_comparison": "slightly_better",
        "surprise_score": 35,
        "would_repeat": "yes",
        "decision_quality": "reasonable",
        "what_happened": "It went fine",
        "learning_note": "Trust the process",
        "reviewed_at": "2026-03-02T10:00:00+02:00",
    }
    payload.update(overrides)
    return payload


class NormalizeDecisionTests(unittest.TestCase):
    def test_valid_payload(self) -> None:
        decision = normalize_decision(_decision_payload())
        self.assertEqual(decision.id, "7")
        self.assertEqual(decision.title, "Take the new job")
        self.assertEqual(decision.decision_type, DecisionType.WORK)
        self.assertEqual(decision.importance, Importance.HIGH)
        self.assertEqual(decision.decision_speed, DecisionSpeed.SLOW)
        self.assertEqual(decision.decision_driver, DecisionDriver.OPPORTUNITY)
        self.assertEqual(decision.created_at, datetime(2026, 1, 15, 8, 30, tzinfo=timezone.utc))
        self.assertEqual(decision.review_date, datetime(2026, 3, 1, tzinfo=timezone.utc))

    def test_strict_rejects_out_of_contract_values(self) -> None:
        bad_payloads = [
            {"title": "   "},
            {"title": "x" * 201},
            {"reasoning": "x" * 1001},
            {"expected_outcome": "x" * 501},
            {"confidence": 101},
            {"confidence": -1},
            {"confidence": 55.5},
            {"confidence": "lots"},
            {"confidence": None},
            {"decision_type": "hobby"},
            {"importance": None},
            {"decision_driver": "whim"},
            {"created_at": "last tuesday"},
        ]
        for overrides in bad_payloads:
            with self.subTest(overrides=overrides):
                with self.assertRaises(InvalidRecordError):
                    normalize_decision(_decision_payload(**overrides))

    def test_invalid_record_error_is_value_error(self) -> None:
        self.assertTrue(issubclass(InvalidRecordError, ValueError))

    def test_lenient_coerces_unknown_values(self) -> None:
        decision = normalize_decision(
            _decision_payload(
                decision_type="hobby",
                importance="urgent",
                decision_speed="instant",
                decision_driver="whim",
                confidence=140,
                created_at="garbage",
            ),
            strict=False,
        )
        self.assertEqual(decision.decision_type, DecisionType.OTHER)
        self.assertEqual(decision.importance, Importance.MEDIUM)
        self.assertEqual(decision.decision_speed, DecisionSpeed.MODERATE)
        self.assertIsNone(decision.decision_driver)
        self.assertEqual(decision.confidence, 100)
        self.assertEqual(decision.created_at, EPOCH_UTC)

    def test_optional_fields_may_be_absent(self) -> None:
        payload = _decision_payload()
        for key in ("decision_driver", "expected_outcome", "review_date", "created_at"):
            payload.pop(key)
        decision = normalize_decision(payload)
        self.assertIsNone(decision.decision_driver)
        self.assertEqual(decision.expected_outcome, "")
        self.assertIsNone(decision.review_date)
        self.assertIsNotNone(decision.created_at.tzinfo)

    def test_row_conversion(self) -> None:
        row = decision_to_row(normalize_decision(_decision_payload()))
        self.assertEqual(row["decision_type"], "work")
        self.assertEqual(row["decision_driver"], "opportunity")
        self.assertEqual(row["created_at"], "2026-01-15T08:30:00+00:00")
        self.assertNotIn("id", row)


class NormalizeReviewTests(unittest.TestCase):
    def test_valid_payload_converted_to_utc(self) -> None:
        review = normalize_review(_review_payload())
        self.assertEqual(review.decision_id, "7")
        self.assertEqual(review.expectation_comparison, ExpectationComparison.SLIGHTLY_BETTER)
        self.assertEqual(review.would_repeat, WouldRepeat.YES)
        self.assertEqual(review.reviewed_at, datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc))

    def test_strict_rejects_bad_review(self) -> None:
        bad_payloads = [
            {"decision_id": None},
            {"expectation_comparison": "amazing"},
            {"expectation_comparison": None},
            {"surprise_score": 250},
            {"would_repeat": "maybe"},
            {"decision_quality": "lucky"},
            {"reviewed_at": "yesterday-ish"},
        ]
        for overrides in bad_payloads:
            with self.subTest(overrides=overrides):
                with self.assertRaises(InvalidRecordError):
                    normalize_review(_review_payload(**overrides))

    def test_would_repeat_is_optional(self) -> None:
        self.assertIsNone(normalize_review(_review_payload(would_repeat=None)).would_repeat)

    def test_lenient_coerces_unknown_values(self) -> None:
        review = normalize_review(
            _review_payload(
                expectation_comparison="amazing",
                surprise_score=-5,
                would_repeat="maybe",
                decision_quality="lucky",
                reviewed_at="not a date",
            ),
            strict=False,
        )
        self.assertEqual(review.expectation_comparison, ExpectationComparison.AS_EXPECTED)
        self.assertEqual(review.surprise_score, 0)
        self.assertIsNone(review.would_repeat)
        self.assertIsNone(review.decision_quality)
        self.assertEqual(review.reviewed_at, EPOCH_UTC)

    def test_enum_values_are_case_insensitive(self) -> None:
        review = normalize_review(_review_payload(expectation_comparison=" Much_Worse "))
        self.assertEqual(review.expectation_comparison, ExpectationComparison.MUCH_WORSE)

    def test_row_conversion(self) -> None:
        row = review_to_row(normalize_review(_review_payload()))
        self.assertEqual(row["decision_id"], 7)
        self.assertEqual(row["decision_quality"], "reasonable")
        self.assertEqual(row["reviewed_at"], "2026-03-02T08:00:00+00:00")


class TimeUtilsTests(unittest.TestCase):
    def test_naive_values_are_utc(self) -> None:
        self.assertEqual(parse_utc("2026-01-01T12:00:00"), datetime(2026, 1, 1, 12, tzinfo=timezone.utc))
        self.assertEqual(
            parse_utc(datetime(2026, 1, 1, 12)),
            datetime(2026, 1, 1, 12, tzinfo=timezone.utc),
        )

    def test_blank_and_bad_values(self) -> None:
        self.assertIsNone(parse_utc(None))
        self.assertIsNone(parse_utc("  "))
        self.assertIsNone(parse_utc("nope"))
        with self.assertRaises(ValueError):
            parse_utc("nope", strict=True)

    def test_iso_round_trip_and_day_start(self) -> None:
        self.assertEqual(to_utc_iso("2026-05-05T10:00:00Z"), "2026-05-05T10:00:00+00:00")
        self.assertEqual(
            start_of_day(datetime(2026, 5, 5, 17, 45, tzinfo=timezone.utc)),
            datetime(2026, 5, 5, tzinfo=timezone.utc),
        )


if __name__ == "__main__":
    unittest.main()
