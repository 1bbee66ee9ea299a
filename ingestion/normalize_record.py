# validate and normalize decision/review payloads into records
# strict mode (API writes) raises InvalidRecordError on anything out of contract
# lenient mode (rows read back from storage) coerces so analysis stays total

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping, TypeVar

from analysis.records import (
    Decision,
    DecisionDriver,
    DecisionQuality,
    DecisionSpeed,
    DecisionType,
    ExpectationComparison,
    Importance,
    Review,
    WouldRepeat,
)
from ingestion.time_utils import EPOCH_UTC, now_utc, parse_utc

# lets the API catch validation failures separately from DB/runtime errors
class InvalidRecordError(ValueError):
    pass


E = TypeVar("E", bound=Enum)

TITLE_MAX_LENGTH = 200
REASONING_MAX_LENGTH = 1000
EXPECTED_OUTCOME_MAX_LENGTH = 500
SCORE_MIN = 0
SCORE_MAX = 100

# lenient fallbacks for unknown stored values
DEFAULT_DECISION_TYPE = DecisionType.OTHER
DEFAULT_IMPORTANCE = Importance.MEDIUM
DEFAULT_DECISION_SPEED = DecisionSpeed.MODERATE
DEFAULT_EXPECTATION = ExpectationComparison.AS_EXPECTED


def _text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    return str(value)


def _check_length(value: str, field_name: str, max_length: int, *, strict: bool) -> str:
    if strict and len(value) > max_length:
        raise InvalidRecordError(f"{field_name} must be {max_length} characters or less")
    return value


def _enum(
    enum_cls: type[E],
    value: Any,
    field_name: str,
    *,
    strict: bool,
    default: E | None,
    required: bool = True,
) -> E | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if strict and required:
            raise InvalidRecordError(f"{field_name} is required")
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        if strict:
            allowed = ", ".join(member.value for member in enum_cls)
            raise InvalidRecordError(f"{field_name} must be one of: {allowed}") from None
        return default


def _score(value: Any, field_name: str, *, strict: bool) -> int:
    if value is None:
        if strict:
            raise InvalidRecordError(f"{field_name} is required")
        return SCORE_MIN
    if isinstance(value, bool):
        if strict:
            raise InvalidRecordError(f"{field_name} must be a whole number")
        value = int(value)
    if isinstance(value, float) and not value.is_integer():
        if strict:
            raise InvalidRecordError(f"{field_name} must be a whole number")
        value = round(value)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        if strict:
            raise InvalidRecordError(f"{field_name} must be a whole number") from None
        return SCORE_MIN
    if parsed < SCORE_MIN or parsed > SCORE_MAX:
        if strict:
            raise InvalidRecordError(f"{field_name} must be between {SCORE_MIN} and {SCORE_MAX}")
        parsed = max(SCORE_MIN, min(SCORE_MAX, parsed))
    return parsed


def _timestamp(value: Any, field_name: str, *, strict: bool, default: datetime | None) -> datetime | None:
    try:
        parsed = parse_utc(value, strict=strict)
    except (TypeError, ValueError) as exc:
        raise InvalidRecordError(f"invalid datetime format: {field_name}") from exc
    if parsed is None:
        return default
    return parsed


def _record_id(payload: Mapping[str, Any], key: str = "id") -> str:
    value = payload.get(key)
    return "" if value is None else str(value)


def normalize_decision(payload: Mapping[str, Any], *, strict: bool = True) -> Decision:
    title = _check_length(_text(payload, "title").strip(), "title", TITLE_MAX_LENGTH, strict=strict)
    if strict and not title:
        raise InvalidRecordError("title is required")
    reasoning = _check_length(_text(payload, "reasoning"), "reasoning", REASONING_MAX_LENGTH, strict=strict)
    expected_outcome = _check_length(
        _text(payload, "expected_outcome"),
        "expected_outcome",
        EXPECTED_OUTCOME_MAX_LENGTH,
        strict=strict,
    )
    fallback_created = now_utc() if strict else EPOCH_UTC
    return Decision(
        id=_record_id(payload),
        title=title,
        reasoning=reasoning,
        confidence=_score(payload.get("confidence"), "confidence", strict=strict),
        decision_type=_enum(
            DecisionType, payload.get("decision_type"), "decision_type", strict=strict, default=DEFAULT_DECISION_TYPE
        ),
        importance=_enum(Importance, payload.get("importance"), "importance", strict=strict, default=DEFAULT_IMPORTANCE),
        decision_speed=_enum(
            DecisionSpeed, payload.get("decision_speed"), "decision_speed", strict=strict, default=DEFAULT_DECISION_SPEED
        ),
        decision_driver=_enum(
            DecisionDriver,
            payload.get("decision_driver"),
            "decision_driver",
            strict=strict,
            default=None,
            required=False,
        ),
        expected_outcome=expected_outcome,
        review_date=_timestamp(payload.get("review_date"), "review_date", strict=strict, default=None),
        created_at=_timestamp(payload.get("created_at"), "created_at", strict=strict, default=fallback_created),
        updated_at=_timestamp(payload.get("updated_at"), "updated_at", strict=strict, default=None),
    )


def normalize_review(payload: Mapping[str, Any], *, strict: bool = True) -> Review:
    decision_id = _record_id(payload, "decision_id")
    if strict and not decision_id:
        raise InvalidRecordError("decision_id is required")
    fallback_reviewed = now_utc() if strict else EPOCH_UTC
    return Review(
        id=_record_id(payload),
        decision_id=decision_id,
        expectation_comparison=_enum(
            ExpectationComparison,
            payload.get("expectation_comparison"),
            "expectation_comparison",
            strict=strict,
            default=DEFAULT_EXPECTATION,
        ),
        surprise_score=_score(payload.get("surprise_score"), "surprise_score", strict=strict),
        would_repeat=_enum(
            WouldRepeat,
            payload.get("would_repeat"),
            "would_repeat",
            strict=strict,
            default=None,
            required=False,
        ),
        decision_quality=_enum(
            DecisionQuality,
            payload.get("decision_quality"),
            "decision_quality",
            strict=strict,
            default=None,
            required=False,
        ),
        what_happened=_text(payload, "what_happened"),
        learning_note=_text(payload, "learning_note"),
        reviewed_at=_timestamp(payload.get("reviewed_at"), "reviewed_at", strict=strict, default=fallback_reviewed),
        created_at=_timestamp(payload.get("created_at"), "created_at", strict=strict, default=None),
        updated_at=_timestamp(payload.get("updated_at"), "updated_at", strict=strict, default=None),
    )


def decision_to_row(decision: Decision) -> dict[str, Any]:
    return {
        "title": decision.title,
        "reasoning": decision.reasoning,
        "confidence": decision.confidence,
        "decision_type": decision.decision_type.value,
        "importance": decision.importance.value,
        "decision_speed": decision.decision_speed.value,
        "decision_driver": decision.decision_driver.value if decision.decision_driver else None,
        "expected_outcome": decision.expected_outcome,
        "review_date": decision.review_date.isoformat() if decision.review_date else None,
        "created_at": decision.created_at.isoformat(),
    }


def review_to_row(review: Review) -> dict[str, Any]:
    return {
        "decision_id": int(review.decision_id),
        "expectation_comparison": review.expectation_comparison.value,
        "decision_quality": review.decision_quality.value if review.decision_quality else None,
        "surprise_score": review.surprise_score,
        "what_happened": review.what_happened,
        "learning_note": review.learning_note,
        "would_repeat": review.would_repeat.value if review.would_repeat else None,
        "reviewed_at": review.reviewed_at.isoformat(),
    }
