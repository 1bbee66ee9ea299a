from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any

from analysis.cards import InsightCard
from analysis.insights import InsightsResult
from analysis.metrics import DecisionMetrics
from analysis.records import Decision, Review
from ingestion.normalize_record import (
    EXPECTED_OUTCOME_MAX_LENGTH,
    REASONING_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    InvalidRecordError,
)
from ingestion.time_utils import to_utc_iso


def _wire(value: Any) -> Any:
    # enums leave as their wire string, datetimes as ISO-8601 UTC
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(_wire(key)): _wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_wire(item) for item in value]
    return value


def normalize_patch_time_value(value: str | None, field_name: str) -> str | None:
    if value is None:
        return None
    try:
        return to_utc_iso(value, strict=True)
    except ValueError as exc:
        raise InvalidRecordError(f"invalid datetime format: {field_name}") from exc


def patch_updates(
    payload: Any,
    *,
    time_fields: tuple[str, ...] = (),
    required_fields: tuple[str, ...] = (),
    max_lengths: dict[str, int] | None = None,
) -> dict[str, Any]:
    # only fields the client actually sent; explicit nulls are kept unless the column is required
    updates = payload.model_dump(exclude_unset=True)
    for field_name in required_fields:
        if field_name in updates and updates[field_name] is None:
            raise InvalidRecordError(f"{field_name} is required")
    for field_name in time_fields:
        if field_name in updates:
            updates[field_name] = normalize_patch_time_value(updates[field_name], field_name)
    if "title" in updates:
        title = (updates["title"] or "").strip()
        if not title:
            raise InvalidRecordError("title is required")
        updates["title"] = title
    for field_name, max_length in (max_lengths or {}).items():
        value = updates.get(field_name)
        if value is not None and len(value) > max_length:
            raise InvalidRecordError(f"{field_name} must be {max_length} characters or less")
    return updates


DECISION_PATCH_REQUIRED = (
    "title",
    "reasoning",
    "confidence",
    "decision_type",
    "importance",
    "decision_speed",
    "expected_outcome",
)
DECISION_PATCH_MAX_LENGTHS = {
    "title": TITLE_MAX_LENGTH,
    "reasoning": REASONING_MAX_LENGTH,
    "expected_outcome": EXPECTED_OUTCOME_MAX_LENGTH,
}
REVIEW_PATCH_REQUIRED = (
    "expectation_comparison",
    "surprise_score",
    "what_happened",
    "learning_note",
    "reviewed_at",
)


def decision_patch_updates(payload: Any) -> dict[str, Any]:
    return patch_updates(
        payload,
        time_fields=("review_date",),
        required_fields=DECISION_PATCH_REQUIRED,
        max_lengths=DECISION_PATCH_MAX_LENGTHS,
    )


def review_patch_updates(payload: Any) -> dict[str, Any]:
    return patch_updates(payload, time_fields=("reviewed_at",), required_fields=REVIEW_PATCH_REQUIRED)


def decision_response(decision: Decision) -> dict:
    return {
        "id": decision.id,
        "title": decision.title,
        "reasoning": decision.reasoning,
        "confidence": decision.confidence,
        "decision_type": _wire(decision.decision_type),
        "importance": _wire(decision.importance),
        "decision_speed": _wire(decision.decision_speed),
        "decision_driver": _wire(decision.decision_driver),
        "expected_outcome": decision.expected_outcome,
        "review_date": _wire(decision.review_date),
        "created_at": _wire(decision.created_at),
        "updated_at": _wire(decision.updated_at),
    }


def review_response(review: Review) -> dict:
    return {
        "id": review.id,
        "decision_id": review.decision_id,
        "expectation_comparison": _wire(review.expectation_comparison),
        "decision_quality": _wire(review.decision_quality),
        "surprise_score": review.surprise_score,
        "what_happened": review.what_happened,
        "learning_note": review.learning_note,
        "would_repeat": _wire(review.would_repeat),
        "reviewed_at": _wire(review.reviewed_at),
        "created_at": _wire(review.created_at),
        "updated_at": _wire(review.updated_at),
    }


def card_response(card: InsightCard) -> dict:
    return {
        "id": card.id,
        "title": card.title,
        "message": card.message,
        "tags": list(card.tags),
        "strength": _wire(card.strength),
        "evidence": [asdict(row) for row in card.evidence],
        "action_hint": card.action_hint,
    }


def insights_response(result: InsightsResult) -> dict:
    return {
        "cards": [card_response(card) for card in result.cards],
        "baseline": asdict(result.baseline),
        "review_count": result.review_count,
        "minimum_reviews_needed": result.minimum_reviews_needed,
        "confidence": _wire(asdict(result.confidence)) if result.confidence else None,
        "surprise": _wire(asdict(result.surprise)) if result.surprise else None,
        "speed": _wire(asdict(result.speed)) if result.speed else None,
        "repeat": _wire(asdict(result.repeat)) if result.repeat else None,
    }


def metrics_response(metrics: DecisionMetrics) -> dict:
    return _wire(asdict(metrics))
