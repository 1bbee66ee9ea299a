from __future__ import annotations

from typing import Any

from psycopg import errors as db_errors

from analysis.records import DecisionQuality, ExpectationComparison, Review, WouldRepeat
from api.db import get_connection
from ingestion.normalize_record import normalize_review, review_to_row
from ingestion.time_utils import now_utc

_UPDATABLE_COLUMNS = (
    "expectation_comparison",
    "decision_quality",
    "surprise_score",
    "what_happened",
    "learning_note",
    "would_repeat",
    "reviewed_at",
)


class DuplicateReviewError(ValueError):
    pass


class UnknownDecisionError(ValueError):
    pass


def review_from_row(row: dict[str, Any]) -> Review:
    return normalize_review(row, strict=False)


def create_review(review: Review) -> str:
    row = review_to_row(review)
    row["created_at"] = now_utc().isoformat()
    columns = list(row.keys())
    placeholders = ", ".join(["%s"] * len(columns))
    conn = get_connection()
    try:
        try:
            created = conn.execute(
                f"INSERT INTO reviews ({', '.join(columns)}) VALUES ({placeholders}) RETURNING id",
                tuple(row[column] for column in columns),
            ).fetchone()
        except db_errors.UniqueViolation as exc:
            conn.rollback()
            raise DuplicateReviewError(f"decision {review.decision_id} already has a review") from exc
        except db_errors.ForeignKeyViolation as exc:
            conn.rollback()
            raise UnknownDecisionError(f"decision {review.decision_id} does not exist") from exc
        conn.commit()
    finally:
        conn.close()
    return str(created["id"])


def get_review(review_id: int) -> Review | None:
    conn = get_connection()
    try:
        row = conn.execute("SELECT * FROM reviews WHERE id = %s", (int(review_id),)).fetchone()
    finally:
        conn.close()
    if row is None:
        return None
    return review_from_row(row)


def get_review_for_decision(decision_id: int) -> Review | None:
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT * FROM reviews WHERE decision_id = %s ORDER BY reviewed_at, id LIMIT 1",
            (int(decision_id),),
        ).fetchone()
    finally:
        conn.close()
    if row is None:
        return None
    return review_from_row(row)

# newest first
def list_reviews() -> list[Review]:
    conn = get_connection()
    try:
        rows = conn.execute("SELECT * FROM reviews ORDER BY reviewed_at DESC, id DESC").fetchall()
    finally:
        conn.close()
    return [review_from_row(row) for row in rows]


def update_review(review_id: int, updates: dict[str, Any]) -> bool:
    assignments: list[str] = []
    params: list[object] = []
    for column in _UPDATABLE_COLUMNS:
        if column in updates:
            assignments.append(f"{column} = %s")
            params.append(updates[column])
    conn = get_connection()
    try:
        if not assignments:
            row = conn.execute("SELECT id FROM reviews WHERE id = %s", (int(review_id),)).fetchone()
            return row is not None
        assignments.append("updated_at = %s")
        params.append(now_utc().isoformat())
        params.append(int(review_id))
        cursor = conn.execute(
            f"UPDATE reviews SET {', '.join(assignments)} WHERE id = %s",
            tuple(params),
        )
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def delete_review(review_id: int) -> bool:
    conn = get_connection()
    try:
        cursor = conn.execute("DELETE FROM reviews WHERE id = %s", (int(review_id),))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def count_reviews() -> int:
    conn = get_connection()
    try:
        row = conn.execute("SELECT COUNT(*) AS total FROM reviews").fetchone()
    finally:
        conn.close()
    return int(row["total"])


def summarize_reviews(reviews: list[Review]) -> dict[str, Any]:
    """Totals per process quality, expectation gap and repeat answer, plus mean surprise."""
    total = len(reviews)
    stats: dict[str, Any] = {"total_reviews": total}
    for quality in DecisionQuality:
        stats[f"{quality.value}_count"] = sum(1 for review in reviews if review.decision_quality == quality)
    for comparison in ExpectationComparison:
        stats[f"{comparison.value}_count"] = sum(
            1 for review in reviews if review.expectation_comparison == comparison
        )
    stats["average_surprise_score"] = (
        sum(review.surprise_score for review in reviews) / total if total else 0.0
    )
    for answer in WouldRepeat:
        stats[f"would_repeat_{answer.value}"] = sum(1 for review in reviews if review.would_repeat == answer)
    return stats


def get_review_stats() -> dict[str, Any]:
    return summarize_reviews(list_reviews())
