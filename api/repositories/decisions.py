from __future__ import annotations

from datetime import datetime
from typing import Any

from analysis.records import Decision, Review
from api.db import get_connection
from ingestion.normalize_record import decision_to_row, normalize_decision, normalize_review
from ingestion.time_utils import now_utc, parse_utc, start_of_day

_UPDATABLE_COLUMNS = (
    "title",
    "reasoning",
    "confidence",
    "decision_type",
    "importance",
    "decision_speed",
    "decision_driver",
    "expected_outcome",
    "review_date",
)


def decision_from_row(row: dict[str, Any]) -> Decision:
    # stored rows are trusted to the point of being coerced, never rejected
    return normalize_decision(row, strict=False)


def create_decision(decision: Decision) -> str:
    row = decision_to_row(decision)
    columns = list(row.keys())
    placeholders = ", ".join(["%s"] * len(columns))
    conn = get_connection()
    try:
        created = conn.execute(
            f"INSERT INTO decisions ({', '.join(columns)}) VALUES ({placeholders}) RETURNING id",
            tuple(row[column] for column in columns),
        ).fetchone()
        conn.commit()
    finally:
        conn.close()
    return str(created["id"])


def get_decision(decision_id: int) -> Decision | None:
    conn = get_connection()
    try:
        row = conn.execute("SELECT * FROM decisions WHERE id = %s", (int(decision_id),)).fetchone()
    finally:
        conn.close()
    if row is None:
        return None
    return decision_from_row(row)

# newest first, the order the timeline shows
def list_decisions() -> list[Decision]:
    conn = get_connection()
    try:
        rows = conn.execute("SELECT * FROM decisions ORDER BY created_at DESC, id DESC").fetchall()
    finally:
        conn.close()
    return [decision_from_row(row) for row in rows]


def list_decisions_by_type(decision_type: str) -> list[Decision]:
    conn = get_connection()
    try:
        rows = conn.execute(
            "SELECT * FROM decisions WHERE decision_type = %s ORDER BY created_at DESC, id DESC",
            (decision_type,),
        ).fetchall()
    finally:
        conn.close()
    return [decision_from_row(row) for row in rows]

# review queue: review_date reached (by calendar day) and no review written yet
def list_due_decisions(now: datetime | None = None) -> list[Decision]:
    cutoff = start_of_day(now or now_utc())
    conn = get_connection()
    try:
        rows = conn.execute(
            """
            SELECT d.*
            FROM decisions d
            LEFT JOIN reviews r ON r.decision_id = d.id
            WHERE r.id IS NULL
              AND d.review_date IS NOT NULL
            """
        ).fetchall()
    finally:
        conn.close()
    due: list[Decision] = []
    for row in rows:
        review_date = parse_utc(row["review_date"])
        if review_date is None or start_of_day(review_date) > cutoff:
            continue
        due.append(decision_from_row(row))
    due.sort(key=lambda decision: (decision.review_date, int(decision.id)))
    return due


def update_decision(decision_id: int, updates: dict[str, Any]) -> bool:
    assignments: list[str] = []
    params: list[object] = []
    for column in _UPDATABLE_COLUMNS:
        if column in updates:
            assignments.append(f"{column} = %s")
            params.append(updates[column])
    conn = get_connection()
    try:
        if not assignments:
            row = conn.execute("SELECT id FROM decisions WHERE id = %s", (int(decision_id),)).fetchone()
            return row is not None
        assignments.append("updated_at = %s")
        params.append(now_utc().isoformat())
        params.append(int(decision_id))
        cursor = conn.execute(
            f"UPDATE decisions SET {', '.join(assignments)} WHERE id = %s",
            tuple(params),
        )
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()

# reviews go with it via ON DELETE CASCADE
def delete_decision(decision_id: int) -> bool:
    conn = get_connection()
    try:
        cursor = conn.execute("DELETE FROM decisions WHERE id = %s", (int(decision_id),))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def count_decisions() -> int:
    conn = get_connection()
    try:
        row = conn.execute("SELECT COUNT(*) AS total FROM decisions").fetchone()
    finally:
        conn.close()
    return int(row["total"])


def get_decision_with_review(decision_id: int) -> tuple[Decision | None, Review | None]:
    conn = get_connection()
    try:
        decision_row = conn.execute("SELECT * FROM decisions WHERE id = %s", (int(decision_id),)).fetchone()
        review_row = None
        if decision_row is not None:
            review_row = conn.execute(
                "SELECT * FROM reviews WHERE decision_id = %s ORDER BY reviewed_at, id LIMIT 1",
                (int(decision_id),),
            ).fetchone()
    finally:
        conn.close()
    decision = decision_from_row(decision_row) if decision_row is not None else None
    review = normalize_review(review_row, strict=False) if review_row is not None else None
    return decision, review
