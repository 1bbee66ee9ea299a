from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from api.db import get_connection
from api.helpers.record_helpers import decision_response, review_response
from api.repositories.decisions import list_decisions
from api.repositories.reviews import list_reviews
from ingestion.normalize_record import (
    InvalidRecordError,
    decision_to_row,
    normalize_decision,
    normalize_review,
    review_to_row,
)
from ingestion.time_utils import now_utc


def export_journal() -> dict[str, Any]:
    decisions = list_decisions()
    reviews = list_reviews()
    return {
        "decisions": [decision_response(decision) for decision in decisions],
        "reviews": [review_response(review) for review in reviews],
        "summary": {
            "total_decisions": len(decisions),
            "total_reviews": len(reviews),
        },
        "exported_at": now_utc().isoformat(),
    }


def _insert(conn, table: str, row: dict[str, Any]) -> int:
    columns = list(row.keys())
    placeholders = ", ".join(["%s"] * len(columns))
    created = conn.execute(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING id",
        tuple(row[column] for column in columns),
    ).fetchone()
    return int(created["id"])


def import_journal(payload: dict[str, Any]) -> dict[str, int]:
    """Insert an exported journal as new rows; exported ids are remapped.

    Records are validated strictly and the whole file is rejected on the first bad one.
    Reviews whose decision is missing from the file, or that repeat a decision, are skipped.
    """
    if not isinstance(payload, dict):
        raise InvalidRecordError("journal must be a JSON object")
    raw_decisions = payload.get("decisions") or []
    raw_reviews = payload.get("reviews") or []
    if not isinstance(raw_decisions, list) or not isinstance(raw_reviews, list):
        raise InvalidRecordError("decisions and reviews must be JSON arrays")

    conn = get_connection()
    try:
        id_map: dict[str, int] = {}
        created_decisions = 0
        for raw in raw_decisions:
            if not isinstance(raw, dict):
                raise InvalidRecordError("each decision must be a JSON object")
            decision = normalize_decision(raw, strict=True)
            row = decision_to_row(decision)
            row["updated_at"] = decision.updated_at.isoformat() if decision.updated_at else None
            id_map[decision.id] = _insert(conn, "decisions", row)
            created_decisions += 1

        created_reviews = 0
        skipped_reviews = 0
        reviewed: set[int] = set()
        for raw in raw_reviews:
            if not isinstance(raw, dict):
                raise InvalidRecordError("each review must be a JSON object")
            review = normalize_review(raw, strict=True)
            new_decision_id = id_map.get(review.decision_id)
            if new_decision_id is None or new_decision_id in reviewed:
                skipped_reviews += 1
                continue
            row = review_to_row(review)
            row["decision_id"] = new_decision_id
            row["created_at"] = (review.created_at or now_utc()).isoformat()
            _insert(conn, "reviews", row)
            reviewed.add(new_decision_id)
            created_reviews += 1

        conn.commit()
        return {
            "created_decisions": created_decisions,
            "created_reviews": created_reviews,
            "skipped_reviews": skipped_reviews,
        }
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Import or export the decision journal as JSON.")
    parser.add_argument("--path", type=str, required=True, help="Path to journal JSON file")
    parser.add_argument("--export", action="store_true", help="Write the journal to --path instead of loading it")
    args = parser.parse_args()

    path = Path(args.path)
    if args.export:
        path.write_text(json.dumps(export_journal(), indent=2))
        print({"path": str(path)})
        return
    print(import_journal(json.loads(path.read_text())))


if __name__ == "__main__":
    main()
