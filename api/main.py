import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from psycopg import Error as DatabaseError

from analysis.insights import generate_insights
from analysis.metrics import compute_metrics
from api.db import initialize_database
from api.helpers.record_helpers import (
    decision_patch_updates,
    decision_response,
    insights_response,
    metrics_response,
    review_patch_updates,
    review_response,
)
from api.repositories.decisions import (
    create_decision,
    delete_decision,
    get_decision,
    get_decision_with_review,
    list_decisions,
    list_decisions_by_type,
    list_due_decisions,
    update_decision,
)
from api.repositories.reviews import (
    DuplicateReviewError,
    UnknownDecisionError,
    create_review,
    delete_review,
    get_review,
    get_review_stats,
    list_reviews,
    update_review,
)
from api.schemas import (
    DecisionDetailOut,
    DecisionIn,
    DecisionOut,
    DecisionPatchIn,
    InsightsOut,
    JournalExportOut,
    MetricsOut,
    MutationOut,
    ReviewIn,
    ReviewOut,
    ReviewPatchIn,
    ReviewStatsOut,
)
from ingestion.load_journal import export_journal
from ingestion.normalize_record import InvalidRecordError, normalize_decision, normalize_review


@asynccontextmanager
async def _lifespan(app: FastAPI):
    _ = app
    initialize_database()
    yield


app = FastAPI(
    title="Decision Memory API",
    version="0.1.0",
    lifespan=_lifespan,
)
logger = logging.getLogger(__name__)


def _cors_allow_origins() -> list[str]:
    configured = os.getenv("CORS_ALLOW_ORIGINS", "")
    if configured.strip():
        return [origin.strip().rstrip("/") for origin in configured.split(",") if origin.strip()]
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _database_unavailable(action: str, exc: DatabaseError, **context: object) -> HTTPException:
    logger.exception("Database write failed", extra={"action": action, **context})
    return HTTPException(status_code=503, detail=f"database error during {action}: {exc.__class__.__name__}")


@app.post("/decisions", response_model=DecisionOut)
def post_decision(payload: DecisionIn):
    # normalize/validate first so db inserts always receive standardized shape
    try:
        decision = normalize_decision(payload.model_dump(), strict=True)
    except InvalidRecordError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        created_id = create_decision(decision)
    except DatabaseError as exc:
        raise _database_unavailable("create_decision", exc)
    created = get_decision(int(created_id))
    if created is None:
        raise HTTPException(status_code=500, detail="decision was created but could not be read back")
    return decision_response(created)


@app.get("/decisions", response_model=list[DecisionOut])
def get_decisions(decision_type: str | None = None):
    if decision_type:
        decisions = list_decisions_by_type(decision_type.strip().lower())
    else:
        decisions = list_decisions()
    return [decision_response(decision) for decision in decisions]


@app.get("/decisions/due", response_model=list[DecisionOut])
def get_due_decisions():
    return [decision_response(decision) for decision in list_due_decisions()]


@app.get("/decisions/{decision_id}", response_model=DecisionDetailOut)
def get_decision_detail(decision_id: int):
    decision, review = get_decision_with_review(decision_id)
    if decision is None:
        raise HTTPException(status_code=404, detail="decision not found")
    return {
        "decision": decision_response(decision),
        "review": review_response(review) if review is not None else None,
    }


@app.patch("/decisions/{decision_id}", response_model=DecisionOut)
def patch_decision(decision_id: int, payload: DecisionPatchIn):
    try:
        updates = decision_patch_updates(payload)
    except InvalidRecordError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        found = update_decision(decision_id, updates)
    except DatabaseError as exc:
        raise _database_unavailable("update_decision", exc, decision_id=int(decision_id))
    if not found:
        raise HTTPException(status_code=404, detail="decision not found")
    updated = get_decision(decision_id)
    if updated is None:
        raise HTTPException(status_code=404, detail="decision not found")
    return decision_response(updated)


@app.delete("/decisions/{decision_id}", response_model=MutationOut)
def remove_decision(decision_id: int):
    try:
        deleted = delete_decision(decision_id)
    except DatabaseError as exc:
        raise _database_unavailable("delete_decision", exc, decision_id=int(decision_id))
    if not deleted:
        raise HTTPException(status_code=404, detail="decision not found")
    return {"status": "deleted", "id": str(decision_id)}


@app.post("/decisions/{decision_id}/review", response_model=ReviewOut)
def post_review(decision_id: int, payload: ReviewIn):
    raw = payload.model_dump()
    raw["decision_id"] = decision_id
    try:
        review = normalize_review(raw, strict=True)
    except InvalidRecordError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        created_id = create_review(review)
    except DuplicateReviewError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except UnknownDecisionError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except DatabaseError as exc:
        raise _database_unavailable("create_review", exc, decision_id=int(decision_id))
    created = get_review(int(created_id))
    if created is None:
        raise HTTPException(status_code=500, detail="review was created but could not be read back")
    return review_response(created)


@app.get("/reviews", response_model=list[ReviewOut])
def get_reviews():
    return [review_response(review) for review in list_reviews()]


@app.get("/reviews/stats", response_model=ReviewStatsOut)
def get_reviews_stats():
    return get_review_stats()


@app.patch("/reviews/{review_id}", response_model=ReviewOut)
def patch_review(review_id: int, payload: ReviewPatchIn):
    try:
        updates = review_patch_updates(payload)
    except InvalidRecordError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        found = update_review(review_id, updates)
    except DatabaseError as exc:
        raise _database_unavailable("update_review", exc, review_id=int(review_id))
    if not found:
        raise HTTPException(status_code=404, detail="review not found")
    updated = get_review(review_id)
    if updated is None:
        raise HTTPException(status_code=404, detail="review not found")
    return review_response(updated)


@app.delete("/reviews/{review_id}", response_model=MutationOut)
def remove_review(review_id: int):
    try:
        deleted = delete_review(review_id)
    except DatabaseError as exc:
        raise _database_unavailable("delete_review", exc, review_id=int(review_id))
    if not deleted:
        raise HTTPException(status_code=404, detail="review not found")
    return {"status": "deleted", "id": str(review_id)}


# insights are computed per request from the full record set and never stored
@app.get("/insights", response_model=InsightsOut)
def get_insights():
    result = generate_insights(list_decisions(), list_reviews())
    return insights_response(result)


@app.get("/insights/metrics", response_model=MetricsOut)
def get_insight_metrics():
    return metrics_response(compute_metrics(list_decisions(), list_reviews()))


# full journal dump in the same shape the import script accepts
@app.get("/journal/export", response_model=JournalExportOut)
def get_journal_export():
    return export_journal()
