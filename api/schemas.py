# standardize base schemas for repeated payload patterns
# enum-valued fields carry the exact wire strings used by the analysis records

from typing import Optional

from pydantic import BaseModel, Field

DECISION_TYPE_PATTERN = "^(personal|work|finance|health|other)$"
IMPORTANCE_PATTERN = "^(low|medium|high)$"
SPEED_PATTERN = "^(quick|moderate|slow)$"
DRIVER_PATTERN = "^(logic|urgency|fear|opportunity|external_pressure)$"
EXPECTATION_PATTERN = "^(much_worse|slightly_worse|as_expected|slightly_better|much_better)$"
QUALITY_PATTERN = "^(very_thoughtful|reasonable|acceptable|rushed|emotional)$"
REPEAT_PATTERN = "^(yes|no|unsure)$"


# Validate / standardize input JSON payload for POST /decisions
class DecisionIn(BaseModel):
    title: str
    reasoning: str = ""
    confidence: int = Field(ge=0, le=100)
    decision_type: str = Field(default="other", pattern=DECISION_TYPE_PATTERN)
    importance: str = Field(default="medium", pattern=IMPORTANCE_PATTERN)
    decision_speed: str = Field(pattern=SPEED_PATTERN)
    decision_driver: Optional[str] = Field(default=None, pattern=DRIVER_PATTERN)
    expected_outcome: str = ""
    review_date: Optional[str] = None
    created_at: Optional[str] = None


class DecisionPatchIn(BaseModel):
    title: Optional[str] = None
    reasoning: Optional[str] = None
    confidence: int | None = Field(default=None, ge=0, le=100)
    decision_type: Optional[str] = Field(default=None, pattern=DECISION_TYPE_PATTERN)
    importance: Optional[str] = Field(default=None, pattern=IMPORTANCE_PATTERN)
    decision_speed: Optional[str] = Field(default=None, pattern=SPEED_PATTERN)
    decision_driver: Optional[str] = Field(default=None, pattern=DRIVER_PATTERN)
    expected_outcome: Optional[str] = None
    review_date: Optional[str] = None


class DecisionOut(BaseModel):
    id: str
    title: str
    reasoning: str
    confidence: int
    decision_type: str
    importance: str
    decision_speed: str
    decision_driver: Optional[str] = None
    expected_outcome: str = ""
    review_date: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None


# Validate / standardize input JSON payload for POST /decisions/{id}/review
class ReviewIn(BaseModel):
    expectation_comparison: str = Field(pattern=EXPECTATION_PATTERN)
    decision_quality: Optional[str] = Field(default=None, pattern=QUALITY_PATTERN)
    surprise_score: int = Field(ge=0, le=100)
    what_happened: str = ""
    learning_note: str = ""
    would_repeat: Optional[str] = Field(default=None, pattern=REPEAT_PATTERN)
    reviewed_at: Optional[str] = None


class ReviewPatchIn(BaseModel):
    expectation_comparison: Optional[str] = Field(default=None, pattern=EXPECTATION_PATTERN)
    decision_quality: Optional[str] = Field(default=None, pattern=QUALITY_PATTERN)
    surprise_score: int | None = Field(default=None, ge=0, le=100)
    what_happened: Optional[str] = None
    learning_note: Optional[str] = None
    would_repeat: Optional[str] = Field(default=None, pattern=REPEAT_PATTERN)
    reviewed_at: Optional[str] = None


class ReviewOut(BaseModel):
    id: str
    decision_id: str
    expectation_comparison: str
    decision_quality: Optional[str] = None
    surprise_score: int
    what_happened: str = ""
    learning_note: str = ""
    would_repeat: Optional[str] = None
    reviewed_at: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DecisionDetailOut(BaseModel):
    decision: DecisionOut
    review: Optional[ReviewOut] = None


class MutationOut(BaseModel):
    status: str
    id: str


class ReviewStatsOut(BaseModel):
    total_reviews: int
    very_thoughtful_count: int
    reasonable_count: int
    acceptable_count: int
    rushed_count: int
    emotional_count: int
    much_better_count: int
    slightly_better_count: int
    as_expected_count: int
    slightly_worse_count: int
    much_worse_count: int
    average_surprise_score: float
    would_repeat_yes: int
    would_repeat_unsure: int
    would_repeat_no: int


class InsightEvidenceOut(BaseModel):
    sample_size: int
    metric_name: str
    value: float
    baseline: Optional[float] = None
    lift: Optional[float] = None


class InsightCardOut(BaseModel):
    id: str
    title: str
    message: str
    tags: list[str]
    strength: str
    evidence: list[InsightEvidenceOut]
    action_hint: Optional[str] = None


class BaselineOut(BaseModel):
    review_count: int
    avg_outcome_score: float
    avg_surprise: float
    avg_calibration_error: float


class ConfidenceSummaryOut(BaseModel):
    message: str
    average_confidence: int
    well_calibrated_count: int
    overconfident_count: int
    underconfident_count: int


class SurpriseSummaryOut(BaseModel):
    message: str
    average_surprise_score: float
    most_surprised_domain: Optional[str] = None
    least_surprised_domain: Optional[str] = None


class SpeedSummaryOut(BaseModel):
    message: str
    quick_regret_rate: int
    moderate_regret_rate: int
    slow_regret_rate: int


class RepeatSummaryOut(BaseModel):
    message: str
    repeat_rate: int
    would_repeat_count: int
    would_not_repeat_count: int
    unsure_count: int


class InsightsOut(BaseModel):
    cards: list[InsightCardOut]
    baseline: BaselineOut
    review_count: int
    minimum_reviews_needed: int
    confidence: Optional[ConfidenceSummaryOut] = None
    surprise: Optional[SurpriseSummaryOut] = None
    speed: Optional[SpeedSummaryOut] = None
    repeat: Optional[RepeatSummaryOut] = None


class SpeedOutcomeOut(BaseModel):
    avg_outcome: float
    count: int


class CohortImprovementOut(BaseModel):
    recent_avg: float
    prior_avg: float
    delta: float


class MetricsOut(BaseModel):
    brier_score: float
    calibration_error: float
    surprise_volatility: float
    consistency_score: int
    regret_rate_by_importance: dict[str, int]
    speed_outcomes: dict[str, SpeedOutcomeOut]
    time_to_review_correlation: float
    cohort: CohortImprovementOut
    risk_adjusted_repeat_rate: int
    outcome_roi: float


class JournalSummaryOut(BaseModel):
    total_decisions: int
    total_reviews: int


class JournalExportOut(BaseModel):
    decisions: list[DecisionOut]
    reviews: list[ReviewOut]
    summary: JournalSummaryOut
    exported_at: str
