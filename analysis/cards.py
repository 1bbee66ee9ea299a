from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class InsightStrength(str, Enum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


@dataclass(frozen=True)
class InsightEvidence:
    sample_size: int
    metric_name: str
    value: float
    baseline: float | None = None
    lift: float | None = None


@dataclass(frozen=True)
class InsightCard:
    id: str
    title: str
    message: str
    strength: InsightStrength
    tags: tuple[str, ...] = field(default_factory=tuple)
    evidence: tuple[InsightEvidence, ...] = field(default_factory=tuple)
    action_hint: str | None = None

    @property
    def lift_magnitude(self) -> float:
        return sum(abs(row.lift) for row in self.evidence if row.lift is not None)

    def evidence_for(self, metric_name: str) -> InsightEvidence | None:
        for row in self.evidence:
            if row.metric_name == metric_name:
                return row
        return None
