"""
Evaluation report models - pack classification accuracy and auto-promotion precision/recall.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .packs import PackCandidate


class PackEvalResult(BaseModel):
    id: str
    expected_pack: str
    selected_pack: str
    passed: bool
    expected_min_confidence: float
    confidence: float
    confidence_passed: bool
    reason: str
    top_candidates: list[PackCandidate] = Field(default_factory=list)


class PackEvalReport(BaseModel):
    generated_at: datetime
    total: int
    passed: int
    failed: int
    accuracy: float = Field(description="Percentage of fixtures passed, one decimal")
    mean_confidence: float
    median_confidence: float
    results: list[PackEvalResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[PackEvalResult]:
        return [r for r in self.results if not r.passed]


class SegmentMetrics(BaseModel):
    promoted_accepted: int = 0
    promoted_rejected: int = 0
    promoted_unknown_outcome: int = 0
    promoted_total: int = 0
    eligible_accepted: int = 0
    precision: Optional[float] = None
    recall: Optional[float] = None


class AuditCounts(BaseModel):
    attempts: int = 0
    promoted: int = 0
    skipped: int = 0
    failed: int = 0


class AutoPromoteEvalReport(BaseModel):
    generated_at: datetime
    total_roots: int
    total_outcomes: int
    min_recommended_outcomes: int
    has_sufficient_outcomes: bool
    audit: AuditCounts = Field(default_factory=AuditCounts)
    overall: SegmentMetrics = Field(default_factory=SegmentMetrics)
    segments: dict[str, SegmentMetrics] = Field(default_factory=dict)
