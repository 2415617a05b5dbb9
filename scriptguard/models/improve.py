"""
Auto-improve models - section recommendations, steps and stop reasons.
"""
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .quality import QualityReport
from .script import ScriptResult, Section


class StopReason(str, Enum):
    """Why the auto-improve loop halted."""
    ALREADY_MEETS_TARGET = "already-meets-target"
    TARGET_REACHED = "target-reached"
    STALLED = "stalled-no-improvement"
    SECTIONS_EXHAUSTED = "sections-exhausted"
    MAX_STEPS = "max-steps-reached"

    @property
    def succeeded(self) -> bool:
        return self in (StopReason.ALREADY_MEETS_TARGET, StopReason.TARGET_REACHED)


class SectionRecommendation(BaseModel):
    """A ranked suggestion to regenerate one section."""
    section: Section
    score: float
    confidence: float = Field(ge=0, le=1)
    impact: Literal["high", "medium", "low"]
    reasons: list[str] = Field(default_factory=list)


class ImprovementPlan(BaseModel):
    recommendations: list[SectionRecommendation] = Field(default_factory=list)

    @property
    def top(self) -> Optional[SectionRecommendation]:
        return self.recommendations[0] if self.recommendations else None


class ImproveOptions(BaseModel):
    """Knobs for one auto-improve run."""
    target_score: int = 85
    min_score: int = 74
    max_warnings: int = 3
    fail_on_warnings: bool = False
    max_steps: int = Field(default=6, ge=0)
    max_section_attempts: int = Field(default=2, ge=1)
    stall_limit: int = Field(default=2, ge=1)
    autofix: bool = True

    @property
    def warning_budget(self) -> int:
        return 0 if self.fail_on_warnings else self.max_warnings


class ImproveStep(BaseModel):
    """One regenerate/autofix/rescore iteration."""
    step: int
    section: Section
    score_before: int
    score_after: int
    blockers_before: int
    blockers_after: int
    warnings_before: int
    warnings_after: int
    improved: bool
    accepted: bool = Field(description="Whether the working script advanced to this candidate")
    actions: list[str] = Field(default_factory=list)


class AutoImproveResult(BaseModel):
    script: ScriptResult
    report: QualityReport
    initial_report: QualityReport
    steps: list[ImproveStep] = Field(default_factory=list)
    stop_reason: StopReason
    section_attempts: dict[str, int] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.stop_reason.succeeded
