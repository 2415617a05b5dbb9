"""
Quality models - grounding hints, quality reports and template profiles.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .packs import DomainPackSelection
from .script import ScriptResult


class GroundingHints(BaseModel):
    """Verifiable facts mined from scraped content. Recomputed per generation."""
    model_config = ConfigDict(frozen=True)

    terms: tuple[str, ...] = Field(default=(), description="Ordered by frequency")
    phrases: tuple[str, ...] = ()
    feature_name_candidates: tuple[str, ...] = ()
    numbers: tuple[str, ...] = ()
    integration_candidates: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.terms or self.phrases or self.numbers)


class FeatureEvidence(BaseModel):
    """Grounded material for building one feature."""
    feature_name: str
    required_phrases: list[str] = Field(default_factory=list)
    preferred_number: Optional[str] = None


class GroundingSummary(BaseModel):
    """How much of the grounding material a script actually uses."""
    coverage: float = Field(ge=0, le=1)
    matched_terms: int = 0
    total_terms: int = 0
    matched_phrases: int = 0
    total_phrases: int = 0
    matched_numbers: int = 0
    total_numbers: int = 0
    sample_matches: list[str] = Field(default_factory=list)


class QualityReport(BaseModel):
    """Deterministic quality verdict for a script."""
    score: int = Field(ge=0, le=100)
    min_score: int
    passed: bool
    blockers: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)

    def meets(self, target_score: float, max_warnings: int) -> bool:
        """Goal check used by the auto-improve loop."""
        return (
            not self.blockers
            and self.score >= target_score
            and len(self.warnings) <= max_warnings
        )


class TemplateProfile(BaseModel):
    """Video template with per-scene pacing weights."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    description: str = ""
    scene_weight_hint: tuple[int, ...] = (5, 6, 3, 7, 7, 7, 8, 6)


class TemplateSelection(BaseModel):
    profile: TemplateProfile
    reason: str


class GenerationMode(str, Enum):
    """Which path produced the accepted script."""
    MODEL = "model"
    MODEL_AUTOFIX = "model+autofix"
    FALLBACK = "fallback"
    FALLBACK_AUTOFIX = "fallback+autofix"


class QualityGateResult(BaseModel):
    """Accepted script with its report and the selections that shaped it."""
    script: ScriptResult
    report: QualityReport
    generation_mode: GenerationMode
    pack_selection: DomainPackSelection
    template_selection: TemplateSelection
    grounding: GroundingSummary
    actions: list[str] = Field(default_factory=list)
    attempts: int = 0
