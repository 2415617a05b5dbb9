"""
Version models - project versions, metadata, promotion policy and outcome learning.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from .base import PersistedModel
from .packs import PromotionSegment


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class VersionMode(str, Enum):
    GENERATE = "generate"
    RERENDER = "rerender"


class Outcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class QualitySnapshot(BaseModel):
    """Quality numbers captured from a version's quality file."""
    score: float = 0
    passed: bool = False
    blockers: int = 0
    warnings: int = 0
    domain_pack: Optional[str] = None
    template: Optional[str] = None
    generation_mode: Optional[str] = None


class VersionArtifacts(BaseModel):
    """Artifact paths; None means not available."""
    script_path: Optional[str] = None
    quality_path: Optional[str] = None
    video_path: Optional[str] = None
    audio_path: Optional[str] = None

    @property
    def renderable(self) -> bool:
        return bool(self.video_path)


class VersionMeta(PersistedModel):
    """Operator-facing metadata for one version."""
    label: Optional[str] = None
    archived: bool = False
    pinned: bool = False
    outcome: Optional[Outcome] = None
    outcome_at: Optional[datetime] = None
    promoted_at: Optional[datetime] = None


class ProjectVersion(BaseModel):
    """One rendering attempt of a project root."""
    id: str
    root: str
    version: int = Field(ge=1)
    status: JobStatus
    mode: VersionMode = VersionMode.GENERATE
    created_at: Optional[datetime] = None
    quality: QualitySnapshot = Field(default_factory=QualitySnapshot)
    artifacts: VersionArtifacts = Field(default_factory=VersionArtifacts)
    meta: VersionMeta = Field(default_factory=VersionMeta)


class CalibrationRecord(PersistedModel):
    """Last applied calibration."""
    at: datetime
    thresholds: dict[str, float] = Field(default_factory=dict)
    evidence: dict[str, int] = Field(default_factory=dict)


class AutoPromotePolicy(PersistedModel):
    """Per-project auto-promotion thresholds."""
    min_confidence: float = Field(default=0.75, ge=0, le=1)
    segment_thresholds: dict[PromotionSegment, float] = Field(
        default_factory=lambda: {
            PromotionSegment.CORE_ICP: 0.8,
            PromotionSegment.BROAD: 0.75,
        }
    )
    last_calibration: Optional[CalibrationRecord] = None

    def threshold_for(self, segment: PromotionSegment) -> float:
        """Effective threshold; core-icp never drops below min_confidence."""
        value = self.segment_thresholds.get(segment, self.min_confidence)
        if segment == PromotionSegment.CORE_ICP:
            return max(value, self.min_confidence)
        return value


class VersionMetadataFile(PersistedModel):
    """Persisted per-root metadata: entries keyed by job id plus policy."""
    root_output_name: str
    entries: dict[str, VersionMeta] = Field(default_factory=dict)
    policy: AutoPromotePolicy = Field(default_factory=AutoPromotePolicy)


class AuditEntry(PersistedModel):
    type: str
    at: datetime
    root_output_name: str
    job_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class OutcomeCounts(BaseModel):
    accepted: int = 0
    rejected: int = 0

    @property
    def evidence(self) -> int:
        return self.accepted + self.rejected

    def add(self, outcome: Outcome) -> None:
        if outcome == Outcome.ACCEPTED:
            self.accepted += 1
        else:
            self.rejected += 1


class OutcomeLearning(BaseModel):
    """Accept/reject history bucketed by pack, template and pack|template pair."""
    by_pack: dict[str, OutcomeCounts] = Field(default_factory=dict)
    by_template: dict[str, OutcomeCounts] = Field(default_factory=dict)
    by_pair: dict[str, OutcomeCounts] = Field(default_factory=dict)
    by_segment: dict[str, OutcomeCounts] = Field(default_factory=dict)
    total: int = 0

    @staticmethod
    def pair_key(pack: Optional[str], template: Optional[str]) -> str:
        return f"{pack or 'unknown'}|{template or 'unknown'}"

    def record(
        self,
        outcome: Outcome,
        pack: Optional[str],
        template: Optional[str],
        segment: Optional[str] = None,
    ) -> None:
        if pack:
            self.by_pack.setdefault(pack, OutcomeCounts()).add(outcome)
        if template:
            self.by_template.setdefault(template, OutcomeCounts()).add(outcome)
        if pack and template:
            self.by_pair.setdefault(self.pair_key(pack, template), OutcomeCounts()).add(outcome)
        if segment:
            self.by_segment.setdefault(segment, OutcomeCounts()).add(outcome)
        self.total += 1


class VersionScore(BaseModel):
    """Composite desirability of one version with its breakdown."""
    job_id: str
    version: int
    composite: float
    components: dict[str, float] = Field(default_factory=dict)


class VersionRecommendation(BaseModel):
    recommended: Optional[ProjectVersion] = None
    ranking: list[VersionScore] = Field(default_factory=list)
    reason: str
    confidence: float = Field(default=0, ge=0, le=1)
    learning: dict[str, Any] = Field(default_factory=dict)


class PromotionResult(BaseModel):
    """Outcome of a promotion attempt; refusals carry a machine-readable reason."""
    promoted: bool
    reason: str
    job_id: Optional[str] = None
    confidence: Optional[float] = None
    threshold: Optional[float] = None
    metadata: Optional[VersionMetadataFile] = None


class SegmentCalibration(BaseModel):
    accepted: int
    rejected: int
    rate: float
    evidence_weight: float
    current: float
    recommended: float


class CalibrationResult(BaseModel):
    root_output_name: str
    applied: bool
    segments: dict[str, SegmentCalibration] = Field(default_factory=dict)
    policy: AutoPromotePolicy


class AuditFile(PersistedModel):
    """Append-only audit log for one root."""
    root_output_name: str
    entries: list[AuditEntry] = Field(default_factory=list)
