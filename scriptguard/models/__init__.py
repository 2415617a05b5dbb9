"""
Pydantic models for scriptguard.
All data contracts are defined here for strict validation.
"""

from .scraped import ScrapedData
from .packs import DomainPack, DomainPackSelection, PackCandidate, PromotionSegment
from .script import (
    AutoFixResult,
    Feature,
    RegenerateSectionResult,
    ScriptResult,
    Section,
)
from .quality import (
    FeatureEvidence,
    GenerationMode,
    GroundingHints,
    GroundingSummary,
    QualityGateResult,
    QualityReport,
    TemplateProfile,
    TemplateSelection,
)
from .improve import (
    AutoImproveResult,
    ImprovementPlan,
    ImproveOptions,
    ImproveStep,
    SectionRecommendation,
    StopReason,
)
from .versions import (
    AuditEntry,
    AuditFile,
    AutoPromotePolicy,
    CalibrationRecord,
    CalibrationResult,
    JobStatus,
    Outcome,
    OutcomeCounts,
    OutcomeLearning,
    ProjectVersion,
    PromotionResult,
    QualitySnapshot,
    SegmentCalibration,
    VersionArtifacts,
    VersionMeta,
    VersionMetadataFile,
    VersionMode,
    VersionRecommendation,
    VersionScore,
)
from .jobs import JobOptions, JobRecord, RenderCompletion
from .evaluation import (
    AuditCounts,
    AutoPromoteEvalReport,
    PackEvalReport,
    PackEvalResult,
    SegmentMetrics,
)

__all__ = [
    # Input
    "ScrapedData",
    # Packs
    "DomainPack",
    "DomainPackSelection",
    "PackCandidate",
    "PromotionSegment",
    # Script
    "Feature",
    "ScriptResult",
    "Section",
    "AutoFixResult",
    "RegenerateSectionResult",
    # Quality
    "FeatureEvidence",
    "GenerationMode",
    "GroundingHints",
    "GroundingSummary",
    "QualityGateResult",
    "QualityReport",
    "TemplateProfile",
    "TemplateSelection",
    # Improve
    "AutoImproveResult",
    "ImprovementPlan",
    "ImproveOptions",
    "ImproveStep",
    "SectionRecommendation",
    "StopReason",
    # Versions
    "AuditEntry",
    "AuditFile",
    "AutoPromotePolicy",
    "CalibrationRecord",
    "CalibrationResult",
    "JobStatus",
    "Outcome",
    "OutcomeCounts",
    "OutcomeLearning",
    "ProjectVersion",
    "PromotionResult",
    "QualitySnapshot",
    "SegmentCalibration",
    "VersionArtifacts",
    "VersionMeta",
    "VersionMetadataFile",
    "VersionMode",
    "VersionRecommendation",
    "VersionScore",
    # Jobs
    "JobOptions",
    "JobRecord",
    "RenderCompletion",
    # Evaluation
    "AuditCounts",
    "AutoPromoteEvalReport",
    "PackEvalReport",
    "PackEvalResult",
    "SegmentMetrics",
]
