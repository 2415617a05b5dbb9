"""
Promotion engine - manual promotion, guarded auto-promotion, outcome capture
and threshold calibration over the file-backed store.
"""
import logging
import threading
from typing import Any, Mapping, Optional

from ..config import PromotionConfig, get_config
from ..models.jobs import JobRecord
from ..models.packs import PromotionSegment
from ..models.versions import (
    CalibrationRecord,
    CalibrationResult,
    JobStatus,
    Outcome,
    OutcomeCounts,
    OutcomeLearning,
    ProjectVersion,
    PromotionResult,
    SegmentCalibration,
    VersionMeta,
    VersionMetadataFile,
    VersionRecommendation,
)
from ..storage import ProjectStore, utc_now
from .learning import build_outcome_learning, laplace_rate, segment_for_pack
from .ranking import VersionRanker


logger = logging.getLogger(__name__)


# Refusal and decision reasons
VERSION_NOT_FOUND = "version-not-found"
NOT_COMPLETED = "not-completed"
MISSING_VIDEO = "missing-video"
NOT_RECOMMENDED_WINNER = "not-recommended-winner"
BELOW_THRESHOLD = "below-threshold"
PROMOTION_ERROR = "promotion-error"
PENDING = "pending"
ALREADY_EVALUATED = "already-evaluated"
PROMOTED = "promoted"


def calibrate_thresholds(
    by_segment: Mapping[str, OutcomeCounts],
    defaults: Mapping[PromotionSegment, float],
    current: Mapping[PromotionSegment, float],
    floor: float = 0.55,
    ceiling: float = 0.9,
    full_evidence: int = 20,
) -> dict[str, SegmentCalibration]:
    """
    Recommend a threshold per segment from its outcome history.

    A high acceptance rate pulls the threshold down, a low one pushes it up.
    The pull is weighted by evidence (full at full_evidence outcomes) and the
    result is clamped to [floor, ceiling].
    """
    out = {}
    for segment in PromotionSegment:
        counts = by_segment.get(segment.value) or OutcomeCounts()
        rate = laplace_rate(counts.accepted, counts.rejected)
        rate_threshold = 1 - 0.5 * rate
        weight = min(1.0, counts.evidence / full_evidence)
        default = defaults[segment]
        recommended = default * (1 - weight) + rate_threshold * weight
        out[segment.value] = SegmentCalibration(
            accepted=counts.accepted,
            rejected=counts.rejected,
            rate=round(rate, 4),
            evidence_weight=round(weight, 4),
            current=current.get(segment, default),
            recommended=round(max(floor, min(ceiling, recommended)), 4),
        )
    return out


class PromotionEngine:
    """
    Promotion decisions for every project root in a store.

    Read-modify-write cycles on a root's metadata, audit and job records run
    under that root's lock, so at most one version is pinned and each job is
    auto-evaluated at most once even with concurrent callers.
    """

    def __init__(
        self,
        store: ProjectStore,
        config: Optional[PromotionConfig] = None,
        ranker: Optional[VersionRanker] = None,
    ):
        self.store = store
        self.config = config or get_config().promotion
        self.ranker = ranker or VersionRanker()
        self._sweep_lock = threading.Lock()

    @property
    def default_thresholds(self) -> dict[PromotionSegment, float]:
        return {
            PromotionSegment.CORE_ICP: self.config.core_icp_threshold,
            PromotionSegment.BROAD: self.config.broad_threshold,
        }

    # Reads

    def versions(self, root: str) -> list[ProjectVersion]:
        return self.store.list_project_versions(root)

    def learning(self) -> OutcomeLearning:
        """Outcome history across every root in the store."""
        versions = [v for root in self.store.list_roots() for v in self.versions(root)]
        return build_outcome_learning(versions)

    def recommend(self, root: str, respect_pins: bool = True) -> VersionRecommendation:
        return self.ranker.recommend(self.versions(root), self.learning(), respect_pins=respect_pins)

    def metadata(self, root: str) -> VersionMetadataFile:
        metadata = self.store.load_metadata(root)
        if not self.store.metadata_path(root).exists():
            metadata.policy.min_confidence = self.config.default_min_confidence
            metadata.policy.segment_thresholds = self.default_thresholds
        return metadata

    # Manual operations

    def promote_version(self, root: str, job_id: str, source: str = "manual") -> PromotionResult:
        """
        Pin a completed, renderable version and unpin every other version of the root.

        Refusals come back as results with a reason, never as exceptions.
        """
        with self.store.locks(root):
            version = self._find_version(root, job_id)
            refusal = self._promotion_refusal(version)
            if refusal:
                logger.warning(f"Refusing to promote {root}/{job_id}: {refusal}")
                return PromotionResult(promoted=False, reason=refusal, job_id=job_id)

            metadata = self.metadata(root)
            self._pin(metadata, job_id)
            entry = metadata.entries[job_id]
            now = utc_now()
            if entry.outcome is None:
                entry.outcome = Outcome.ACCEPTED
                entry.outcome_at = now
            entry.promoted_at = now
            self.store.save_metadata(metadata)
            self.store.append_audit(root, "version-promoted", job_id, {"source": source, "version": version.version})

        logger.info(f"Promoted {root} v{version.version} ({source})")
        return PromotionResult(promoted=True, reason=PROMOTED, job_id=job_id, metadata=metadata)

    def record_outcome(self, root: str, job_id: str, outcome: Outcome) -> VersionMetadataFile:
        """
        Record whether the operator accepted or rejected a version.

        Raises:
            KeyError: if the version does not exist in the root
        """
        with self.store.locks(root):
            if self._find_version(root, job_id) is None:
                raise KeyError(f"Version {job_id} not found in {root}")
            metadata = self.metadata(root)
            entry = metadata.entries.setdefault(job_id, VersionMeta())
            entry.outcome = Outcome(outcome)
            entry.outcome_at = utc_now()
            self.store.save_metadata(metadata)
            self.store.append_audit(root, "outcome-recorded", job_id, {"outcome": entry.outcome.value})
        return metadata

    def update_version_meta(
        self,
        root: str,
        job_id: str,
        label: Optional[str] = None,
        archived: Optional[bool] = None,
        pinned: Optional[bool] = None,
    ) -> VersionMetadataFile:
        """
        Edit label, archive flag or pin of one version.

        Raises:
            KeyError: if the version does not exist in the root
            ValueError: if pinning a version that is not completed and renderable
        """
        with self.store.locks(root):
            version = self._find_version(root, job_id)
            if version is None:
                raise KeyError(f"Version {job_id} not found in {root}")
            if pinned:
                refusal = self._promotion_refusal(version)
                if refusal:
                    raise ValueError(f"Cannot pin {job_id}: {refusal}")

            metadata = self.metadata(root)
            entry = metadata.entries.setdefault(job_id, VersionMeta())
            changes: dict[str, Any] = {}
            if label is not None:
                entry.label = label.strip() or None
                changes["label"] = entry.label
            if archived is not None:
                entry.archived = archived
                changes["archived"] = archived
                if archived:
                    entry.pinned = False
            if pinned is not None:
                if pinned:
                    self._pin(metadata, job_id)
                else:
                    entry.pinned = False
                changes["pinned"] = pinned
            self.store.save_metadata(metadata)
            self.store.append_audit(root, "version-updated", job_id, changes)
        return metadata

    def update_policy(
        self,
        root: str,
        min_confidence: Optional[float] = None,
        segment_thresholds: Optional[Mapping[str, float]] = None,
    ) -> VersionMetadataFile:
        """
        Raises:
            ValueError: for thresholds outside [0, 1] or unknown segments
        """
        values = dict(segment_thresholds or {})
        for value in [min_confidence, *values.values()]:
            if value is not None and not 0 <= value <= 1:
                raise ValueError(f"Threshold {value} must be between 0 and 1")
        parsed = {PromotionSegment(segment): value for segment, value in values.items()}

        with self.store.locks(root):
            metadata = self.metadata(root)
            if min_confidence is not None:
                metadata.policy.min_confidence = min_confidence
            metadata.policy.segment_thresholds.update(parsed)
            self.store.save_metadata(metadata)
            self.store.append_audit(root, "policy-updated", details={
                "source": "manual",
                "minConfidence": metadata.policy.min_confidence,
                "segmentThresholds": {k.value: v for k, v in metadata.policy.segment_thresholds.items()},
            })
        return metadata

    # Auto-promotion

    def evaluate_auto_promote(self, job_id: str) -> Optional[PromotionResult]:
        """
        Decide once whether a finished rerender job should be promoted.

        Evaluation steps:
        1. Skip jobs that did not opt in, and report unfinished ones as pending
        2. Under the root lock, return early if the job was already evaluated
        3. Check completion, video, recommended winner and confidence threshold
        4. Promote, stamp the job and audit the decision

        Returns:
            PromotionResult, or None when the job is unknown or not opted in
        """
        job = self.store.load_job(job_id)
        if job is None:
            logger.warning(f"Auto-promote: job {job_id} not found")
            return None
        if not job.wants_auto_promote:
            return None
        if not job.is_finished:
            return PromotionResult(promoted=False, reason=PENDING, job_id=job_id)

        with self.store.locks(job.root):
            job = self.store.load_job(job_id) or job
            if job.auto_promote_evaluated_at is not None:
                return PromotionResult(promoted=False, reason=ALREADY_EVALUATED, job_id=job_id)

            result, segment = self._decide(job)
            if result.promoted:
                audit_type = "autopromote-promoted"
            elif result.reason == PROMOTION_ERROR:
                audit_type = "autopromote-failed"
            else:
                audit_type = "autopromote-skipped"

            job.auto_promote_evaluated_at = utc_now()
            job.auto_promote_result = result.reason
            self.store.save_job(job)
            self.store.append_audit(job.root, audit_type, job.id, {
                "reason": result.reason,
                "confidence": result.confidence,
                "threshold": result.threshold,
                "segment": segment.value if segment else None,
            })

        logger.info(f"Auto-promote {job.root}/{job_id}: {result.reason}")
        return result

    def _decide(self, job: JobRecord) -> tuple[PromotionResult, Optional[PromotionSegment]]:
        if job.status != JobStatus.COMPLETED:
            return PromotionResult(promoted=False, reason=NOT_COMPLETED, job_id=job.id), None

        versions = self.versions(job.root)
        version = next((v for v in versions if v.id == job.id), None)
        if version is None or not version.artifacts.renderable:
            return PromotionResult(promoted=False, reason=MISSING_VIDEO, job_id=job.id), None

        recommendation = self.ranker.recommend(versions, self.learning(), respect_pins=False)
        segment = job.options.auto_promote_segment or segment_for_pack(version.quality.domain_pack)
        threshold = self.metadata(job.root).policy.threshold_for(segment)
        confidence = recommendation.confidence

        if recommendation.recommended is None or recommendation.recommended.id != job.id:
            return PromotionResult(
                promoted=False,
                reason=NOT_RECOMMENDED_WINNER,
                job_id=job.id,
                confidence=confidence,
                threshold=threshold,
            ), segment
        if confidence < threshold:
            return PromotionResult(
                promoted=False,
                reason=BELOW_THRESHOLD,
                job_id=job.id,
                confidence=confidence,
                threshold=threshold,
            ), segment

        try:
            result = self.promote_version(job.root, job.id, source="auto-promote")
        except Exception as e:
            logger.error(f"Auto-promote of {job.root}/{job.id} failed: {e}")
            result = PromotionResult(promoted=False, reason=PROMOTION_ERROR, job_id=job.id)
        if not result.promoted:
            result = PromotionResult(promoted=False, reason=PROMOTION_ERROR, job_id=job.id)
        result.confidence = confidence
        result.threshold = threshold
        return result, segment

    def sweep(self) -> list[PromotionResult]:
        """Evaluate every finished, opted-in, not yet evaluated job. Sweeps never overlap."""
        results = []
        with self._sweep_lock:
            for job in self.store.iter_jobs():
                if job.wants_auto_promote and job.is_finished and job.auto_promote_evaluated_at is None:
                    result = self.evaluate_auto_promote(job.id)
                    if result is not None:
                        results.append(result)
        if results:
            logger.info(f"Sweep evaluated {len(results)} job(s)")
        return results

    # Calibration

    def calibrate(self, root: str, apply: bool = False) -> CalibrationResult:
        """
        Recommend segment thresholds from global outcome history; persist them when apply is set.
        """
        learning = self.learning()
        with self.store.locks(root):
            metadata = self.metadata(root)
            segments = calibrate_thresholds(
                learning.by_segment,
                defaults=self.default_thresholds,
                current=metadata.policy.segment_thresholds,
                floor=self.config.calibration_floor,
                ceiling=self.config.calibration_ceiling,
                full_evidence=self.config.calibration_full_evidence,
            )
            if apply:
                thresholds = {PromotionSegment(k): v.recommended for k, v in segments.items()}
                metadata.policy.segment_thresholds.update(thresholds)
                metadata.policy.last_calibration = CalibrationRecord(
                    at=utc_now(),
                    thresholds={k: v.recommended for k, v in segments.items()},
                    evidence={k: v.accepted + v.rejected for k, v in segments.items()},
                )
                self.store.save_metadata(metadata)
                self.store.append_audit(root, "policy-updated", details={
                    "source": "calibration",
                    "segmentThresholds": {k: v.recommended for k, v in segments.items()},
                })
                logger.info(f"Applied calibrated thresholds for {root}")

        return CalibrationResult(
            root_output_name=root,
            applied=apply,
            segments=segments,
            policy=metadata.policy,
        )

    # Helpers

    def _find_version(self, root: str, job_id: str) -> Optional[ProjectVersion]:
        return next((v for v in self.versions(root) if v.id == job_id), None)

    @staticmethod
    def _promotion_refusal(version: Optional[ProjectVersion]) -> Optional[str]:
        if version is None:
            return VERSION_NOT_FOUND
        if version.status != JobStatus.COMPLETED:
            return NOT_COMPLETED
        if not version.artifacts.renderable:
            return MISSING_VIDEO
        return None

    @staticmethod
    def _pin(metadata: VersionMetadataFile, job_id: str) -> None:
        for other_id, entry in metadata.entries.items():
            if other_id != job_id:
                entry.pinned = False
        entry = metadata.entries.setdefault(job_id, VersionMeta())
        entry.pinned = True
        entry.archived = False
