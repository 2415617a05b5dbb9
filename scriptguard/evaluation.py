"""
Offline evaluation - pack classification over labelled fixtures and
auto-promotion precision/recall over stored audit logs and outcomes.
"""
import logging
from typing import Iterable, Optional

import numpy as np

from .fixtures import PACK_FIXTURES, PackFixture
from .models.evaluation import (
    AuditCounts,
    AutoPromoteEvalReport,
    PackEvalReport,
    PackEvalResult,
    SegmentMetrics,
)
from .models.jobs import JobRecord
from .models.packs import PromotionSegment
from .models.versions import Outcome, VersionMode
from .pipeline.classifier import DomainClassifier
from .promotion.learning import segment_for_pack
from .storage import ProjectStore, utc_now


logger = logging.getLogger(__name__)


MIN_RECOMMENDED_OUTCOMES = 20


def evaluate_packs(
    fixtures: Iterable[PackFixture] = PACK_FIXTURES,
    classifier: Optional[DomainClassifier] = None,
    name_filter: Optional[str] = None,
) -> PackEvalReport:
    """
    Classify every fixture and compare against its label.

    A fixture passes when the selected pack matches and the confidence reaches
    the fixture's minimum.

    Raises:
        ValueError: if no fixture matches name_filter
    """
    classifier = classifier or DomainClassifier()
    selected_fixtures = [f for f in fixtures if not name_filter or name_filter in f.id]
    if not selected_fixtures:
        raise ValueError(f"No fixtures matched filter {name_filter!r}")

    results = []
    for fixture in selected_fixtures:
        selection = classifier.select(fixture.scraped, "auto")
        confidence_passed = selection.confidence >= fixture.min_confidence
        results.append(PackEvalResult(
            id=fixture.id,
            expected_pack=fixture.expected_pack,
            selected_pack=selection.pack.id,
            passed=selection.pack.id == fixture.expected_pack and confidence_passed,
            expected_min_confidence=fixture.min_confidence,
            confidence=selection.confidence,
            confidence_passed=confidence_passed,
            reason=selection.reason,
            top_candidates=selection.top_candidates,
        ))

    for result in results:
        marker = "PASS" if result.passed else "FAIL"
        logger.info(
            f"{marker} {result.id}: expected={result.expected_pack} selected={result.selected_pack} "
            f"confidence={result.confidence:.2f} min={result.expected_min_confidence:.2f}"
        )

    confidences = np.array([r.confidence for r in results])
    passed = sum(1 for r in results if r.passed)
    return PackEvalReport(
        generated_at=utc_now(),
        total=len(results),
        passed=passed,
        failed=len(results) - passed,
        accuracy=round(passed / len(results) * 100, 1),
        mean_confidence=round(float(np.mean(confidences)), 3),
        median_confidence=round(float(np.median(confidences)), 3),
        results=results,
    )


def _ratio(numerator: int, denominator: int) -> Optional[float]:
    if denominator <= 0:
        return None
    return round(numerator / denominator, 3)


def _finalize(metrics: SegmentMetrics) -> SegmentMetrics:
    metrics.precision = _ratio(metrics.promoted_accepted, metrics.promoted_accepted + metrics.promoted_rejected)
    metrics.recall = _ratio(metrics.promoted_accepted, metrics.eligible_accepted)
    return metrics


def _job_segment(store: ProjectStore, job: Optional[JobRecord]) -> PromotionSegment:
    if job is None:
        return PromotionSegment.BROAD
    if job.options.auto_promote_segment:
        return job.options.auto_promote_segment
    quality = store.load_quality(job.root, job.version) or {}
    return segment_for_pack(quality.get("domainPack"))


def evaluate_auto_promote(store: ProjectStore) -> AutoPromoteEvalReport:
    """
    Precision and recall of auto-promotion, overall and per segment.

    Precision is accepted over accepted+rejected among promoted jobs; recall is
    promoted-and-accepted over accepted opted-in rerender jobs.
    """
    jobs_by_id = {job.id: job for job in store.iter_jobs()}
    roots = store.list_roots()
    audit_counts = AuditCounts()
    overall = SegmentMetrics()
    segments = {segment.value: SegmentMetrics() for segment in PromotionSegment}
    total_outcomes = 0

    for root in roots:
        if not store.metadata_path(root).exists():
            continue
        metadata = store.load_metadata(root)
        outcomes = {job_id: meta.outcome for job_id, meta in metadata.entries.items() if meta.outcome}
        total_outcomes += len(outcomes)

        promoted_ids = set()
        for entry in store.load_audit(root).entries:
            if entry.type == "autopromote-promoted":
                audit_counts.attempts += 1
                audit_counts.promoted += 1
                if entry.job_id:
                    promoted_ids.add(entry.job_id)
            elif entry.type == "autopromote-skipped":
                audit_counts.attempts += 1
                audit_counts.skipped += 1
            elif entry.type == "autopromote-failed":
                audit_counts.attempts += 1
                audit_counts.failed += 1

        for job_id, outcome in outcomes.items():
            job = jobs_by_id.get(job_id)
            if job is None or not job.wants_auto_promote or job.mode != VersionMode.RERENDER:
                continue
            if outcome != Outcome.ACCEPTED:
                continue
            segment = _job_segment(store, job).value
            overall.eligible_accepted += 1
            segments[segment].eligible_accepted += 1

        for job_id in promoted_ids:
            segment = _job_segment(store, jobs_by_id.get(job_id)).value
            outcome = outcomes.get(job_id)
            for metrics in (overall, segments[segment]):
                metrics.promoted_total += 1
                if outcome == Outcome.ACCEPTED:
                    metrics.promoted_accepted += 1
                elif outcome == Outcome.REJECTED:
                    metrics.promoted_rejected += 1
                else:
                    metrics.promoted_unknown_outcome += 1

    report = AutoPromoteEvalReport(
        generated_at=utc_now(),
        total_roots=len(roots),
        total_outcomes=total_outcomes,
        min_recommended_outcomes=MIN_RECOMMENDED_OUTCOMES,
        has_sufficient_outcomes=total_outcomes >= MIN_RECOMMENDED_OUTCOMES,
        audit=audit_counts,
        overall=_finalize(overall),
        segments={key: _finalize(metrics) for key, metrics in segments.items()},
    )
    if not report.has_sufficient_outcomes:
        logger.warning(
            f"Insufficient outcomes: found {total_outcomes}, need at least "
            f"{MIN_RECOMMENDED_OUTCOMES} for reliable threshold validation"
        )
    return report
