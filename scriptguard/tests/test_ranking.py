"""
Tests for outcome learning and version ranking.
"""
from typing import Optional

import pytest

from scriptguard.models.packs import PromotionSegment
from scriptguard.models.versions import (
    JobStatus,
    Outcome,
    OutcomeLearning,
    ProjectVersion,
    QualitySnapshot,
    VersionArtifacts,
    VersionMeta,
    VersionMode,
)
from scriptguard.promotion.learning import (
    build_outcome_learning,
    laplace_rate,
    outcome_lift,
    segment_for_pack,
)
from scriptguard.promotion.ranking import VersionRanker, recommend_project_version, score_version


def make_version(
    version: int,
    score: float,
    passed: bool,
    blockers: int = 0,
    warnings: int = 0,
    status: JobStatus = JobStatus.COMPLETED,
    mode: VersionMode = VersionMode.GENERATE,
    video: bool = True,
    meta: Optional[VersionMeta] = None,
    pack: str = "b2b-saas",
    template: str = "yc-saas",
) -> ProjectVersion:
    return ProjectVersion(
        id=f"job{version}",
        root="opspilot-io",
        version=version,
        status=status,
        mode=mode,
        quality=QualitySnapshot(
            score=score,
            passed=passed,
            blockers=blockers,
            warnings=warnings,
            domain_pack=pack,
            template=template,
        ),
        artifacts=VersionArtifacts(video_path=f"/renders/v{version}.mp4" if video else None),
        meta=meta or VersionMeta(),
    )


class TestOutcomeLearning:
    """Test smoothing and lift bounds."""

    def test_rate_is_strictly_inside_unit_interval(self):
        for accepted, rejected in [(0, 0), (50, 0), (0, 50), (3, 4)]:
            assert 0 < laplace_rate(accepted, rejected) < 1

    def test_no_evidence_no_lift(self):
        assert outcome_lift(0, 0, 16) == 0.0

    def test_lift_sign_and_bound(self):
        assert outcome_lift(5, 0, 10) > 0
        assert outcome_lift(0, 5, 10) < 0
        assert abs(outcome_lift(100, 0, 10)) <= 5

    def test_lift_scales_with_evidence(self):
        assert outcome_lift(1, 0, 10) < outcome_lift(6, 0, 10)

    def test_segment_for_pack(self):
        assert segment_for_pack("fintech") == PromotionSegment.CORE_ICP
        assert segment_for_pack("gaming") == PromotionSegment.BROAD
        assert segment_for_pack("no-such-pack") == PromotionSegment.BROAD
        assert segment_for_pack(None) == PromotionSegment.BROAD

    def test_build_learning_buckets_outcomes(self):
        versions = [
            make_version(1, 80, True, meta=VersionMeta(outcome=Outcome.ACCEPTED)),
            make_version(2, 80, True, meta=VersionMeta(outcome=Outcome.REJECTED), pack="gaming"),
            make_version(3, 80, True),
        ]

        learning = build_outcome_learning(versions)

        assert learning.total == 2
        assert learning.by_pack["b2b-saas"].accepted == 1
        assert learning.by_pack["gaming"].rejected == 1
        assert learning.by_template["yc-saas"].evidence == 2
        assert learning.by_pair[OutcomeLearning.pair_key("b2b-saas", "yc-saas")].accepted == 1
        assert learning.by_segment["core-icp"].accepted == 1
        assert learning.by_segment["broad"].rejected == 1


class TestVersionRanker:
    """Test composite scoring and recommendation."""

    @pytest.fixture
    def weak(self):
        return make_version(1, 60, False, blockers=1, warnings=2)

    @pytest.fixture
    def strong(self):
        return make_version(2, 92, True, warnings=1, mode=VersionMode.RERENDER)

    def test_composite_is_sum_of_components(self, strong):
        result = score_version(strong, OutcomeLearning())

        assert result.composite == pytest.approx(sum(result.components.values()), abs=0.01)
        assert result.components["rerender"] == 1
        assert result.components["lift_pair"] == 0

    def test_components_for_weak_version(self, weak):
        result = score_version(weak, OutcomeLearning())

        assert result.components["passed"] == -20
        assert result.components["blockers"] == -8
        assert result.components["warnings"] == -4
        assert result.composite == pytest.approx(28.75)

    def test_strong_beats_weak(self, weak, strong):
        learning = OutcomeLearning()
        assert score_version(strong, learning).composite - score_version(weak, learning).composite >= 40

    def test_missing_video_and_incomplete_penalized(self):
        learning = OutcomeLearning()
        ready = score_version(make_version(1, 90, True), learning)
        no_video = score_version(make_version(1, 90, True, video=False), learning)
        running = score_version(make_version(1, 90, True, status=JobStatus.RUNNING), learning)

        assert ready.composite - no_video.composite == pytest.approx(25)
        assert ready.composite - running.composite == pytest.approx(30)

    def test_recommends_strong_with_confidence(self, weak, strong):
        recommendation = recommend_project_version([weak, strong], OutcomeLearning())

        assert recommendation.recommended.id == strong.id
        assert [s.job_id for s in recommendation.ranking] == [strong.id, weak.id]
        assert recommendation.confidence == pytest.approx(0.7)
        assert recommendation.learning == {"totalOutcomes": 0, "packs": 0, "templates": 0}

    def test_archived_versions_never_compete(self, weak, strong):
        strong.meta.archived = True

        recommendation = recommend_project_version([weak, strong], OutcomeLearning())

        assert recommendation.recommended.id == weak.id
        assert [s.job_id for s in recommendation.ranking] == [weak.id]

    def test_no_candidates(self, strong):
        strong.meta.archived = True

        recommendation = recommend_project_version([strong], OutcomeLearning())

        assert recommendation.recommended is None
        assert recommendation.reason == "No eligible versions"

    def test_pinned_wins_when_respected(self, weak, strong):
        weak.meta.pinned = True

        pinned = recommend_project_version([weak, strong], OutcomeLearning())
        ignored = recommend_project_version([weak, strong], OutcomeLearning(), respect_pins=False)

        assert pinned.recommended.id == weak.id
        assert pinned.confidence == 1.0
        assert ignored.recommended.id == strong.id

    def test_rejected_pin_lowers_confidence(self, weak, strong):
        weak.meta.pinned = True
        weak.meta.outcome = Outcome.REJECTED

        assert recommend_project_version([weak, strong], OutcomeLearning()).confidence == 0.6

    def test_ties_break_to_newest(self):
        older = make_version(1, 90, True)
        newer = make_version(2, 90, True)
        ranker = VersionRanker(recency_step=0)

        assert ranker.recommend([older, newer], OutcomeLearning()).recommended.id == newer.id

    def test_history_lifts_pack(self):
        learning = OutcomeLearning()
        for _ in range(6):
            learning.record(Outcome.ACCEPTED, "b2b-saas", "yc-saas")
            learning.record(Outcome.REJECTED, "gaming", "product-demo")

        liked = score_version(make_version(1, 80, True), learning)
        disliked = score_version(make_version(1, 80, True, pack="gaming", template="product-demo"), learning)

        assert liked.components["lift_pack"] > 0
        assert disliked.components["lift_pack"] < 0
        assert liked.composite > disliked.composite
