"""
Tests for offline pack and auto-promotion evaluation.
"""
import pytest

from scriptguard.evaluation import MIN_RECOMMENDED_OUTCOMES, evaluate_auto_promote, evaluate_packs
from scriptguard.fixtures import PACK_FIXTURES
from scriptguard.models.versions import Outcome, VersionMode
from scriptguard.promotion import PromotionEngine


ROOT = "acme-io"


class TestEvaluatePacks:
    """Test classification accuracy over the labelled fixtures."""

    def test_fixture_set(self):
        assert len(PACK_FIXTURES) == 14
        assert len({f.id for f in PACK_FIXTURES}) == 14

    def test_full_run_summary(self):
        report = evaluate_packs()

        assert report.total == 14
        assert report.passed + report.failed == report.total
        assert report.accuracy == round(report.passed / report.total * 100, 1)
        assert len(report.failures) == report.failed
        assert 0 <= report.median_confidence <= 1

    def test_filter(self):
        report = evaluate_packs(name_filter="gaming")

        assert [r.id for r in report.results] == ["gaming-meta-patch"]
        assert report.results[0].passed
        assert report.results[0].selected_pack == "gaming"

    def test_filter_without_match_raises(self):
        with pytest.raises(ValueError, match="No fixtures matched"):
            evaluate_packs(name_filter="no-such-fixture")

    def test_wrong_label_fails(self):
        fixture = PACK_FIXTURES[0].model_copy(update={"expected_pack": "gaming"})

        report = evaluate_packs([fixture])

        assert report.failed == 1
        assert report.accuracy == 0.0
        assert report.failures[0].selected_pack == "b2b-saas"


class TestEvaluateAutoPromote:
    """Test precision and recall over audit logs and outcomes."""

    @pytest.fixture
    def promoted(self, store, seed_version):
        seed_version(ROOT, 1, score=60, passed=False, blockers=1, warnings=2)
        job = seed_version(ROOT, 2, score=92, warnings=1, mode=VersionMode.RERENDER, auto_promote=True)
        engine = PromotionEngine(store)
        engine.update_policy(ROOT, segment_thresholds={"broad": 0.6})
        assert engine.evaluate_auto_promote(job.id).promoted
        return job

    def test_empty_store(self, store):
        report = evaluate_auto_promote(store)

        assert report.total_roots == 0
        assert report.overall.precision is None
        assert report.overall.recall is None
        assert not report.has_sufficient_outcomes
        assert report.min_recommended_outcomes == MIN_RECOMMENDED_OUTCOMES

    def test_promoted_and_accepted(self, store, promoted):
        report = evaluate_auto_promote(store)

        assert report.audit.attempts == 1
        assert report.audit.promoted == 1
        assert report.total_outcomes == 1
        assert report.overall.precision == 1.0
        assert report.overall.recall == 1.0
        assert report.segments["broad"].promoted_accepted == 1
        assert report.segments["core-icp"].precision is None

    def test_rejected_after_promotion(self, store, promoted):
        PromotionEngine(store).record_outcome(ROOT, promoted.id, Outcome.REJECTED)

        report = evaluate_auto_promote(store)

        assert report.overall.precision == 0.0
        assert report.overall.recall is None
        assert report.overall.promoted_rejected == 1

    def test_skips_count_as_attempts(self, store, seed_version):
        seed_version(ROOT, 1, score=60, passed=False, blockers=1, warnings=2)
        job = seed_version(ROOT, 2, score=92, warnings=1, mode=VersionMode.RERENDER, auto_promote=True)
        engine = PromotionEngine(store)
        engine.evaluate_auto_promote(job.id)
        engine.record_outcome(ROOT, job.id, Outcome.ACCEPTED)

        report = evaluate_auto_promote(store)

        assert report.audit.attempts == 1
        assert report.audit.skipped == 1
        assert report.overall.eligible_accepted == 1
        assert report.overall.recall == 0.0
        assert report.overall.precision is None
