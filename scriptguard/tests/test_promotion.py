"""
Tests for the promotion engine.
Promotion safety, guarded auto-promotion, outcomes, policy and calibration.
"""
import threading

import pytest

from scriptguard.models.packs import PromotionSegment
from scriptguard.models.versions import JobStatus, Outcome, OutcomeCounts, VersionMode
from scriptguard.promotion.engine import (
    ALREADY_EVALUATED,
    BELOW_THRESHOLD,
    MISSING_VIDEO,
    NOT_COMPLETED,
    NOT_RECOMMENDED_WINNER,
    PENDING,
    PROMOTED,
    VERSION_NOT_FOUND,
    PromotionEngine,
    calibrate_thresholds,
)


ROOT = "acme-io"


def autopromote_entries(store, root=ROOT):
    return [e for e in store.load_audit(root).entries if e.type.startswith("autopromote-")]


class TestManualPromotion:
    """Test refusals and the single-pin rule."""

    @pytest.fixture
    def engine(self, store):
        return PromotionEngine(store)

    def test_promote_completed_version(self, engine, store, seed_version):
        job = seed_version(ROOT, 1)

        result = engine.promote_version(ROOT, job.id)

        assert result.promoted
        assert result.reason == PROMOTED
        meta = store.load_metadata(ROOT).entries[job.id]
        assert meta.pinned
        assert meta.outcome == Outcome.ACCEPTED
        assert meta.promoted_at is not None
        assert store.load_audit(ROOT).entries[-1].type == "version-promoted"

    def test_refuses_unknown_version(self, engine, seed_version):
        seed_version(ROOT, 1)
        result = engine.promote_version(ROOT, "nope")
        assert not result.promoted
        assert result.reason == VERSION_NOT_FOUND

    def test_refuses_incomplete_version(self, engine, store, seed_version):
        job = seed_version(ROOT, 1, status=JobStatus.RUNNING)

        result = engine.promote_version(ROOT, job.id)

        assert result.reason == NOT_COMPLETED
        assert not store.metadata_path(ROOT).exists()

    def test_refuses_version_without_video(self, engine, seed_version):
        job = seed_version(ROOT, 1, video=False)
        assert engine.promote_version(ROOT, job.id).reason == MISSING_VIDEO

    def test_promotion_moves_pin(self, engine, store, seed_version):
        first = seed_version(ROOT, 1)
        second = seed_version(ROOT, 2)

        engine.promote_version(ROOT, first.id)
        engine.promote_version(ROOT, second.id)

        entries = store.load_metadata(ROOT).entries
        assert not entries[first.id].pinned
        assert entries[second.id].pinned

    def test_existing_outcome_is_kept(self, engine, store, seed_version):
        job = seed_version(ROOT, 1)
        engine.record_outcome(ROOT, job.id, Outcome.REJECTED)

        engine.promote_version(ROOT, job.id)

        assert store.load_metadata(ROOT).entries[job.id].outcome == Outcome.REJECTED

    def test_concurrent_promotions_leave_one_pin(self, engine, store, seed_version):
        jobs = [seed_version(ROOT, version) for version in (1, 2, 3)]

        def promote(job_id):
            for _ in range(5):
                engine.promote_version(ROOT, job_id)

        threads = [threading.Thread(target=promote, args=(job.id,)) for job in jobs]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        pinned = [job_id for job_id, meta in store.load_metadata(ROOT).entries.items() if meta.pinned]
        assert len(pinned) == 1


class TestVersionMetadata:
    """Test outcome capture, labels, archive and pin edits."""

    @pytest.fixture
    def engine(self, store):
        return PromotionEngine(store)

    def test_record_outcome(self, engine, store, seed_version):
        job = seed_version(ROOT, 1)

        engine.record_outcome(ROOT, job.id, Outcome.ACCEPTED)

        meta = store.load_metadata(ROOT).entries[job.id]
        assert meta.outcome == Outcome.ACCEPTED
        assert meta.outcome_at is not None
        assert store.load_audit(ROOT).entries[-1].details == {"outcome": "accepted"}

    def test_record_outcome_unknown_version(self, engine, seed_version):
        seed_version(ROOT, 1)
        with pytest.raises(KeyError):
            engine.record_outcome(ROOT, "nope", Outcome.ACCEPTED)

    def test_archive_unpins(self, engine, store, seed_version):
        job = seed_version(ROOT, 1)
        engine.update_version_meta(ROOT, job.id, pinned=True)

        engine.update_version_meta(ROOT, job.id, label="  launch cut ", archived=True)

        meta = store.load_metadata(ROOT).entries[job.id]
        assert meta.archived
        assert not meta.pinned
        assert meta.label == "launch cut"

    def test_cannot_pin_unrenderable(self, engine, seed_version):
        job = seed_version(ROOT, 1, video=False)
        with pytest.raises(ValueError, match=MISSING_VIDEO):
            engine.update_version_meta(ROOT, job.id, pinned=True)

    def test_pin_overrides_recommendation(self, engine, seed_version):
        weak = seed_version(ROOT, 1, score=60, passed=False, blockers=1)
        seed_version(ROOT, 2, score=95)

        engine.update_version_meta(ROOT, weak.id, pinned=True)

        assert engine.recommend(ROOT).recommended.id == weak.id
        assert engine.recommend(ROOT, respect_pins=False).recommended.id != weak.id


class TestPolicy:

    def test_defaults_seeded_from_config(self, store, monkeypatch):
        from scriptguard.config import reset_config

        monkeypatch.setenv("SCRIPTGUARD_MIN_CONFIDENCE", "0.5")
        reset_config()

        policy = PromotionEngine(store).metadata(ROOT).policy

        assert policy.min_confidence == 0.5
        assert policy.segment_thresholds[PromotionSegment.BROAD] == 0.75

    def test_update_policy(self, store):
        engine = PromotionEngine(store)

        engine.update_policy(ROOT, min_confidence=0.7, segment_thresholds={"broad": 0.6})

        policy = store.load_metadata(ROOT).policy
        assert policy.min_confidence == 0.7
        assert policy.threshold_for(PromotionSegment.BROAD) == 0.6
        assert policy.threshold_for(PromotionSegment.CORE_ICP) == 0.8
        assert store.load_audit(ROOT).entries[-1].details["source"] == "manual"

    @pytest.mark.parametrize("thresholds", [{"broad": 1.5}, {"core-icp": -0.1}])
    def test_update_policy_rejects_out_of_range(self, store, thresholds):
        with pytest.raises(ValueError):
            PromotionEngine(store).update_policy(ROOT, segment_thresholds=thresholds)

    def test_update_policy_rejects_unknown_segment(self, store):
        with pytest.raises(ValueError):
            PromotionEngine(store).update_policy(ROOT, segment_thresholds={"enterprise": 0.5})

    def test_core_icp_never_below_min_confidence(self, store):
        engine = PromotionEngine(store)
        engine.update_policy(ROOT, min_confidence=0.85, segment_thresholds={"core-icp": 0.6})
        assert store.load_metadata(ROOT).policy.threshold_for(PromotionSegment.CORE_ICP) == 0.85


class TestAutoPromote:
    """Test the guarded, at-most-once auto-promotion of rerender jobs."""

    @pytest.fixture
    def engine(self, store):
        return PromotionEngine(store)

    @pytest.fixture
    def rerender(self, seed_version):
        """A weak generate version and a strong opted-in rerender. Winner confidence is 0.7."""
        seed_version(ROOT, 1, score=60, passed=False, blockers=1, warnings=2)
        return seed_version(ROOT, 2, score=92, warnings=1, mode=VersionMode.RERENDER, auto_promote=True)

    def test_below_threshold_is_skipped(self, engine, store, rerender):
        result = engine.evaluate_auto_promote(rerender.id)

        assert not result.promoted
        assert result.reason == BELOW_THRESHOLD
        assert result.confidence == pytest.approx(0.7)
        assert result.threshold == 0.75
        assert not store.metadata_path(ROOT).exists()

        job = store.load_job(rerender.id)
        assert job.auto_promote_evaluated_at is not None
        assert job.auto_promote_result == BELOW_THRESHOLD
        entries = autopromote_entries(store)
        assert [e.type for e in entries] == ["autopromote-skipped"]
        assert entries[0].details["segment"] == "broad"

    def test_promoted_after_lowering_threshold(self, engine, store, rerender):
        engine.update_policy(ROOT, segment_thresholds={"broad": 0.6})

        result = engine.evaluate_auto_promote(rerender.id)

        assert result.promoted
        assert result.reason == PROMOTED
        meta = store.load_metadata(ROOT).entries[rerender.id]
        assert meta.pinned
        assert meta.outcome == Outcome.ACCEPTED
        assert [e.type for e in autopromote_entries(store)] == ["autopromote-promoted"]

    def test_evaluated_at_most_once(self, engine, store, rerender):
        engine.update_policy(ROOT, segment_thresholds={"broad": 0.6})

        engine.evaluate_auto_promote(rerender.id)
        again = engine.evaluate_auto_promote(rerender.id)

        assert again.reason == ALREADY_EVALUATED
        assert len(autopromote_entries(store)) == 1

    def test_concurrent_evaluations_audit_once(self, engine, store, rerender):
        engine.update_policy(ROOT, segment_thresholds={"broad": 0.6})
        threads = [threading.Thread(target=engine.evaluate_auto_promote, args=(rerender.id,)) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(autopromote_entries(store)) == 1

    def test_job_segment_option_wins(self, engine, seed_version):
        seed_version(ROOT, 1, score=60, passed=False, blockers=1, warnings=2)
        job = seed_version(
            ROOT, 2, score=92, warnings=1, mode=VersionMode.RERENDER,
            auto_promote=True, segment=PromotionSegment.CORE_ICP,
        )
        engine.update_policy(ROOT, segment_thresholds={"broad": 0.6})

        result = engine.evaluate_auto_promote(job.id)

        assert result.reason == BELOW_THRESHOLD
        assert result.threshold == 0.8

    def test_pending_job_is_not_stamped(self, engine, store, seed_version):
        job = seed_version(ROOT, 1, status=JobStatus.RUNNING, mode=VersionMode.RERENDER, auto_promote=True)

        result = engine.evaluate_auto_promote(job.id)

        assert result.reason == PENDING
        assert store.load_job(job.id).auto_promote_evaluated_at is None
        assert autopromote_entries(store) == []

    def test_failed_job_is_not_completed(self, engine, seed_version):
        job = seed_version(ROOT, 1, status=JobStatus.FAILED, mode=VersionMode.RERENDER, auto_promote=True)
        assert engine.evaluate_auto_promote(job.id).reason == NOT_COMPLETED

    def test_missing_video(self, engine, seed_version):
        job = seed_version(ROOT, 1, video=False, mode=VersionMode.RERENDER, auto_promote=True)
        assert engine.evaluate_auto_promote(job.id).reason == MISSING_VIDEO

    def test_not_the_winner(self, engine, seed_version):
        seed_version(ROOT, 1, score=98)
        job = seed_version(ROOT, 2, score=60, passed=False, mode=VersionMode.RERENDER, auto_promote=True)

        assert engine.evaluate_auto_promote(job.id).reason == NOT_RECOMMENDED_WINNER

    def test_not_opted_in_returns_none(self, engine, seed_version):
        job = seed_version(ROOT, 1, mode=VersionMode.RERENDER)
        assert engine.evaluate_auto_promote(job.id) is None
        assert engine.evaluate_auto_promote("missing") is None

    def test_sweep_evaluates_each_job_once(self, engine, store, rerender):
        first = engine.sweep()
        second = engine.sweep()

        assert [r.reason for r in first] == [BELOW_THRESHOLD]
        assert second == []


class TestCalibration:
    """Test threshold calibration from outcome history."""

    DEFAULTS = {PromotionSegment.CORE_ICP: 0.8, PromotionSegment.BROAD: 0.75}

    def test_no_evidence_keeps_defaults(self):
        result = calibrate_thresholds({}, self.DEFAULTS, self.DEFAULTS)

        assert result["core-icp"].recommended == 0.8
        assert result["broad"].recommended == 0.75
        assert result["broad"].evidence_weight == 0

    def test_high_acceptance_lowers_threshold(self):
        good = calibrate_thresholds({"core-icp": OutcomeCounts(accepted=10, rejected=2)}, self.DEFAULTS, {})
        bad = calibrate_thresholds({"core-icp": OutcomeCounts(accepted=2, rejected=10)}, self.DEFAULTS, {})

        assert good["core-icp"].recommended < 0.8 < bad["core-icp"].recommended
        assert good["core-icp"].recommended == pytest.approx(0.6843, abs=1e-3)
        assert bad["core-icp"].recommended == pytest.approx(0.8557, abs=1e-3)

    def test_clamped_to_floor_and_ceiling(self):
        result = calibrate_thresholds(
            {"broad": OutcomeCounts(accepted=100), "core-icp": OutcomeCounts(rejected=100)},
            self.DEFAULTS,
            {},
        )
        assert result["broad"].recommended == 0.55
        assert result["core-icp"].recommended == 0.9

    def test_engine_apply_persists(self, store, seed_version):
        engine = PromotionEngine(store)
        for version in range(1, 13):
            seed_version("other-io", version)
            engine.record_outcome(
                "other-io", f"other-io-job{version}", Outcome.ACCEPTED if version <= 10 else Outcome.REJECTED
            )

        preview = engine.calibrate(ROOT)
        assert not preview.applied
        assert not store.metadata_path(ROOT).exists()

        applied = engine.calibrate(ROOT, apply=True)

        broad = applied.segments["broad"]
        assert broad.accepted == 10 and broad.rejected == 2
        policy = store.load_metadata(ROOT).policy
        assert policy.segment_thresholds[PromotionSegment.BROAD] == broad.recommended
        assert policy.last_calibration.evidence["broad"] == 12
        assert store.load_audit(ROOT).entries[-1].details["source"] == "calibration"
