"""
Tests for the auto-improve loop, its section planner and section regeneration.
"""
import pytest

from scriptguard.models.improve import ImproveOptions, StopReason
from scriptguard.models.script import FEATURE_COUNT, Section
from scriptguard.pipeline.grounding import extract_grounding_hints
from scriptguard.pipeline.improve import (
    attribute_defect,
    auto_improve_script,
    build_improvement_plan,
)
from scriptguard.pipeline.quality import FEATURE_COUNT_BLOCKER, score_script
from scriptguard.pipeline.regenerate import parse_section, regenerate_section


class TestImprovementPlan:
    """Test defect attribution and section ranking."""

    def test_feature_count_blocker_hits_every_feature(self, good_script):
        sections = attribute_defect(FEATURE_COUNT_BLOCKER, good_script)
        assert sections == {Section.FEATURE1, Section.FEATURE2, Section.FEATURE3}

    def test_cta_warning_goes_to_cta(self, good_script):
        message = "CTA URL (x.com) does not match scraped domain (opspilot.io)."
        assert attribute_defect(message, good_script) == {Section.CTA}

    def test_feature_named_in_message(self, good_script):
        message = 'Feature "SLA Monitor" demo content is too thin.'
        assert Section.FEATURE2 in attribute_defect(message, good_script)

    def test_missing_feature_ranks_all_features(self, good_script, saas_scraped, saas_pack):
        """Ties keep section order."""
        script = good_script.clone()
        del script.features[2]
        report = score_script(script, saas_scraped, saas_pack)

        plan = build_improvement_plan(script, report)

        assert [rec.section for rec in plan.recommendations] == [
            Section.FEATURE1, Section.FEATURE2, Section.FEATURE3,
        ]
        assert all(rec.confidence == 1.0 for rec in plan.recommendations)
        assert plan.top.reasons == [FEATURE_COUNT_BLOCKER]

    def test_clean_script_has_empty_plan(self, good_script, saas_scraped, saas_pack):
        report = score_script(good_script, saas_scraped, saas_pack)
        plan = build_improvement_plan(good_script, report)
        assert all(rec.section != Section.CTA for rec in plan.recommendations)


class TestAutoImprove:
    """Test loop termination and monotonic acceptance."""

    def test_passing_script_stops_immediately(self, good_script, saas_scraped, saas_pack):
        result = auto_improve_script(good_script, saas_scraped, saas_pack)

        assert result.stop_reason == StopReason.ALREADY_MEETS_TARGET
        assert result.steps == []
        assert result.succeeded

    def test_zero_steps(self, broken_script, saas_scraped, saas_pack):
        result = auto_improve_script(broken_script, saas_scraped, saas_pack, options=ImproveOptions(max_steps=0))

        assert result.stop_reason == StopReason.MAX_STEPS
        assert result.steps == []
        assert result.script == broken_script

    @pytest.mark.parametrize("max_steps", [1, 3, 6])
    def test_respects_step_budget(self, broken_script, saas_scraped, saas_pack, max_steps):
        options = ImproveOptions(max_steps=max_steps, max_section_attempts=1)

        result = auto_improve_script(broken_script, saas_scraped, saas_pack, options=options)

        assert len(result.steps) <= max_steps
        assert all(count <= 1 for count in result.section_attempts.values())

    def test_score_never_drops(self, broken_script, saas_scraped, saas_pack):
        result = auto_improve_script(broken_script, saas_scraped, saas_pack)

        assert result.report.score >= result.initial_report.score
        assert len(result.report.blockers) <= len(result.initial_report.blockers)
        for step in result.steps:
            if step.accepted:
                assert step.score_after >= step.score_before
                assert step.blockers_after <= step.blockers_before

    def test_repairs_missing_feature(self, broken_script, saas_scraped, saas_pack):
        result = auto_improve_script(broken_script, saas_scraped, saas_pack)

        assert len(result.script.features) == FEATURE_COUNT
        assert FEATURE_COUNT_BLOCKER not in result.report.blockers

    def test_input_untouched(self, broken_script, saas_scraped, saas_pack):
        before = broken_script.clone()
        auto_improve_script(broken_script, saas_scraped, saas_pack)
        assert broken_script == before


class TestRegenerateSection:

    def test_parse_section(self):
        assert parse_section(" Feature2 ") == Section.FEATURE2
        with pytest.raises(ValueError, match="Unknown section"):
            parse_section("footer")

    def test_regenerate_missing_feature(self, broken_script, saas_scraped, saas_pack):
        hints = extract_grounding_hints(saas_scraped)

        result = regenerate_section(broken_script, "feature3", saas_scraped, saas_pack, hints)

        assert len(result.script.features) == FEATURE_COUNT
        assert len(broken_script.features) == 2
        assert result.actions[-1] == "Regenerated feature3 block and narration segment 6."

    def test_regenerate_cta(self, broken_script, saas_scraped, saas_pack):
        hints = extract_grounding_hints(saas_scraped)

        result = regenerate_section(broken_script, Section.CTA, saas_scraped, saas_pack, hints)

        assert result.script.cta_url == "opspilot.io"
        assert "opspilot.io" in result.script.narration_segments[-1]

    def test_regenerate_hook_is_short(self, broken_script, saas_scraped, saas_pack):
        hints = extract_grounding_hints(saas_scraped)

        result = regenerate_section(broken_script, Section.HOOK, saas_scraped, saas_pack, hints)

        assert len(result.script.hook_line1.split()) <= 3
        assert len(result.script.hook_keyword.split()) <= 4
