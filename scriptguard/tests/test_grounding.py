"""
Tests for grounding hint extraction and integration canonicalization.
"""
from scriptguard.models.quality import GroundingHints
from scriptguard.models.scraped import ScrapedData
from scriptguard.pipeline.grounding import (
    build_feature_evidence_plan,
    canonicalize_feature_name,
    canonicalize_integration,
    canonicalize_integrations,
    extract_grounding_hints,
    has_grounding_signal,
    summarize_grounding_usage,
)


class TestExtractGroundingHints:
    """Test hints mined from a scraped snapshot."""

    def test_feature_names_from_features_and_headings(self, saas_scraped):
        hints = extract_grounding_hints(saas_scraped)

        assert "Route tickets by priority" in hints.feature_name_candidates
        assert "Monitor SLA breaches" in hints.feature_name_candidates

    def test_terms_skip_stop_words_and_brand(self, saas_scraped):
        hints = extract_grounding_hints(saas_scraped)

        assert "workflow" in hints.terms
        assert "the" not in hints.terms
        assert "opspilot" not in hints.terms

    def test_grounding_signal(self, saas_scraped):
        hints = extract_grounding_hints(saas_scraped)

        assert has_grounding_signal("Keep the workflow moving", hints)
        assert not has_grounding_signal("   ", hints)

    def test_evidence_plan_has_distinct_names(self, saas_scraped):
        plan = build_feature_evidence_plan(extract_grounding_hints(saas_scraped), 3)

        assert len(plan) == 3
        assert len({item.feature_name for item in plan}) == 3

    def test_usage_summary(self, good_script, saas_scraped):
        summary = summarize_grounding_usage(good_script, extract_grounding_hints(saas_scraped))

        assert 0 < summary.coverage <= 1
        assert summary.matched_terms > 0


class TestCanonicalizeIntegrations:

    def test_aliases_resolve(self):
        assert canonicalize_integration("gh") == "GitHub"
        assert canonicalize_integration("SFDC") == "Salesforce"
        assert canonicalize_integration("Some Custom Tool") is None

    def test_dedupes_after_canonicalizing(self):
        result = canonicalize_integrations(["gh", "GitHub", "  sfdc "], GroundingHints())
        assert result == ["GitHub", "Salesforce"]

    def test_unknown_names_kept(self):
        result = canonicalize_integrations(["Acme  Sync", "Slack"], GroundingHints())
        assert result == ["Acme Sync", "Slack"]

    def test_pads_from_grounded_candidates_first(self):
        hints = GroundingHints(integration_candidates=("HubSpot", "Zapier"))
        result = canonicalize_integrations(["Zapier"], hints, fallback=("Slack",))
        assert result == ["Zapier", "HubSpot"]

    def test_pads_from_fallback(self):
        result = canonicalize_integrations([], GroundingHints(), fallback=("Slack", "Notion", "Zoom"))
        assert result == ["Slack", "Notion"]

    def test_limit(self):
        names = [f"Tool {i}" for i in range(20)]
        assert len(canonicalize_integrations(names, GroundingHints(), limit=12)) == 12


class TestCanonicalizeFeatureName:

    def test_generic_name_uses_candidate(self):
        hints = GroundingHints(feature_name_candidates=("Route Tickets", "SLA Monitor"))
        assert canonicalize_feature_name("Feature 2", hints, 1) == "SLA Monitor"

    def test_matching_candidate_spelling_wins(self):
        hints = GroundingHints(feature_name_candidates=("SLA Monitor",))
        assert canonicalize_feature_name("sla-monitor", hints, 0) == "SLA Monitor"

    def test_long_names_trimmed(self):
        assert canonicalize_feature_name("One two three four five", GroundingHints(), 0) == "One two three four"


class TestGroundingNumbers:

    def test_distinct_number_tokens_are_kept(self):
        scraped = ScrapedData(
            domain="opspilot.io",
            body_text="Plans from $10, save 10% in 10 days. 2.5x faster for 25 seats, 10 again.",
        )

        hints = extract_grounding_hints(scraped)

        assert hints.numbers == ("$10", "10%", "10", "2.5", "25")
