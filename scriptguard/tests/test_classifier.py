"""
Tests for domain pack classification.
"""
import pytest

from scriptguard.fixtures import make_scraped
from scriptguard.pipeline.classifier import DomainClassifier, infer_confidence, select_domain_pack


class TestDomainClassifier:
    """Test pack selection on auto and explicit requests."""

    @pytest.fixture
    def opgg_scraped(self):
        return make_scraped(
            domain="op.gg",
            title="OP.GG - League of Legends tier list, champion builds and ranked stats",
            description="Win rate, pick rate and champion guides for every patch.",
            headings=["Patch 14.4 meta tier list", "Best champion builds for ranked"],
            features=[],
            body_text="",
            links=[],
        )

    def test_gaming_site_selects_gaming(self, opgg_scraped):
        selection = select_domain_pack(opgg_scraped)

        assert selection.pack.id == "gaming"
        assert selection.confidence >= 0.5
        assert selection.top_candidates[0].id == "gaming"
        assert selection.scores["general"] == 0.0

    def test_negative_keywords_subtract(self, opgg_scraped):
        selection = select_domain_pack(opgg_scraped)
        assert selection.scores["devtools"] < 0

    def test_selection_is_deterministic(self, opgg_scraped, saas_scraped):
        classifier = DomainClassifier()
        for scraped in (opgg_scraped, saas_scraped):
            first = classifier.select(scraped)
            second = classifier.select(scraped)
            assert first == second

    def test_saas_site_selects_b2b(self, saas_scraped):
        assert select_domain_pack(saas_scraped).pack.id == "b2b-saas"

    def test_weak_signal_falls_back_to_general(self):
        scraped = make_scraped(
            domain="hello-world.xyz",
            title="Hello",
            description="A small site.",
            headings=["Welcome"],
            features=[],
            body_text="We make a product.",
            links=[],
        )

        selection = select_domain_pack(scraped)

        assert selection.pack.id == "general"
        assert "general fallback" in selection.reason

    def test_explicit_pack_overrides(self, opgg_scraped):
        selection = select_domain_pack(opgg_scraped, "fintech")

        assert selection.pack.id == "fintech"
        assert selection.confidence == 1.0
        assert selection.reason == "Selected by explicit pack=fintech"

    def test_unknown_pack_raises(self, opgg_scraped):
        with pytest.raises(ValueError, match="Unknown domain pack"):
            select_domain_pack(opgg_scraped, "crypto-casino")


class TestInferConfidence:

    def test_zero_score(self):
        assert infer_confidence(0, 0) == 0.0

    def test_strong_and_separated(self):
        assert infer_confidence(25, 25) == 1.0

    def test_ambiguous_is_lower(self):
        assert infer_confidence(10, 0.5) < infer_confidence(10, 8)
