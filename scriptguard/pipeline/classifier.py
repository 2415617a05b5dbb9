"""
Domain classifier - picks a content pack for a scraped site.
Weighted whole-phrase keyword hits per field, negative keywords subtract.
"""
import logging
from typing import Optional

from ..models.packs import DomainPackSelection, PackCandidate
from ..models.scraped import ScrapedData
from ..packs.registry import DOMAIN_PACKS, GENERAL_PACK_ID, get_domain_pack, keyword_weight
from .text import phrase_pattern


logger = logging.getLogger(__name__)


# Field multipliers for a keyword hit
FIELD_WEIGHTS: dict[str, float] = {
    "domain": 4.0,
    "title": 3.0,
    "description": 2.0,
    "headings": 2.0,
    "features": 2.0,
    "links": 1.5,
    "body": 1.0,
}

NEGATIVE_KEYWORD_PENALTY = 2.5
OVERRIDE_SCORE = 999.0


class DomainClassifier:
    """
    Deterministic pack classifier.
    Falls back to the general pack when the best candidate is weak or ambiguous.
    """

    def __init__(
        self,
        min_best_score: float = 5.0,
        min_gap: float = 1.5,
        min_confidence: float = 0.4,
        ambiguous_high_confidence: float = 0.62,
    ):
        self.min_best_score = min_best_score
        self.min_gap = min_gap
        self.min_confidence = min_confidence
        self.ambiguous_high_confidence = ambiguous_high_confidence

    def select(self, scraped: ScrapedData, requested: Optional[str] = "auto") -> DomainPackSelection:
        """
        Select a pack for the scraped site.

        Args:
            scraped: Site facts
            requested: Explicit pack id, or "auto"/None to classify

        Returns:
            DomainPackSelection with per-pack scores and the top 3 candidates

        Raises:
            ValueError: if an explicit pack id is unknown
        """
        if requested and requested != "auto":
            pack = get_domain_pack(requested)
            return DomainPackSelection(
                pack=pack,
                reason=f"Selected by explicit pack={requested}",
                scores=self._zero_scores(),
                confidence=1.0,
                top_candidates=[PackCandidate(id=requested, score=OVERRIDE_SCORE)],
            )

        corpora = self._build_corpora(scraped)
        scores = self._zero_scores()
        candidates: list[PackCandidate] = []

        for pack_id, pack in DOMAIN_PACKS.items():
            if pack_id == GENERAL_PACK_ID:
                continue
            score = 0.0
            for keyword in pack.keywords:
                score += self._keyword_score(corpora, keyword)
            for negative in pack.negative_keywords:
                if self._keyword_score(corpora, negative) > 0:
                    score -= NEGATIVE_KEYWORD_PENALTY
            score = round(score, 2)
            scores[pack_id] = score
            candidates.append(PackCandidate(id=pack_id, score=score))

        # Stable sort keeps table order among ties
        candidates.sort(key=lambda c: c.score, reverse=True)
        best = candidates[0] if candidates else None
        best_score = best.score if best else 0.0
        gap = best.score - candidates[1].score if len(candidates) > 1 else best_score
        confidence = infer_confidence(best_score, gap)
        top = candidates[:3]

        if (
            best is None
            or best_score < self.min_best_score
            or confidence < self.min_confidence
            or (gap < self.min_gap and confidence < self.ambiguous_high_confidence)
        ):
            best_id = best.id if best else "none"
            logger.debug(f"Classifier fell back to general (best={best_id}, score={best_score:.2f})")
            return DomainPackSelection(
                pack=DOMAIN_PACKS[GENERAL_PACK_ID],
                reason=(
                    f"Auto-selected general fallback (best={best_id} score={best_score:.2f}, "
                    f"gap={gap:.2f}, confidence={confidence:.2f})."
                ),
                scores=scores,
                confidence=confidence,
                top_candidates=top,
            )

        return DomainPackSelection(
            pack=DOMAIN_PACKS[best.id],
            reason=f"Auto-selected {best.id} (score={best_score:.2f}, gap={gap:.2f}, confidence={confidence:.2f}).",
            scores=scores,
            confidence=confidence,
            top_candidates=top,
        )

    def _build_corpora(self, scraped: ScrapedData) -> dict[str, str]:
        return {
            "domain": scraped.domain.lower(),
            "title": " ".join([scraped.title, scraped.og_title]).lower(),
            "description": " ".join([scraped.description, scraped.og_description]).lower(),
            "headings": " ".join(scraped.headings).lower(),
            "features": " ".join(scraped.features).lower(),
            "body": scraped.body_text.lower(),
            "links": " ".join(scraped.links).lower(),
        }

    def _keyword_score(self, corpora: dict[str, str], keyword: str) -> float:
        pattern = phrase_pattern(keyword)
        multiplier = keyword_weight(keyword)
        score = 0.0
        for field, weight in FIELD_WEIGHTS.items():
            if pattern.search(corpora[field]):
                score += weight * multiplier
        return score

    def _zero_scores(self) -> dict[str, float]:
        return {pack_id: 0.0 for pack_id in DOMAIN_PACKS}


def infer_confidence(best_score: float, gap: float) -> float:
    """Blend of absolute strength and separation from the runner-up."""
    if best_score <= 0:
        return 0.0
    strength = min(1.0, best_score / 18)
    separation = max(0.0, min(1.0, gap / max(best_score, 1)))
    confidence = 0.55 * strength + 0.45 * separation
    return round(max(0.0, min(1.0, confidence)), 2)


def select_domain_pack(scraped: ScrapedData, requested: Optional[str] = "auto") -> DomainPackSelection:
    """Convenience wrapper around a default DomainClassifier."""
    return DomainClassifier().select(scraped, requested)
