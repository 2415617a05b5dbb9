"""
Outcome learning - accept/reject history turned into bounded score lifts.
"""
from typing import Iterable, Optional

from ..models.packs import PromotionSegment
from ..models.versions import OutcomeCounts, OutcomeLearning, ProjectVersion
from ..packs.registry import DOMAIN_PACKS


# Evidence at which a lift reaches full weight
LIFT_FULL_EVIDENCE = 6


def laplace_rate(accepted: int, rejected: int) -> float:
    """Acceptance rate with add-one smoothing; always strictly inside (0, 1)."""
    return (accepted + 1) / (accepted + rejected + 2)


def outcome_lift(accepted: int, rejected: int, weight: float) -> float:
    """
    Score adjustment from historical outcomes.

    Zero without evidence, otherwise (rate - 0.5) scaled by evidence up to
    LIFT_FULL_EVIDENCE outcomes and then by weight.
    """
    evidence = accepted + rejected
    if evidence <= 0:
        return 0.0
    rate = laplace_rate(accepted, rejected)
    return (rate - 0.5) * min(1.0, evidence / LIFT_FULL_EVIDENCE) * weight


def counts_lift(counts: Optional[OutcomeCounts], weight: float) -> float:
    if counts is None:
        return 0.0
    return outcome_lift(counts.accepted, counts.rejected, weight)


def segment_for_pack(pack_id: Optional[str]) -> PromotionSegment:
    """Promotion segment of a pack; unknown packs are broad."""
    pack = DOMAIN_PACKS.get(pack_id or "")
    return pack.segment if pack else PromotionSegment.BROAD


def build_outcome_learning(versions: Iterable[ProjectVersion]) -> OutcomeLearning:
    """Bucket every version that carries an outcome by pack, template, pair and segment."""
    learning = OutcomeLearning()
    for version in versions:
        outcome = version.meta.outcome
        if outcome is None:
            continue
        pack = version.quality.domain_pack
        learning.record(
            outcome,
            pack,
            version.quality.template,
            segment=segment_for_pack(pack).value,
        )
    return learning
