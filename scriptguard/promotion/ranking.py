"""
Version ranking - composite desirability of competing versions of one project.
"""
import logging
from typing import Optional, Sequence

from ..models.versions import (
    JobStatus,
    Outcome,
    OutcomeLearning,
    ProjectVersion,
    VersionMode,
    VersionRecommendation,
    VersionScore,
)
from .learning import counts_lift


logger = logging.getLogger(__name__)


LIFT_WEIGHTS = {
    "pair": 16.0,
    "pack": 10.0,
    "template": 8.0,
}


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class VersionRanker:
    """
    Scores versions from their quality snapshot, render state, operator metadata
    and the historical outcome lift of their pack and template.
    """

    def __init__(
        self,
        passed_bonus: float = 20,
        blocker_penalty: float = 8,
        warning_penalty: float = 2,
        incomplete_penalty: float = 30,
        missing_artifact_penalty: float = 25,
        rerender_bonus: float = 1,
        recency_step: float = 0.75,
        recency_cap: int = 8,
        label_bonus: float = 0.5,
        promoted_bonus: float = 0.5,
        outcome_bonus: float = 18,
        lift_weights: Optional[dict[str, float]] = None,
    ):
        self.passed_bonus = passed_bonus
        self.blocker_penalty = blocker_penalty
        self.warning_penalty = warning_penalty
        self.incomplete_penalty = incomplete_penalty
        self.missing_artifact_penalty = missing_artifact_penalty
        self.rerender_bonus = rerender_bonus
        self.recency_step = recency_step
        self.recency_cap = recency_cap
        self.label_bonus = label_bonus
        self.promoted_bonus = promoted_bonus
        self.outcome_bonus = outcome_bonus
        self.lift_weights = lift_weights or LIFT_WEIGHTS

    def score(self, version: ProjectVersion, learning: OutcomeLearning) -> VersionScore:
        """
        Composite score with every component kept in the breakdown.

        Args:
            version: Version to score
            learning: Historical outcomes

        Returns:
            VersionScore whose composite is the sum of its components
        """
        quality = version.quality
        meta = version.meta
        components = {
            "quality": float(quality.score),
            "passed": self.passed_bonus if quality.passed else -self.passed_bonus,
            "blockers": -self.blocker_penalty * quality.blockers,
            "warnings": -self.warning_penalty * quality.warnings,
            "status": 0.0 if version.status == JobStatus.COMPLETED else -self.incomplete_penalty,
            "artifact": 0.0 if version.artifacts.renderable else -self.missing_artifact_penalty,
            "rerender": self.rerender_bonus if version.mode == VersionMode.RERENDER else 0.0,
            "recency": min(version.version, self.recency_cap) * self.recency_step,
            "label": self.label_bonus if meta.label else 0.0,
            "promoted": self.promoted_bonus if meta.promoted_at else 0.0,
            "outcome": 0.0,
        }
        if meta.outcome == Outcome.ACCEPTED:
            components["outcome"] = self.outcome_bonus
        elif meta.outcome == Outcome.REJECTED:
            components["outcome"] = -self.outcome_bonus

        # Historical lift
        pack, template = quality.domain_pack, quality.template
        components["lift_pair"] = counts_lift(
            learning.by_pair.get(OutcomeLearning.pair_key(pack, template)) if pack and template else None,
            self.lift_weights["pair"],
        )
        components["lift_pack"] = counts_lift(learning.by_pack.get(pack or ""), self.lift_weights["pack"])
        components["lift_template"] = counts_lift(
            learning.by_template.get(template or ""), self.lift_weights["template"]
        )

        components = {key: round(value, 3) for key, value in components.items()}
        return VersionScore(
            job_id=version.id,
            version=version.version,
            composite=round(sum(components.values()), 3),
            components=components,
        )

    def recommend(
        self,
        versions: Sequence[ProjectVersion],
        learning: OutcomeLearning,
        respect_pins: bool = True,
    ) -> VersionRecommendation:
        """
        Pick the version to promote.

        Archived versions never compete. A pinned version wins outright when pins
        are respected; otherwise the highest composite wins, newest on ties.
        """
        candidates = [v for v in versions if not v.meta.archived]
        learning_summary = {
            "totalOutcomes": learning.total,
            "packs": len(learning.by_pack),
            "templates": len(learning.by_template),
        }
        if not candidates:
            return VersionRecommendation(reason="No eligible versions", learning=learning_summary)

        ranking = sorted(
            (self.score(v, learning) for v in candidates),
            key=lambda s: (-s.composite, -s.version),
        )
        by_id = {v.id: v for v in candidates}

        if respect_pins:
            pinned = next((v for v in candidates if v.meta.pinned), None)
            if pinned is not None:
                confidence = 0.6 if pinned.meta.outcome == Outcome.REJECTED else 1.0
                return VersionRecommendation(
                    recommended=pinned,
                    ranking=ranking,
                    reason=f"Version v{pinned.version} is pinned",
                    confidence=confidence,
                    learning=learning_summary,
                )

        top = ranking[0]
        gap = top.composite - ranking[1].composite if len(ranking) > 1 else top.composite
        confidence = 0.7 * _clamp01((gap + 3) / 20) + 0.3 * _clamp01(learning.total / 18)

        winner = by_id[top.job_id]
        if winner.meta.outcome == Outcome.ACCEPTED:
            confidence += 0.08
        elif winner.meta.outcome == Outcome.REJECTED:
            confidence -= 0.2
        confidence = round(_clamp01(confidence), 3)

        reason = f"Version v{winner.version} has the highest composite score ({top.composite:.1f})"
        if len(ranking) > 1:
            reason += f", {gap:.1f} ahead of v{ranking[1].version}"
        logger.debug(f"Recommendation: v{winner.version} confidence={confidence}")

        return VersionRecommendation(
            recommended=winner,
            ranking=ranking,
            reason=reason,
            confidence=confidence,
            learning=learning_summary,
        )


def score_version(version: ProjectVersion, learning: OutcomeLearning) -> VersionScore:
    return VersionRanker().score(version, learning)


def recommend_project_version(
    versions: Sequence[ProjectVersion],
    learning: OutcomeLearning,
    respect_pins: bool = True,
) -> VersionRecommendation:
    return VersionRanker().recommend(versions, learning, respect_pins=respect_pins)
