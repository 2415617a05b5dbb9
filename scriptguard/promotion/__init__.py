"""Version ranking, outcome learning and promotion."""

from .learning import build_outcome_learning, laplace_rate, outcome_lift, segment_for_pack
from .ranking import LIFT_WEIGHTS, VersionRanker, recommend_project_version, score_version
from .engine import PromotionEngine, calibrate_thresholds
from .watchdog import PromotionWatchdog

__all__ = [
    "build_outcome_learning",
    "laplace_rate",
    "outcome_lift",
    "segment_for_pack",
    "LIFT_WEIGHTS",
    "VersionRanker",
    "recommend_project_version",
    "score_version",
    "PromotionEngine",
    "calibrate_thresholds",
    "PromotionWatchdog",
]
