"""Quality-guard pipeline components."""

from .classifier import DomainClassifier, select_domain_pack
from .grounding import (
    build_feature_evidence_plan,
    canonicalize_feature_name,
    canonicalize_integration,
    canonicalize_integrations,
    extract_grounding_hints,
    has_grounding_signal,
    pick_grounded_integration,
    pick_grounded_number,
    pick_grounded_phrase,
    summarize_grounding_usage,
)
from .templates import get_template_profile, select_template
from .quality import QualityPenalties, QualityScorer, score_script, to_quality_feedback
from .autofix import autofix_script
from .regenerate import parse_section, regenerate_section
from .improve import DEFECT_SECTION_RULES, auto_improve_script, build_improvement_plan
from .fallback import build_fallback_script
from .script_io import normalize_script_payload, to_persisted_script
from .orchestrator import build_quality_payload, run_quality_gate

__all__ = [
    "DomainClassifier",
    "select_domain_pack",
    "build_feature_evidence_plan",
    "canonicalize_feature_name",
    "canonicalize_integration",
    "canonicalize_integrations",
    "extract_grounding_hints",
    "has_grounding_signal",
    "pick_grounded_integration",
    "pick_grounded_number",
    "pick_grounded_phrase",
    "summarize_grounding_usage",
    "get_template_profile",
    "select_template",
    "QualityPenalties",
    "QualityScorer",
    "score_script",
    "to_quality_feedback",
    "autofix_script",
    "parse_section",
    "regenerate_section",
    "DEFECT_SECTION_RULES",
    "auto_improve_script",
    "build_improvement_plan",
    "build_fallback_script",
    "normalize_script_payload",
    "to_persisted_script",
    "build_quality_payload",
    "run_quality_gate",
]
