"""
Quality-gate orchestrator - classify, select template, score candidates,
autofix and fall back to the deterministic script.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

from pydantic.alias_generators import to_camel

from ..config import get_config
from ..models.quality import GenerationMode, QualityGateResult, QualityReport
from ..models.scraped import ScrapedData
from ..models.script import ScriptResult

from .autofix import autofix_script
from .classifier import DomainClassifier
from .fallback import build_fallback_script
from .grounding import extract_grounding_hints, summarize_grounding_usage
from .quality import QualityScorer, to_quality_feedback
from .script_io import normalize_script_payload
from .templates import select_template


logger = logging.getLogger(__name__)


def run_quality_gate(
    scraped: ScrapedData,
    candidates: Iterable[Union[ScriptResult, dict]] = (),
    pack: str = "auto",
    template: str = "auto",
    min_score: Optional[int] = None,
    max_warnings: Optional[int] = None,
    strict: Optional[bool] = None,
    autofix: Optional[bool] = None,
    allow_low_quality: bool = False,
) -> QualityGateResult:
    """
    Run the quality gate over candidate scripts.

    Gate steps:
    1. Classify the site and select a template
    2. Score each candidate, autofixing failures when enabled
    3. Fall back to the deterministic script when no candidate passes

    Args:
        scraped: Source site facts
        candidates: Model-generated scripts, as ScriptResult or raw JSON objects
        pack: Explicit pack id or "auto"
        template: Explicit template id or "auto"
        min_score: Passing score, defaults to config
        max_warnings: Warning budget, defaults to config
        strict: Fail on any warning, defaults to config
        autofix: Run autofix on failing scripts, defaults to config
        allow_low_quality: Return the fallback even if it fails

    Returns:
        QualityGateResult for the accepted script

    Raises:
        RuntimeError: if nothing passes and allow_low_quality is False
    """
    quality_config = get_config().quality
    min_score = quality_config.min_score if min_score is None else min_score
    max_warnings = quality_config.max_warnings if max_warnings is None else max_warnings
    strict = quality_config.strict if strict is None else strict
    autofix = quality_config.autofix if autofix is None else autofix
    if strict:
        max_warnings = 0

    # Step 1: Classification and template
    pack_selection = DomainClassifier().select(scraped, pack)
    template_selection = select_template(scraped, template, pack_selection.pack)
    domain_pack = pack_selection.pack
    profile = template_selection.profile
    hints = extract_grounding_hints(scraped)
    scorer = QualityScorer()
    logger.info(
        f"Quality gate for {scraped.domain or scraped.url}: pack={domain_pack.id} "
        f"template={profile.id}"
    )

    def score(script: ScriptResult) -> QualityReport:
        return scorer.score(
            script,
            scraped,
            domain_pack,
            template=profile,
            min_score=min_score,
            max_warnings=max_warnings,
            fail_on_warnings=strict,
        )

    def accept(script: ScriptResult, report: QualityReport, mode: GenerationMode, actions: list[str], attempts: int):
        script = script.clone()
        script.domain_pack_id = domain_pack.id
        logger.info(f"Accepted {mode.value} script with score {report.score}/{report.min_score}")
        return QualityGateResult(
            script=script,
            report=report,
            generation_mode=mode,
            pack_selection=pack_selection,
            template_selection=template_selection,
            grounding=summarize_grounding_usage(script, hints),
            actions=actions,
            attempts=attempts,
        )

    # Step 2: Candidates
    attempts = 0
    last_report: Optional[QualityReport] = None
    for raw in candidates:
        attempts += 1
        try:
            candidate = raw if isinstance(raw, ScriptResult) else normalize_script_payload(raw)
        except ValueError as e:
            logger.warning(f"Attempt {attempts}: skipping malformed candidate: {e}")
            continue
        candidate = candidate.clone()
        candidate.domain_pack_id = domain_pack.id

        report = score(candidate)
        last_report = report
        logger.info(f"Attempt {attempts}: quality {report.score}/{min_score}")
        if report.passed:
            return accept(candidate, report, GenerationMode.MODEL, [], attempts)

        if autofix:
            fixed = autofix_script(candidate, scraped, domain_pack, hints)
            fixed_report = score(fixed.script)
            logger.info(f"Attempt {attempts}: auto-fix quality {fixed_report.score}/{min_score}")
            if fixed_report.passed:
                return accept(fixed.script, fixed_report, GenerationMode.MODEL_AUTOFIX, fixed.actions, attempts)
            last_report = fixed_report
        logger.debug(f"Attempt {attempts} feedback: {to_quality_feedback(last_report)}")

    # Step 3: Deterministic fallback
    logger.warning("No candidate passed the quality gate, switching to deterministic fallback")
    fallback = build_fallback_script(scraped, profile, domain_pack)
    fallback_report = score(fallback)
    if fallback_report.passed:
        return accept(fallback, fallback_report, GenerationMode.FALLBACK, [], attempts)

    if autofix:
        fixed = autofix_script(fallback, scraped, domain_pack, hints)
        fixed_report = score(fixed.script)
        if fixed_report.passed or allow_low_quality:
            return accept(fixed.script, fixed_report, GenerationMode.FALLBACK_AUTOFIX, fixed.actions, attempts)
        last_report = fixed_report
    elif allow_low_quality:
        return accept(fallback, fallback_report, GenerationMode.FALLBACK, [], attempts)

    reasons = [*fallback_report.blockers, *fallback_report.warnings]
    if last_report:
        reasons.append("Last attempt warnings: " + "; ".join(last_report.warnings))
    raise RuntimeError(f"Quality gate failed after candidate and fallback attempts: {' | '.join(reasons)}")


def build_quality_payload(result: QualityGateResult, url: str, generated_at: Optional[datetime] = None) -> dict[str, Any]:
    """Quality file contents for one version."""
    generated_at = generated_at or datetime.now(timezone.utc)
    selection = result.pack_selection
    return {
        "generatedAt": generated_at.isoformat(),
        "url": url,
        "template": result.template_selection.profile.id,
        "templateReason": result.template_selection.reason,
        "domainPack": selection.pack.id,
        "domainPackReason": selection.reason,
        "domainPackConfidence": selection.confidence,
        "domainPackTopCandidates": [c.model_dump(mode="json") for c in selection.top_candidates],
        "domainPackScores": selection.scores,
        "groundingSummary": _camel_dump(result.grounding),
        "generationMode": result.generation_mode.value,
        "qualityReport": _camel_dump(result.report),
    }


def _camel_dump(model) -> dict[str, Any]:
    return {to_camel(key): value for key, value in model.model_dump(mode="json").items()}
