"""
Auto-improve loop - plan, regenerate the weakest section, autofix, rescore.
Bounded by a step budget, a per-section retry cap and a stall limit.
"""
import logging
import re
from typing import Optional

from ..models.improve import (
    AutoImproveResult,
    ImprovementPlan,
    ImproveOptions,
    ImproveStep,
    SectionRecommendation,
    StopReason,
)
from ..models.packs import DomainPack
from ..models.quality import GroundingHints, QualityReport, TemplateProfile
from ..models.scraped import ScrapedData
from ..models.script import (
    CLOSING_SEGMENT,
    FIRST_FEATURE_SEGMENT,
    SECTION_ORDER,
    ScriptResult,
    Section,
)
from .autofix import HYPE_PATTERN, autofix_script
from .grounding import extract_grounding_hints
from .quality import DEMO_MIN_WORDS, HOOK_MAX_WORDS, HOOK_MIN_WORDS, QualityScorer
from .regenerate import compute_scene_weights, regenerate_section
from .text import count_words, has_whole_phrase, normalize_key


logger = logging.getLogger(__name__)


BLOCKER_POINTS = 12
WARNING_POINTS = 6

# Structural check points
HOOK_LENGTH_POINTS = 6
HOOK_HYPE_POINTS = 8
MISSING_CTA_POINTS = 12
DUPLICATE_NAME_POINTS = 6
THIN_DEMO_POINTS = 6
NON_NUMERIC_DEMO_POINTS = 4
WEAK_CROSS_REFERENCE_POINTS = 4

HIGH_IMPACT = 18
MEDIUM_IMPACT = 10

ALL_FEATURES = (Section.FEATURE1, Section.FEATURE2, Section.FEATURE3)

# Message keyword -> sections the defect is attributed to
DEFECT_SECTION_RULES: tuple[tuple[re.Pattern, tuple[Section, ...]], ...] = (
    (re.compile(r"exactly 3 features|distinct contexts|all features", re.IGNORECASE), ALL_FEATURES),
    (re.compile(r"exactly 8 scene segments|narration word count|placeholder", re.IGNORECASE), tuple(SECTION_ORDER)),
    (re.compile(r"\bhook\b|wordmark|brand name", re.IGNORECASE), (Section.HOOK,)),
    (re.compile(r"\bcta\b", re.IGNORECASE), (Section.CTA,)),
)

_FEATURE_MENTION = re.compile(r"\bfeature\s*([123])\b", re.IGNORECASE)
_QUOTED = re.compile(r'"([^"]*)"')
_FORBIDDEN_TERM = re.compile(r'Domain mismatch term detected for pack [^:]+: "([^"]+)"')


def section_text(script: ScriptResult, section: Section) -> str:
    """User-visible text owned by one section, including its narration."""
    segments = script.narration_segments
    if section == Section.HOOK:
        parts = [*script.hook_lines, *segments[:FIRST_FEATURE_SEGMENT]]
    elif section == Section.CTA:
        parts = [script.cta_url, *segments[CLOSING_SEGMENT:CLOSING_SEGMENT + 1]]
    else:
        index = section.feature_index
        parts = []
        if index < len(script.features):
            feature = script.features[index]
            parts = [feature.app_name, feature.caption, *feature.demo_lines]
        segment = FIRST_FEATURE_SEGMENT + index
        if segment < len(segments):
            parts.append(segments[segment])
    return " ".join(parts)


def attribute_defect(message: str, script: ScriptResult) -> set[Section]:
    """Sections a blocker or warning message can be pinned on."""
    sections: set[Section] = set()
    for pattern, targets in DEFECT_SECTION_RULES:
        if pattern.search(message):
            sections.update(targets)

    for match in _FEATURE_MENTION.finditer(message):
        sections.add(Section.for_feature(int(match.group(1)) - 1))

    term = _FORBIDDEN_TERM.search(message)
    if term:
        owners = {s for s in SECTION_ORDER if has_whole_phrase(section_text(script, s), term.group(1))}
        sections.update(owners or SECTION_ORDER)
        return sections

    for quoted in _QUOTED.findall(message):
        key = normalize_key(quoted)
        for index, feature in enumerate(script.features[:len(ALL_FEATURES)]):
            if key in (normalize_key(feature.app_name), normalize_key(feature.icon), normalize_key(feature.caption)):
                sections.add(Section.for_feature(index))
    return sections


def build_improvement_plan(script: ScriptResult, report: QualityReport) -> ImprovementPlan:
    """
    Rank sections by how much regenerating them is likely to help.

    Blockers add 12 and warnings 6 to every attributed section; structural checks
    against the script add their own points. Sections with no points are left out.
    """
    scores = {section: 0.0 for section in SECTION_ORDER}
    reasons: dict[Section, list[str]] = {section: [] for section in SECTION_ORDER}

    def add(section: Section, points: float, reason: str) -> None:
        scores[section] += points
        if reason not in reasons[section]:
            reasons[section].append(reason)

    for message in report.blockers:
        for section in attribute_defect(message, script):
            add(section, BLOCKER_POINTS, message)
    for message in report.warnings:
        for section in attribute_defect(message, script):
            add(section, WARNING_POINTS, message)

    for i, line in enumerate(script.hook_lines):
        words = count_words(line)
        if words < HOOK_MIN_WORDS or words > HOOK_MAX_WORDS:
            add(Section.HOOK, HOOK_LENGTH_POINTS, f"Hook line {i + 1} has {words} words.")
    if any(HYPE_PATTERN.search(line) for line in script.hook_lines):
        add(Section.HOOK, HOOK_HYPE_POINTS, "Hook uses generic hype phrasing.")

    if not script.cta_url.strip():
        add(Section.CTA, MISSING_CTA_POINTS, "CTA URL is missing.")

    keys = [normalize_key(feature.app_name) for feature in script.features]
    for index, feature in enumerate(script.features[:len(ALL_FEATURES)]):
        section = Section.for_feature(index)
        if keys.count(keys[index]) > 1:
            add(section, DUPLICATE_NAME_POINTS, f'Feature name "{feature.app_name}" is duplicated.')
        demo = " ".join(feature.demo_lines)
        if count_words(demo) < DEMO_MIN_WORDS:
            add(section, THIN_DEMO_POINTS, "Demo lines are thin.")
        if not re.search(r"\d", demo):
            add(section, NON_NUMERIC_DEMO_POINTS, "Demo lines carry no numbers.")
        segment_index = FIRST_FEATURE_SEGMENT + index
        segment = script.narration_segments[segment_index] if segment_index < len(script.narration_segments) else ""
        name_words = feature.app_name.split()
        if not name_words or name_words[0].lower() not in segment.lower():
            add(section, WEAK_CROSS_REFERENCE_POINTS, "Narration does not reference the feature name.")

    ranked = sorted(
        (section for section in SECTION_ORDER if scores[section] > 0),
        key=lambda s: (-scores[s], SECTION_ORDER.index(s)),
    )
    if not ranked:
        return ImprovementPlan()

    top = scores[ranked[0]]
    return ImprovementPlan(recommendations=[
        SectionRecommendation(
            section=section,
            score=scores[section],
            confidence=round(scores[section] / top, 2),
            impact=_impact(scores[section]),
            reasons=reasons[section],
        )
        for section in ranked
    ])


def _impact(score: float) -> str:
    if score >= HIGH_IMPACT:
        return "high"
    if score >= MEDIUM_IMPACT:
        return "medium"
    return "low"


def is_improvement(before: QualityReport, after: QualityReport) -> bool:
    return (
        len(after.blockers) < len(before.blockers)
        or len(after.warnings) < len(before.warnings)
        or after.score > before.score + 0.5
        or (after.passed and not before.passed)
    )


def is_regression(before: QualityReport, after: QualityReport) -> bool:
    return len(after.blockers) > len(before.blockers) or after.score < before.score


def auto_improve_script(
    script: ScriptResult,
    scraped: ScrapedData,
    pack: DomainPack,
    template: Optional[TemplateProfile] = None,
    options: Optional[ImproveOptions] = None,
    hints: Optional[GroundingHints] = None,
    scorer: Optional[QualityScorer] = None,
) -> AutoImproveResult:
    """
    Iteratively regenerate weak sections until the quality target is met.

    Args:
        script: Starting script, left untouched
        scraped: Source site facts
        pack: Active domain pack
        template: Template profile for scoring
        options: Loop knobs
        hints: Grounding hints, extracted from scraped when omitted
        scorer: Scorer to use, default penalties when omitted

    Returns:
        AutoImproveResult with the best accepted script and the reason the loop stopped
    """
    options = options or ImproveOptions()
    hints = hints or extract_grounding_hints(scraped)
    scorer = scorer or QualityScorer()

    def score(candidate: ScriptResult) -> QualityReport:
        return scorer.score(
            candidate,
            scraped,
            pack,
            template=template,
            min_score=options.min_score,
            max_warnings=options.max_warnings,
            fail_on_warnings=options.fail_on_warnings,
        )

    def goal_met(report: QualityReport) -> bool:
        return report.meets(options.target_score, options.warning_budget)

    working = script.clone()
    report = score(working)
    initial_report = report
    attempts = {section.value: 0 for section in SECTION_ORDER}
    steps: list[ImproveStep] = []

    def finish(reason: StopReason) -> AutoImproveResult:
        logger.info(
            f"Auto-improve stopped: {reason.value} after {len(steps)} steps "
            f"(score {initial_report.score} -> {report.score})"
        )
        return AutoImproveResult(
            script=working,
            report=report,
            initial_report=initial_report,
            steps=steps,
            stop_reason=reason,
            section_attempts=attempts,
        )

    if goal_met(report):
        return finish(StopReason.ALREADY_MEETS_TARGET)

    stalled = 0
    for step_number in range(1, options.max_steps + 1):
        plan = build_improvement_plan(working, report)
        choice = next(
            (rec for rec in plan.recommendations if attempts[rec.section.value] < options.max_section_attempts),
            None,
        )
        if choice is None:
            return finish(StopReason.SECTIONS_EXHAUSTED)

        section = choice.section
        attempts[section.value] += 1
        regenerated = regenerate_section(working, section, scraped, pack, hints)
        candidate = regenerated.script
        actions = list(regenerated.actions)
        if options.autofix:
            fixed = autofix_script(candidate, scraped, pack, hints)
            candidate = fixed.script
            actions.extend(fixed.actions)
        candidate.scene_weights = compute_scene_weights(candidate.narration_segments)

        candidate_report = score(candidate)
        improved = is_improvement(report, candidate_report)
        accepted = not is_regression(report, candidate_report)
        steps.append(ImproveStep(
            step=step_number,
            section=section,
            score_before=report.score,
            score_after=candidate_report.score,
            blockers_before=len(report.blockers),
            blockers_after=len(candidate_report.blockers),
            warnings_before=len(report.warnings),
            warnings_after=len(candidate_report.warnings),
            improved=improved,
            accepted=accepted,
            actions=actions,
        ))
        logger.debug(
            f"Step {step_number}: {section.value} {report.score} -> {candidate_report.score} "
            f"(improved={improved}, accepted={accepted})"
        )

        if accepted:
            working, report = candidate, candidate_report
            if goal_met(report):
                return finish(StopReason.TARGET_REACHED)

        stalled = 0 if improved else stalled + 1
        if stalled >= options.stall_limit:
            return finish(StopReason.STALLED)

    return finish(StopReason.MAX_STEPS)
