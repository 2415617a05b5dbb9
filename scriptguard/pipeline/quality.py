"""
Quality scorer - deterministic script scoring with blockers, warnings and notes.
Starts at 100 and subtracts a configured penalty per defect.
"""
import logging
import re
from typing import Optional

from pydantic import BaseModel, Field

from ..config import get_config
from ..models.packs import DomainPack
from ..models.quality import QualityReport, TemplateProfile
from ..models.scraped import ScrapedData
from ..models.script import (
    FEATURE_COUNT,
    NARRATION_SEGMENT_COUNT,
    WORDMARK_SEGMENT,
    ScriptResult,
)
from .text import count_words, has_whole_phrase, normalize_domain, normalize_key


logger = logging.getLogger(__name__)


FEATURE_COUNT_BLOCKER = "Script must contain exactly 3 features."
SEGMENT_COUNT_BLOCKER = "Narration must contain exactly 8 scene segments."

NARRATION_MIN_WORDS = 100
NARRATION_MAX_WORDS = 140
HOOK_MIN_WORDS = 2
HOOK_MAX_WORDS = 4
CAPTION_MAX_WORDS = 6
DEMO_MIN_WORDS = 6
MIN_INTEGRATIONS = 2
MAX_INTEGRATIONS = 12
PACING_NOTE_DEVIATION = 5.0

PLACEHOLDER_PATTERNS = (
    re.compile(r"lorem ipsum", re.IGNORECASE),
    re.compile(r"\btbd\b", re.IGNORECASE),
    re.compile(r"insert .*? here", re.IGNORECASE),
    re.compile(r"your brand", re.IGNORECASE),
    re.compile(r"example\.com", re.IGNORECASE),
)

GENERIC_CONCRETE_SIGNAL = re.compile(
    r"\d|status|due|owner|assigned|priority|revenue|conversion|ticket|order|eta",
    re.IGNORECASE,
)


class QualityPenalties(BaseModel):
    """Points subtracted per defect. Structural blockers weigh the most."""
    feature_count: int = Field(default=35, description="Blocker: features != 3")
    segment_count: int = Field(default=35, description="Blocker: narration segments != 8")
    placeholder: int = Field(default=20, description="Blocker, per matched pattern")
    missing_demo: int = Field(default=12, description="Blocker, per feature")
    narration_length: int = 10
    cta_mismatch: int = 8
    brand_weak: int = 6
    forbidden_term: int = Field(default=6, description="Per term")
    disallowed_icon: int = Field(default=5, description="Per feature")
    duplicate_names: int = 4
    wordmark_brand: int = 4
    pack_mismatch: int = 4
    hook_length: int = Field(default=3, description="Per hook line")
    thin_demo: int = 3
    no_concrete_signal: int = 3
    integration_count: int = 3
    long_caption: int = 2
    integration_overlap: int = 2


def has_concrete_signal(text: str, fields: tuple[str, ...]) -> bool:
    """A digit, a generic tracking word, or one of the pack's concrete fields."""
    if GENERIC_CONCRETE_SIGNAL.search(text):
        return True
    lower = text.lower()
    return any(field.lower() in lower for field in fields)


def find_placeholders(text: str) -> list[str]:
    return [pattern.pattern for pattern in PLACEHOLDER_PATTERNS if pattern.search(text)]


def cta_matches_domain(cta_url: str, domain: str) -> bool:
    cta = normalize_domain(cta_url)
    source = normalize_domain(domain)
    if not cta:
        return False
    if not source:
        return True
    return source in cta or cta in source


def brand_in_wordmark(script: ScriptResult) -> bool:
    segments = script.narration_segments
    if len(segments) <= WORDMARK_SEGMENT:
        return False
    first_word = script.brand_name.lower().split()[0] if script.brand_name.strip() else ""
    return first_word in segments[WORDMARK_SEGMENT].lower()


class QualityScorer:
    """
    Deterministic quality scorer.
    Pure: never mutates the script, scraped data or pack it is given.
    """

    def __init__(self, penalties: Optional[QualityPenalties] = None):
        self.penalties = penalties or QualityPenalties()

    def score(
        self,
        script: ScriptResult,
        scraped: ScrapedData,
        pack: DomainPack,
        template: Optional[TemplateProfile] = None,
        min_score: Optional[int] = None,
        max_warnings: Optional[int] = None,
        fail_on_warnings: bool = False,
    ) -> QualityReport:
        """
        Score a script against its source site and pack.

        Args:
            script: Script to evaluate
            scraped: Source site facts
            pack: Active domain pack
            template: Template profile for the pacing note (skipped when None)
            min_score: Passing score, defaults to the configured minimum
            max_warnings: Warning budget, defaults to the configured budget
            fail_on_warnings: Strict mode, any warning fails the gate

        Returns:
            QualityReport with a clamped 0-100 score
        """
        quality_config = get_config().quality
        if min_score is None:
            min_score = quality_config.min_score
        if max_warnings is None:
            max_warnings = quality_config.max_warnings

        p = self.penalties
        blockers: list[str] = []
        warnings: list[str] = []
        notes: list[str] = []
        score = 100

        if len(script.features) != FEATURE_COUNT:
            blockers.append(FEATURE_COUNT_BLOCKER)
            score -= p.feature_count

        if len(script.narration_segments) != NARRATION_SEGMENT_COUNT:
            blockers.append(SEGMENT_COUNT_BLOCKER)
            score -= p.segment_count

        narration_words = count_words(script.narration)
        if narration_words < NARRATION_MIN_WORDS or narration_words > NARRATION_MAX_WORDS:
            warnings.append(
                f"Narration word count {narration_words} is outside target range "
                f"({NARRATION_MIN_WORDS}-{NARRATION_MAX_WORDS})."
            )
            score -= p.narration_length
        else:
            notes.append(f"Narration length in target range ({narration_words} words).")

        for i, line in enumerate(script.hook_lines):
            words = count_words(line)
            if words < HOOK_MIN_WORDS or words > HOOK_MAX_WORDS:
                warnings.append(f"Hook line {i + 1} should be 2-4 words.")
                score -= p.hook_length

        if not cta_matches_domain(script.cta_url, scraped.domain):
            warnings.append(f"CTA URL ({script.cta_url}) does not match scraped domain ({scraped.domain}).")
            score -= p.cta_mismatch

        brand = normalize_key(script.brand_name)
        title = normalize_key(scraped.title)
        domain_core = normalize_key(scraped.domain_root)
        if brand not in title and domain_core not in brand:
            warnings.append("Brand name appears weakly aligned with source site title/domain.")
            score -= p.brand_weak

        app_keys = [normalize_key(feature.app_name) for feature in script.features]
        if len(set(app_keys)) != len(app_keys):
            warnings.append("Feature app names should be distinct contexts.")
            score -= p.duplicate_names

        for feature in script.features:
            if not pack.allows_icon(feature.icon):
                warnings.append(f'Feature icon "{feature.icon}" is not allowed for domain pack "{pack.id}".')
                score -= p.disallowed_icon

        for feature in script.features:
            if not feature.caption or count_words(feature.caption) > CAPTION_MAX_WORDS:
                warnings.append(f'Feature caption "{feature.caption}" should be concise (<=6 words).')
                score -= p.long_caption

            if not feature.demo_lines:
                blockers.append(f'Feature "{feature.app_name}" has no demo lines.')
                score -= p.missing_demo
                continue

            joined = " ".join(feature.demo_lines)
            if count_words(joined) < DEMO_MIN_WORDS:
                warnings.append(f'Feature "{feature.app_name}" demo content is too thin.')
                score -= p.thin_demo

            if not has_concrete_signal(joined, pack.concrete_fields):
                warnings.append(
                    f'Feature "{feature.app_name}" lacks concrete on-screen detail (names/numbers/status).'
                )
                score -= p.no_concrete_signal

        corpus = script.text_corpus()
        for pattern in find_placeholders(corpus):
            blockers.append(f"Detected placeholder content matching /{pattern}/.")
            score -= p.placeholder

        for term in pack.forbidden_terms:
            if has_whole_phrase(corpus, term):
                warnings.append(f'Domain mismatch term detected for pack {pack.id}: "{term}".')
                score -= p.forbidden_term

        if not brand_in_wordmark(script):
            warnings.append("Wordmark narration segment should explicitly introduce the brand name.")
            score -= p.wordmark_brand

        if not MIN_INTEGRATIONS <= len(script.integrations) <= MAX_INTEGRATIONS:
            warnings.append("Integrations should contain 2-12 items.")
            score -= p.integration_count

        defaults = {normalize_key(name) for name in pack.fallback_integrations}
        if not any(normalize_key(item) in defaults for item in script.integrations):
            warnings.append(f'No integrations overlap with domain pack defaults for "{pack.id}".')
            score -= p.integration_overlap

        if script.domain_pack_id and script.domain_pack_id != pack.id:
            warnings.append(
                f'Script pack id "{script.domain_pack_id}" does not match selected pack "{pack.id}".'
            )
            score -= p.pack_mismatch

        if template and script.scene_weights and len(script.scene_weights) == NARRATION_SEGMENT_COUNT:
            deviation = average_deviation(script.scene_weights, template.scene_weight_hint)
            if deviation > PACING_NOTE_DEVIATION:
                notes.append(f"Scene pacing deviation vs template: {deviation:.1f}.")

        score = max(0, min(100, round(score)))
        warning_gate = not warnings if fail_on_warnings else len(warnings) <= max_warnings

        report = QualityReport(
            score=score,
            min_score=min_score,
            passed=not blockers and score >= min_score and warning_gate,
            blockers=blockers,
            warnings=warnings,
            notes=notes,
        )
        logger.debug(
            f"Scored {script.brand_name or 'script'}: {report.score} "
            f"({len(blockers)} blockers, {len(warnings)} warnings)"
        )
        return report


def average_deviation(weights, hint) -> float:
    if len(weights) != len(hint) or not weights:
        return 0.0
    return sum(abs(a - b) for a, b in zip(weights, hint)) / len(weights)


def score_script(
    script: ScriptResult,
    scraped: ScrapedData,
    pack: DomainPack,
    template: Optional[TemplateProfile] = None,
    min_score: Optional[int] = None,
    max_warnings: Optional[int] = None,
    fail_on_warnings: bool = False,
) -> QualityReport:
    """Score with default penalties."""
    return QualityScorer().score(
        script,
        scraped,
        pack,
        template=template,
        min_score=min_score,
        max_warnings=max_warnings,
        fail_on_warnings=fail_on_warnings,
    )


def to_quality_feedback(report: QualityReport) -> list[str]:
    """First 8 blockers and warnings, blockers first."""
    return [*report.blockers, *report.warnings][:8]
