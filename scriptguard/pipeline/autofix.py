"""
AutoFix engine - rule-based repair toward the quality bar.
Each rule maps to a scorer defect class and logs an action only when it changes something.
"""
import logging
import re
from typing import Optional

from ..models.packs import DomainPack
from ..models.quality import GroundingHints
from ..models.scraped import ScrapedData
from ..models.script import (
    CLOSING_SEGMENT,
    FEATURE_COUNT,
    FIRST_FEATURE_SEGMENT,
    NARRATION_SEGMENT_COUNT,
    WORDMARK_SEGMENT,
    AutoFixResult,
    Feature,
    ScriptResult,
)
from .grounding import (
    build_feature_evidence_plan,
    canonicalize_feature_name,
    canonicalize_integrations,
    extract_grounding_hints,
    has_grounding_signal,
    pick_grounded_number,
    pick_grounded_phrase,
)
from .quality import (
    CAPTION_MAX_WORDS,
    DEMO_MIN_WORDS,
    HOOK_MAX_WORDS,
    HOOK_MIN_WORDS,
    MAX_INTEGRATIONS,
    MIN_INTEGRATIONS,
    NARRATION_MAX_WORDS,
    NARRATION_MIN_WORDS,
    brand_in_wordmark,
    cta_matches_domain,
    has_concrete_signal,
)
from .regenerate import build_feature, compute_scene_weights, field_line, pad_narration
from .text import (
    count_words,
    has_whole_phrase,
    normalize_domain,
    normalize_key,
    phrase_pattern,
    title_case,
    to_max_words,
)


logger = logging.getLogger(__name__)


HYPE_PATTERN = re.compile(r"right now|game changer|next level|all in one|revolutionary", re.IGNORECASE)

# Hard per-segment word caps applied when narration runs long
SEGMENT_WORD_CAPS = (12, 16, 12, 20, 20, 20, 18, 14)
MAX_BOOSTS = 12

ON_SCREEN_REPLACEMENT = "context signal"
NARRATION_REPLACEMENT = "domain context"


def autofix_script(
    script: ScriptResult,
    scraped: ScrapedData,
    pack: DomainPack,
    hints: Optional[GroundingHints] = None,
) -> AutoFixResult:
    """
    Repair a clone of the script.

    Not guaranteed to reach a passing score; callers re-score the result.

    Args:
        script: Source script, left untouched
        scraped: Source site facts
        pack: Active domain pack
        hints: Grounding hints, extracted from scraped when omitted

    Returns:
        AutoFixResult with the corrected clone and an action log
    """
    hints = hints or extract_grounding_hints(scraped)
    fixed = script.clone()
    actions: list[str] = []

    if fixed.domain_pack_id != pack.id:
        fixed.domain_pack_id = pack.id
        actions.append(f"Stamped domain pack id {pack.id}.")

    _fix_structure(fixed, pack, hints, actions)
    _fix_placeholders(fixed, scraped, hints, pack, actions)
    # Substitutions change word counts, so they run before hook normalization
    _fix_forbidden_terms(fixed, pack, actions)

    domain = normalize_domain(scraped.domain)
    if domain and not cta_matches_domain(fixed.cta_url, scraped.domain):
        fixed.cta_url = domain
        actions.append("Aligned ctaUrl with scraped domain.")

    for i, attr in enumerate(("hook_line1", "hook_line2", "hook_keyword")):
        current = getattr(fixed, attr)
        normalized = _normalize_hook_line(current, i, hints, pack)
        if normalized != current:
            setattr(fixed, attr, normalized)
            actions.append(f"Normalized {attr} to 2-4 words.")

    if not brand_in_wordmark(fixed):
        existing = fixed.narration_segments[WORDMARK_SEGMENT].strip().rstrip(".") or "Built for execution"
        fixed.narration_segments[WORDMARK_SEGMENT] = f"Meet {fixed.brand_name}. {existing}."
        actions.append("Forced brand mention in wordmark narration segment.")

    for index, feature in enumerate(fixed.features):
        _fix_feature(feature, index, pack, hints, actions)

    for feature in fixed.features:
        if not pack.allows_icon(feature.icon):
            replacement = pack.allowed_icons[0] if pack.allowed_icons else "generic"
            actions.append(f"Replaced disallowed icon {feature.icon} with {replacement}.")
            feature.icon = replacement

    _fix_integrations(fixed, pack, hints, actions)
    _fix_forbidden_terms(fixed, pack, actions)
    _fix_narration(fixed, pack, hints, actions)

    fixed.scene_weights = compute_scene_weights(fixed.narration_segments)
    logger.debug(f"Autofix applied {len(actions)} actions to {fixed.brand_name or 'script'}")
    return AutoFixResult(script=fixed, actions=actions)


def _fix_structure(script: ScriptResult, pack: DomainPack, hints: GroundingHints, actions: list[str]) -> None:
    if len(script.features) > FEATURE_COUNT:
        del script.features[FEATURE_COUNT:]
        actions.append("Trimmed features to 3.")
    if len(script.features) < FEATURE_COUNT:
        plan = build_feature_evidence_plan(hints, FEATURE_COUNT)
        used = {normalize_key(feature.app_name) for feature in script.features}
        spare = [evidence for evidence in plan if normalize_key(evidence.feature_name) not in used]
        while len(script.features) < FEATURE_COUNT:
            index = len(script.features)
            evidence = spare.pop(0) if spare else None
            script.features.append(build_feature(index, None, pack, hints, evidence))
            actions.append(f"Added missing feature {index + 1} from grounded evidence.")

    if len(script.narration_segments) > NARRATION_SEGMENT_COUNT:
        overflow = script.narration_segments[CLOSING_SEGMENT:]
        script.narration_segments[CLOSING_SEGMENT:] = [" ".join(part.strip() for part in overflow if part.strip())]
        actions.append("Merged overflow narration into the closing segment.")
    if pad_narration(script, pack):
        actions.append("Filled missing narration segments.")


def _fix_placeholders(
    script: ScriptResult,
    scraped: ScrapedData,
    hints: GroundingHints,
    pack: DomainPack,
    actions: list[str],
) -> None:
    brand = title_case(scraped.domain_root) or pack.label
    domain = normalize_domain(scraped.domain) or scraped.domain
    filler = pick_grounded_phrase(hints, 0) or pack.label
    substitutions = (
        (re.compile(r"lorem ipsum", re.IGNORECASE), filler),
        (re.compile(r"\btbd\b", re.IGNORECASE), "scheduled"),
        (re.compile(r"insert .*? here", re.IGNORECASE), filler),
        (re.compile(r"your brand", re.IGNORECASE), brand),
        (re.compile(r"example\.com", re.IGNORECASE), domain),
    )

    def scrub(text: str) -> str:
        for pattern, replacement in substitutions:
            text = pattern.sub(replacement, text)
        return text

    changed = _map_text_fields(script, scrub, scrub)
    if changed:
        actions.append("Replaced placeholder text with grounded content.")


def _map_text_fields(script: ScriptResult, on_screen, narration) -> bool:
    """Apply text transforms to every user-visible field. Returns True if anything changed."""
    changed = False
    for attr in ("brand_name", "tagline", "hook_line1", "hook_line2", "hook_keyword", "cta_url"):
        before = getattr(script, attr)
        after = on_screen(before)
        if after != before:
            setattr(script, attr, after)
            changed = True
    for feature in script.features:
        for attr in ("app_name", "caption"):
            before = getattr(feature, attr)
            after = on_screen(before)
            if after != before:
                setattr(feature, attr, after)
                changed = True
        lines = [on_screen(line) for line in feature.demo_lines]
        if lines != feature.demo_lines:
            feature.demo_lines = lines
            changed = True
    integrations = [on_screen(item) for item in script.integrations]
    if integrations != script.integrations:
        script.integrations = integrations
        changed = True
    segments = [narration(segment) for segment in script.narration_segments]
    if segments != script.narration_segments:
        script.narration_segments = segments
        changed = True
    return changed


def _normalize_hook_line(line: str, index: int, hints: GroundingHints, pack: DomainPack) -> str:
    current = " ".join(line.split())
    words = count_words(current)
    if HOOK_MIN_WORDS <= words <= HOOK_MAX_WORDS and (
        has_grounding_signal(current, hints) or not HYPE_PATTERN.search(current)
    ):
        return current

    source = pick_grounded_phrase(hints, index)
    if not source or any(has_whole_phrase(source, term) for term in pack.forbidden_terms):
        source = pack.field_at(index, default=pack.label)
    clean = " ".join(re.sub(r"[^A-Za-z0-9\s]", " ", source).split()[:HOOK_MAX_WORDS])
    if count_words(clean) >= HOOK_MIN_WORDS:
        return clean
    if clean:
        return f"{clean} signal"
    return "move with clarity" if index == 2 else "clear product signal"


def _fix_feature(
    feature: Feature,
    index: int,
    pack: DomainPack,
    hints: GroundingHints,
    actions: list[str],
) -> None:
    canonical = canonicalize_feature_name(feature.app_name or f"Feature {index + 1}", hints, index)
    if canonical != feature.app_name:
        feature.app_name = canonical
        actions.append(f"Normalized feature name for feature {index + 1}.")

    if not feature.caption or count_words(feature.caption) > CAPTION_MAX_WORDS:
        feature.caption = to_max_words(feature.caption or "Clear execution signal", CAPTION_MAX_WORDS)
        actions.append(f"Shortened caption for feature {index + 1}.")

    if not feature.demo_lines:
        feature.demo_lines.append(field_line(pack, 0, index))
        actions.append(f"Added missing demo line for feature {index + 1}.")

    if count_words(" ".join(feature.demo_lines)) < DEMO_MIN_WORDS:
        feature.demo_lines.append(field_line(pack, index, index))
        actions.append(f"Expanded thin demo text for feature {index + 1}.")

    if not has_concrete_signal(" ".join(feature.demo_lines), pack.concrete_fields):
        feature.demo_lines.append(field_line(pack, 0, index))
        feature.demo_lines.append(field_line(pack, 1, index + 1))
        actions.append(f"Injected pack-specific concrete fields for feature {index + 1}.")

    if not hints.is_empty and not has_grounding_signal(" ".join(feature.demo_lines), hints):
        phrase = pick_grounded_phrase(hints, index)
        number = pick_grounded_number(hints, index)
        if phrase:
            feature.demo_lines.append(f"{phrase}: {number}" if number else phrase)
            actions.append(f"Injected grounded source phrase for feature {index + 1}.")


def _fix_integrations(script: ScriptResult, pack: DomainPack, hints: GroundingHints, actions: list[str]) -> None:
    if len(script.integrations) < MIN_INTEGRATIONS:
        needed = MIN_INTEGRATIONS - len(script.integrations)
        script.integrations.extend(pack.fallback_integrations[:needed])
        actions.append("Filled missing integrations using domain pack defaults.")

    canonical = canonicalize_integrations(script.integrations, hints, pack.fallback_integrations, MAX_INTEGRATIONS)
    if canonical != script.integrations:
        script.integrations = canonical
        actions.append("Canonicalized integrations using source and known tools.")

    defaults = {normalize_key(name) for name in pack.fallback_integrations}
    if pack.fallback_integrations and not any(normalize_key(item) in defaults for item in script.integrations):
        if len(script.integrations) >= MAX_INTEGRATIONS:
            script.integrations[-1] = pack.fallback_integrations[0]
        else:
            script.integrations.append(pack.fallback_integrations[0])
        actions.append(f"Added {pack.fallback_integrations[0]} to overlap with pack defaults.")


def _fix_forbidden_terms(script: ScriptResult, pack: DomainPack, actions: list[str]) -> None:
    if not pack.forbidden_terms:
        return
    patterns = [phrase_pattern(term) for term in pack.forbidden_terms]

    def replacer(replacement: str):
        def apply(text: str) -> str:
            for pattern in patterns:
                # Keep the leading boundary character captured by the pattern
                text = pattern.sub(lambda m: m.group(1) + replacement, text)
            return text
        return apply

    if _map_text_fields(script, replacer(ON_SCREEN_REPLACEMENT), replacer(NARRATION_REPLACEMENT)):
        actions.append(f"Replaced domain mismatch terms for pack {pack.id}.")


def _fix_narration(script: ScriptResult, pack: DomainPack, hints: GroundingHints, actions: list[str]) -> None:
    for i in range(FIRST_FEATURE_SEGMENT, FIRST_FEATURE_SEGMENT + FEATURE_COUNT + 1):
        segment = script.narration_segments[i]
        if not segment or has_grounding_signal(segment, hints):
            continue
        phrase = pick_grounded_phrase(hints, i)
        if phrase:
            script.narration_segments[i] = f"{segment} {phrase}.".strip()
            actions.append(f"Grounded narration segment {i + 1}.")

    before = count_words(script.narration)
    script.narration_segments = rebalance_narration(script.narration_segments, pack)
    after = count_words(script.narration)
    if after != before:
        actions.append(f"Rebalanced narration from {before} to {after} words.")


def rebalance_narration(segments: list[str], pack: DomainPack) -> list[str]:
    """
    Bring narration toward 100-140 words.
    Long narration is cut to per-segment caps first, then short narration gets booster sentences.
    """
    result = list(segments)
    if count_words(" ".join(result)) > NARRATION_MAX_WORDS:
        result = [_cap_words(segment, SEGMENT_WORD_CAPS[i]) if i < len(SEGMENT_WORD_CAPS) else segment
                  for i, segment in enumerate(result)]

    boosters = (
        f"This keeps {pack.field_at(0, default='signal')} visible while priorities change.",
        f"Teams move faster because {pack.field_at(1, default='updates')} stay structured.",
    )
    boosts = 0
    while count_words(" ".join(result)) < NARRATION_MIN_WORDS and boosts < MAX_BOOSTS:
        target = FIRST_FEATURE_SEGMENT + (boosts % 4)
        if target >= len(result):
            break
        result[target] = f"{result[target]} {boosters[boosts % len(boosters)]}".strip()
        boosts += 1
    return result


def _cap_words(text: str, max_words: int) -> str:
    words = text.split()
    if len(words) <= max_words:
        return text.strip()
    return " ".join(words[:max_words]).rstrip(",.!?;:") + "."
