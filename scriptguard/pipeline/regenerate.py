"""
Section regenerator - rebuilds one script section from grounding evidence.
Also holds the narration and demo-line builders shared with autofix.
"""
import logging
import re
from typing import Optional, Union

from ..models.packs import DomainPack
from ..models.quality import FeatureEvidence, GroundingHints
from ..models.scraped import ScrapedData
from ..models.script import (
    CLOSING_SEGMENT,
    FEATURE_COUNT,
    FIRST_FEATURE_SEGMENT,
    NARRATION_SEGMENT_COUNT,
    WORDMARK_SEGMENT,
    Feature,
    RegenerateSectionResult,
    ScriptResult,
    Section,
)
from .grounding import (
    build_feature_evidence_plan,
    clean_feature_name,
    pick_grounded_number,
    pick_grounded_phrase,
)
from .text import count_words, normalize_domain


logger = logging.getLogger(__name__)


def sample_value(field: str, seed: int) -> str:
    """Plausible demo value for a concrete field."""
    key = field.lower()
    n = (seed % 5) + 1
    if "patch" in key:
        return f"14.{n}"
    if "win" in key:
        return f"{52 + n}.{n}%"
    if "rank" in key:
        return f"Top {n * 100}"
    if "conversion" in key:
        return f"{round(2 + n * 0.4, 1):g}%"
    if "engagement" in key:
        return f"{round(5 + n * 0.9, 1):g}%"
    if "build" in key:
        return f"Variant {chr(64 + n)}"
    if "status" in key:
        return ("Ready", "In Progress", "Blocked")[seed % 3]
    if "priority" in key:
        return ("P0", "P1", "P2")[seed % 3]
    if "sla" in key:
        return f"{2 + n}h"
    if "order" in key:
        return f"#ORD-{4200 + n}"
    if "risk" in key:
        return f"{60 + n * 5}/100"
    if "eta" in key:
        return f"{10 + n} min"
    return f"{field} {n}"


def field_line(pack: DomainPack, field_index: int, seed: int, value: Optional[str] = None) -> str:
    field = pack.field_at(field_index)
    return f"{field}: {value or sample_value(field, seed)}"


def to_hook_words(value: str, max_words: int) -> str:
    words = re.sub(r"[^A-Za-z0-9\s]", " ", value).split()[:max_words]
    if not words:
        return ""
    if len(words) == 1:
        return f"{words[0]} signal"
    return " ".join(words)


def to_caption(value: str) -> str:
    words = re.sub(r"[^A-Za-z0-9\s]", " ", value).split()[:5]
    if len(words) < 2:
        return "Execution signal"
    return " ".join(words)


def hook_narration(script: ScriptResult) -> list[str]:
    return [
        f"Start with {script.hook_line1}.",
        f"{script.hook_line2} keeps teams aligned while priorities change.",
        f"Meet {script.brand_name}, where {script.hook_keyword}.",
    ]


def feature_narration(feature: Feature, pack: DomainPack) -> str:
    field = pack.field_at(0, default="key signals").lower()
    demo = feature.demo_lines[0].lower() if feature.demo_lines else "live updates"
    return f"{feature.app_name} keeps {field} visible with {demo}."


def integrations_narration(script: ScriptResult) -> str:
    if script.integrations:
        return f"{script.brand_name} connects with {', '.join(script.integrations[:3])}."
    return "Everything stays connected across the tools you already use."


def cta_narration(script: ScriptResult) -> str:
    return f"See {script.brand_name} in action at {script.cta_url}."


def default_segment(script: ScriptResult, index: int, pack: DomainPack) -> str:
    """Generated narration for a missing segment slot."""
    if index < FIRST_FEATURE_SEGMENT:
        return hook_narration(script)[index]
    if index < FIRST_FEATURE_SEGMENT + FEATURE_COUNT:
        feature_index = index - FIRST_FEATURE_SEGMENT
        if feature_index < len(script.features):
            return feature_narration(script.features[feature_index], pack)
        return f"This keeps {pack.field_at(feature_index).lower()} visible while priorities change."
    if index < CLOSING_SEGMENT:
        return integrations_narration(script)
    return cta_narration(script)


def pad_narration(script: ScriptResult, pack: DomainPack) -> bool:
    """Fill missing segment slots in place. Returns True if anything was added."""
    added = False
    while len(script.narration_segments) < NARRATION_SEGMENT_COUNT:
        index = len(script.narration_segments)
        script.narration_segments.append(default_segment(script, index, pack))
        added = True
    return added


def build_feature(
    index: int,
    previous: Optional[Feature],
    pack: DomainPack,
    hints: GroundingHints,
    evidence: Optional[FeatureEvidence],
) -> Feature:
    """Feature from grounding evidence: grounded phrase plus three field/value lines."""
    if previous and pack.allows_icon(previous.icon):
        icon = previous.icon
    else:
        icon = pack.allowed_icons[index % len(pack.allowed_icons)] if pack.allowed_icons else "generic"

    phrase = pick_grounded_phrase(hints, index)
    if evidence:
        app_name = evidence.feature_name
    elif phrase:
        app_name = clean_feature_name(phrase) or f"Feature {index + 1}"
    else:
        app_name = f"Feature {index + 1}"

    lead = (evidence.required_phrases[0] if evidence and evidence.required_phrases else None) or phrase or app_name
    number = (evidence.preferred_number if evidence else None) or pick_grounded_number(hints, index)

    return Feature(
        icon=icon,
        app_name=app_name,
        caption=to_caption(app_name),
        demo_lines=[
            lead,
            field_line(pack, 0, index, number),
            field_line(pack, 1, index + 1),
            field_line(pack, 2, index + 2),
        ],
    )


def compute_scene_weights(segments: list[str]) -> list[int]:
    return [max(2, count_words(segment)) for segment in segments]


def parse_section(value: Union[str, Section]) -> Section:
    """
    Raises:
        ValueError: if the value is not hook, feature1, feature2, feature3 or cta
    """
    if isinstance(value, Section):
        return value
    try:
        return Section(value.strip().lower())
    except ValueError:
        allowed = ", ".join(section.value for section in Section)
        raise ValueError(f"Unknown section '{value}'. Allowed: {allowed}") from None


def regenerate_section(
    script: ScriptResult,
    section: Union[str, Section],
    scraped: ScrapedData,
    pack: DomainPack,
    hints: GroundingHints,
) -> RegenerateSectionResult:
    """
    Regenerate one section of a clone of the script.

    Args:
        script: Source script, left untouched
        section: Section to rebuild
        scraped: Source site facts
        pack: Active domain pack
        hints: Grounding hints for the same snapshot

    Returns:
        RegenerateSectionResult with the rebuilt clone and an action log
    """
    section = parse_section(section)
    next_script = script.clone()
    next_script.domain_pack_id = pack.id
    actions: list[str] = []

    if pad_narration(next_script, pack):
        actions.append("Filled missing narration segments before regeneration.")

    plan = build_feature_evidence_plan(hints, FEATURE_COUNT)

    if section == Section.HOOK:
        sources = []
        for i in range(3):
            if i < len(plan):
                sources.append(plan[i].feature_name)
            else:
                sources.append(pick_grounded_phrase(hints, i) or (sources[-1] if sources else pack.label))
        next_script.hook_line1 = to_hook_words(sources[0], 3) or "product signal"
        next_script.hook_line2 = to_hook_words(sources[1], 3) or "clear updates"
        next_script.hook_keyword = to_hook_words(sources[2], 4) or "move with clarity"
        next_script.narration_segments[:WORDMARK_SEGMENT + 1] = hook_narration(next_script)
        actions.append("Regenerated hook lines and opening narration segments.")

    elif section.feature_index is not None:
        index = section.feature_index
        evidence = plan[index] if index < len(plan) else None
        while len(next_script.features) < index:
            filler = len(next_script.features)
            filler_evidence = plan[filler] if filler < len(plan) else None
            next_script.features.append(build_feature(filler, None, pack, hints, filler_evidence))
        previous = next_script.features[index] if index < len(next_script.features) else None
        rebuilt = build_feature(index, previous, pack, hints, evidence)
        if index < len(next_script.features):
            next_script.features[index] = rebuilt
        else:
            next_script.features.append(rebuilt)
        segment = FIRST_FEATURE_SEGMENT + index
        next_script.narration_segments[segment] = feature_narration(rebuilt, pack)
        actions.append(f"Regenerated {section.value} block and narration segment {segment + 1}.")

    else:
        next_script.cta_url = normalize_domain(scraped.domain) or scraped.domain
        next_script.narration_segments[CLOSING_SEGMENT] = cta_narration(next_script)
        actions.append("Regenerated CTA URL and closing narration segment.")

    next_script.scene_weights = compute_scene_weights(next_script.narration_segments)
    logger.debug(f"Regenerated {section.value}: {len(actions)} actions")
    return RegenerateSectionResult(script=next_script, section=section, actions=actions)
