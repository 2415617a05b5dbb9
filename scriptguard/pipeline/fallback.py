"""
Deterministic fallback script - built from scraped content alone when no
candidate script passes the quality gate.
"""
import logging
import re
from typing import Optional

from ..models.packs import DomainPack
from ..models.quality import TemplateProfile
from ..models.scraped import ScrapedData
from ..models.script import FEATURE_COUNT, Feature, ScriptResult
from .grounding import canonicalize_integration
from .text import count_words, dedupe_by_key, normalize_domain


logger = logging.getLogger(__name__)


DEFAULT_INTEGRATIONS = ("Slack", "Notion", "Google Drive", "GitHub", "Zapier", "HubSpot")

DEFAULT_SEEDS = (
    "Automated workflow handoff",
    "Real-time team visibility",
    "Faster execution across tools",
)

DEFAULT_APP_NAMES = ("Execution Board", "Ops Queue", "Team Timeline")

DEFAULT_DEMO_LINES = (
    ("Owner: Maya", "Due: Friday 4:00 PM", "Priority: High"),
    ("Status: In Progress", "Assigned to: Jordan", "SLA: 2h"),
    ("Revenue: $48.2k", "Conversion: 3.8%", "Action: Launch experiment B"),
)

# Ordered icon rules, first match wins
ICON_RULES = (
    (re.compile(r"mail|inbox|email"), "mail"),
    (re.compile(r"support|ticket|case|help"), "support"),
    (re.compile(r"calendar|schedule|meeting"), "calendar"),
    (re.compile(r"analytics|metrics|revenue|dashboard"), "analytics"),
    (re.compile(r"checkout|order|cart|product|shop"), "commerce"),
    (re.compile(r"code|developer|api"), "code"),
    (re.compile(r"chat|message|conversation"), "chat"),
    (re.compile(r"finance|billing|invoice|payment"), "finance"),
)

NARRATIVE_ADD_ONS = (
    "It keeps teams aligned without adding another layer of overhead.",
    "You can see exactly what to do next, and why it matters now.",
)
DEFAULT_ADD_ONS = (
    "This cuts status churn and shortens the path from planning to delivery.",
    "Everyone sees ownership, risk, and momentum in one operating view.",
)
FALLBACK_SEGMENT_CAPS = (10, 16, 10, 22, 22, 22, 20, 12)


def build_fallback_script(
    scraped: ScrapedData,
    template: TemplateProfile,
    pack: Optional[DomainPack] = None,
) -> ScriptResult:
    """
    Build a complete script from scraped content without any model.

    Args:
        scraped: Source site facts
        template: Template profile used for pacing and narration add-ons
        pack: Active pack, stamped on the script and used for default integrations

    Returns:
        ScriptResult with 3 features and 8 narration segments
    """
    brand_name = infer_brand_name(scraped)
    brand_color = _pick_brand_color(scraped.colors)
    domain = normalize_domain(scraped.domain) or scraped.domain

    features = _build_features(scraped, pack)
    integrations = _build_integrations(scraped, pack)
    segments = _build_narration(brand_name, domain, features, integrations, template)

    # Blend spoken length with the template's pacing hint
    scene_weights = []
    for i, segment in enumerate(segments):
        words = max(2, count_words(segment))
        bias = template.scene_weight_hint[i] if i < len(template.scene_weight_hint) else words
        scene_weights.append(round((words + bias) / 2))

    logger.info(f"Built fallback script for {domain or 'unknown domain'}")
    return ScriptResult(
        brand_name=brand_name,
        brand_url=scraped.domain,
        brand_color=brand_color,
        accent_color=_pick_accent_color(scraped.colors, brand_color),
        tagline=_make_tagline(scraped),
        hook_line1="your workflow",
        hook_line2="is overloaded",
        hook_keyword="ship faster",
        features=features,
        integrations=integrations,
        cta_url=domain,
        narration_segments=segments,
        scene_weights=scene_weights,
        domain_pack_id=pack.id if pack else None,
    )


def infer_brand_name(scraped: ScrapedData) -> str:
    head = re.split(r"[|\-:]", scraped.title)[0].strip()
    if 2 <= len(head) <= 40:
        return head
    root = scraped.domain_root or "brand"
    return root[:1].upper() + root[1:]


def _normalize_hex(color: str) -> Optional[str]:
    if not color.startswith("#"):
        return None
    if len(color) == 4:
        return "#" + "".join(ch * 2 for ch in color[1:]).upper()
    return color[:7].upper()


def _pick_brand_color(colors: list[str]) -> str:
    for color in colors:
        normalized = _normalize_hex(color)
        if normalized:
            return normalized
    return "#111111"


def _pick_accent_color(colors: list[str], brand_color: str) -> str:
    for color in colors:
        normalized = _normalize_hex(color)
        if normalized and normalized.lower() != brand_color.lower():
            return normalized
    return "#2563EB"


def _make_tagline(scraped: ScrapedData) -> str:
    source = (
        scraped.description
        or scraped.og_description
        or (scraped.headings[0] if scraped.headings else "")
        or "Work moves faster here"
    )
    words = re.sub(r"[|,:;.!?]", " ", source).split()[:8]
    if len(words) < 3:
        return "Workflows that move faster"
    return " ".join(words)


def _tokens(value: str) -> set[str]:
    return set(re.sub(r"[^a-z0-9\s]", " ", value.lower()).split())


def _overlap(a: str, b: str) -> float:
    a_tokens, b_tokens = _tokens(a), _tokens(b)
    if not a_tokens or not b_tokens:
        return 0.0
    return len(a_tokens & b_tokens) / min(len(a_tokens), len(b_tokens))


def _pick_distinct_seeds(seeds: list[str], count: int) -> list[str]:
    out: list[str] = []
    for seed in seeds:
        if any(_overlap(existing, seed) > 0.7 for existing in out):
            continue
        out.append(seed)
        if len(out) >= count:
            break
    return out


def _infer_icon(seed: str, pack: Optional[DomainPack]) -> str:
    text = seed.lower()
    icon = next((name for pattern, name in ICON_RULES if pattern.search(text)), "generic")
    if pack and not pack.allows_icon(icon):
        return pack.allowed_icons[0] if pack.allowed_icons else "generic"
    return icon


def _build_features(scraped: ScrapedData, pack: Optional[DomainPack]) -> list[Feature]:
    seeds = _pick_distinct_seeds([f for f in scraped.features if len(f) > 20][:12], FEATURE_COUNT)
    while len(seeds) < FEATURE_COUNT:
        seeds.append(DEFAULT_SEEDS[len(seeds)])

    features = []
    for index, seed in enumerate(seeds):
        words = re.sub(r"[^A-Za-z0-9\s]", " ", seed).split()
        app_name = " ".join(words[:2])
        if len(app_name) < 3:
            app_name = DEFAULT_APP_NAMES[index]
        caption = " ".join(words[:4]) if len(words) >= 2 else "Faster team execution"
        first_line = f"{seed[:57]}..." if len(seed) > 60 else seed
        features.append(Feature(
            icon=_infer_icon(seed, pack),
            app_name=app_name,
            caption=caption,
            demo_lines=[first_line, *DEFAULT_DEMO_LINES[index]],
        ))
    return features


def _build_integrations(scraped: ScrapedData, pack: Optional[DomainPack]) -> list[str]:
    from_links = []
    for entry in scraped.links:
        resolved = canonicalize_integration(entry.split(":")[0].strip())
        if resolved:
            from_links.append(resolved)
    defaults = pack.fallback_integrations if pack else ()
    return dedupe_by_key([*from_links[:12], *defaults, *DEFAULT_INTEGRATIONS])[:6]


def _build_narration(
    brand_name: str,
    cta_url: str,
    features: list[Feature],
    integrations: list[str],
    template: TemplateProfile,
) -> list[str]:
    segments = [
        "Why do teams still lose momentum after great planning?",
        "Your workflow is overloaded, updates are scattered, and execution slows when context gets fragmented.",
        f"Meet {brand_name}. A clearer way to execute.",
        f"{features[0].app_name} keeps critical work visible with clear ownership, priority, and next action "
        "so decisions turn into shipping steps faster.",
        f"{features[1].app_name} removes handoff friction by capturing context where work happens, "
        "so teams can resolve blockers before timelines slip.",
        f"{features[2].app_name} gives live performance signals and concrete metrics, "
        "helping you focus on outcomes that move conversion and retention.",
        f"It plugs into {', '.join(integrations[:3])} and your existing stack, "
        "so adoption is fast and workflows stay intact.",
        f"Launch faster with {brand_name} at {cta_url}.",
    ]

    add_ons = NARRATIVE_ADD_ONS if template.id == "founder-story" else DEFAULT_ADD_ONS
    i = 0
    while count_words(" ".join(segments)) < 100 and i < 10:
        target = 3 + (i % 4)
        segments[target] = f"{segments[target]} {add_ons[i % len(add_ons)]}"
        i += 1

    if count_words(" ".join(segments)) > 140:
        for idx, cap in enumerate(FALLBACK_SEGMENT_CAPS):
            words = segments[idx].split()
            if len(words) > cap:
                segments[idx] = " ".join(words[:cap]).rstrip(",.!?;:") + "."
    return segments
