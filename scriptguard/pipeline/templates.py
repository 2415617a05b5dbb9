"""
Template profiles - video templates with per-scene pacing hints.
"""
import logging
from typing import Optional

from ..models.packs import DomainPack
from ..models.quality import TemplateProfile, TemplateSelection
from ..models.scraped import ScrapedData


logger = logging.getLogger(__name__)


TEMPLATE_PROFILES: dict[str, TemplateProfile] = {
    "yc-saas": TemplateProfile(
        id="yc-saas",
        label="YC SaaS Intro",
        description="High-clarity B2B/productivity launch style with concrete workflow value.",
        scene_weight_hint=(5, 6, 3, 7, 7, 7, 8, 6),
    ),
    "product-demo": TemplateProfile(
        id="product-demo",
        label="Product Demo",
        description="Commerce and product-centric demo showing customer journey and conversion moments.",
        scene_weight_hint=(4, 5, 3, 8, 8, 7, 7, 7),
    ),
    "founder-story": TemplateProfile(
        id="founder-story",
        label="Founder Story",
        description="Narrative framing around mission and differentiation while staying product-concrete.",
        scene_weight_hint=(6, 6, 4, 7, 7, 6, 6, 8),
    ),
}

PRODUCT_DEMO_TERMS = (
    "shop", "store", "checkout", "cart", "order", "orders", "inventory", "sku",
    "catalog", "commerce", "retail", "payments", "shipping",
)
FOUNDER_TERMS = (
    "founder", "our story", "journey", "mission", "vision", "creator", "team",
    "craft", "indie", "bootstrapped",
)
SAAS_TERMS = (
    "api", "workflow", "integrations", "platform", "automation", "developer", "team",
    "project", "ops", "dashboard", "productivity",
)

MIN_SIGNAL = 3


def get_template_profile(template_id: str) -> TemplateProfile:
    """
    Raises:
        ValueError: if the template id is unknown
    """
    try:
        return TEMPLATE_PROFILES[template_id]
    except KeyError:
        raise ValueError(
            f"Unknown template '{template_id}'. Allowed: {', '.join(TEMPLATE_PROFILES)}"
        ) from None


def select_template(
    scraped: ScrapedData,
    requested: Optional[str] = "auto",
    pack: Optional[DomainPack] = None,
) -> TemplateSelection:
    """
    Pick a template from site vocabulary.
    When neither commerce nor narrative signals are strong, the pack's preferred
    template wins over the yc-saas default.
    """
    if requested and requested != "auto":
        return TemplateSelection(
            profile=get_template_profile(requested),
            reason=f"Selected by explicit template={requested}",
        )

    haystack = " ".join([
        scraped.domain,
        scraped.title,
        scraped.description,
        scraped.og_title,
        scraped.og_description,
        *scraped.headings,
        *scraped.features,
    ]).lower()

    product_score = _count_matches(haystack, PRODUCT_DEMO_TERMS)
    founder_score = _count_matches(haystack, FOUNDER_TERMS)
    saas_score = _count_matches(haystack, SAAS_TERMS)

    if product_score >= MIN_SIGNAL and product_score >= founder_score:
        return TemplateSelection(
            profile=TEMPLATE_PROFILES["product-demo"],
            reason=f"Auto-selected product-demo from commerce signals (score {product_score})",
        )

    if founder_score >= MIN_SIGNAL and founder_score > saas_score:
        return TemplateSelection(
            profile=TEMPLATE_PROFILES["founder-story"],
            reason=f"Auto-selected founder-story from narrative signals (score {founder_score})",
        )

    if pack and saas_score < MIN_SIGNAL and pack.preferred_template in TEMPLATE_PROFILES:
        return TemplateSelection(
            profile=TEMPLATE_PROFILES[pack.preferred_template],
            reason=f"Selected {pack.preferred_template} preferred by pack {pack.id} (weak template signals)",
        )

    return TemplateSelection(
        profile=TEMPLATE_PROFILES["yc-saas"],
        reason=f"Auto-selected yc-saas as default B2B template (saas score {saas_score})",
    )


def _count_matches(text: str, terms: tuple[str, ...]) -> int:
    return sum(1 for term in terms if term in text)
