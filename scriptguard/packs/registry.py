"""
Domain pack table.
Each pack defines vocabulary, allowed icons, forbidden terms and defaults for a content family.
"""
from ..models.packs import DomainPack, PromotionSegment


GENERAL_PACK_ID = "general"

# Generic words that must not dominate classification
KEYWORD_WEIGHTS: dict[str, float] = {
    "product": 0.4,
    "platform": 0.4,
    "service": 0.4,
    "solution": 0.4,
    "experience": 0.4,
    "team": 0.45,
    "teams": 0.45,
}

FEATURE_ICONS = (
    "mail", "ai", "social", "code", "calendar", "analytics", "chat",
    "commerce", "finance", "health", "support", "docs", "media", "generic",
)

_PACKS = [
    DomainPack(
        id=GENERAL_PACK_ID,
        label="General Product",
        description="Strong fallback for unknown or mixed domains.",
        preferred_template="founder-story",
        keywords=("product", "platform", "service", "solution", "experience"),
        allowed_icons=("generic", "chat", "docs", "media", "analytics", "support", "calendar"),
        concrete_fields=("Status", "Update", "Milestone", "Next Step", "Result"),
        fallback_integrations=("Slack", "Notion", "Google Drive"),
        script_style_hint="Use neutral product language. Avoid jargon the source copy does not use.",
    ),
    DomainPack(
        id="b2b-saas",
        label="B2B SaaS",
        description="B2B workflow and operations products.",
        preferred_template="yc-saas",
        keywords=("workflow", "automation", "team", "ops", "crm", "pipeline", "dashboard", "platform", "enterprise"),
        allowed_icons=("analytics", "chat", "docs", "calendar", "support", "code", "ai", "generic"),
        forbidden_terms=("jackpot", "odds board", "tier comp"),
        concrete_fields=("Owner", "Status", "Priority", "SLA", "Ticket"),
        fallback_integrations=("Slack", "Notion", "HubSpot", "Zapier"),
        script_style_hint="Emphasize workflow clarity, cycle time and operational outcomes.",
        segment=PromotionSegment.CORE_ICP,
    ),
    DomainPack(
        id="devtools",
        label="Developer Tools",
        description="Products for software teams and developer workflows.",
        preferred_template="yc-saas",
        keywords=("api", "sdk", "repository", "deploy", "build", "observability", "ci", "cloud", "code", "runtime"),
        negative_keywords=("champion", "tier list"),
        allowed_icons=("code", "analytics", "docs", "chat", "ai", "support", "generic"),
        forbidden_terms=("patient", "booking engine", "jackpot"),
        concrete_fields=("Build", "Latency", "Error Rate", "Deploy", "Incident"),
        fallback_integrations=("GitHub", "Vercel", "Sentry", "Linear"),
        script_style_hint="Technical but accessible. Mention deploys, errors and latency.",
        segment=PromotionSegment.CORE_ICP,
    ),
    DomainPack(
        id="ecommerce-retail",
        label="Ecommerce & Retail",
        description="D2C, retail, and commerce operations.",
        preferred_template="product-demo",
        keywords=("cart", "checkout", "order", "inventory", "sku", "catalog", "store", "shop", "shipping", "merchandise"),
        allowed_icons=("commerce", "analytics", "support", "chat", "finance", "calendar", "media", "generic"),
        forbidden_terms=("patient", "deploy pipeline", "ranked comp"),
        concrete_fields=("Order", "Conversion", "AOV", "Stock", "Fulfillment"),
        fallback_integrations=("Shopify", "Stripe", "Klaviyo", "Zendesk"),
        script_style_hint="Focus on conversion, merchandising, inventory velocity and retention.",
    ),
    DomainPack(
        id="fintech",
        label="Fintech",
        description="Payments, banking, risk, or finance workflows.",
        preferred_template="yc-saas",
        keywords=("payment", "ledger", "bank", "fraud", "compliance", "risk", "invoice", "billing", "transaction", "treasury"),
        allowed_icons=("finance", "analytics", "docs", "support", "chat", "calendar", "generic"),
        forbidden_terms=("patient", "loot", "tier list"),
        concrete_fields=("Txn Volume", "Risk Score", "Settlement", "Dispute", "Cash Flow"),
        fallback_integrations=("Stripe", "Plaid", "QuickBooks", "Salesforce"),
        script_style_hint="Measured language. Prioritize trust, control and auditable workflows.",
        segment=PromotionSegment.CORE_ICP,
    ),
    DomainPack(
        id="gaming",
        label="Gaming & Esports",
        description="Competitive gaming, game analytics, community strategy tools.",
        preferred_template="product-demo",
        keywords=("patch", "meta", "tier list", "ranked", "champion", "build", "esports", "guide", "comp", "win rate"),
        negative_keywords=("invoice", "ledger"),
        allowed_icons=("media", "social", "chat", "analytics", "docs", "calendar", "generic"),
        forbidden_terms=(
            "pipeline ops",
            "patient",
            "invoice approval",
            "crm handoff",
            "ownership and status",
            "planning and execution",
            "status churn",
        ),
        concrete_fields=("Patch", "Win Rate", "Rank", "Meta Shift", "Comp"),
        fallback_integrations=("Discord", "Twitch", "YouTube", "Riot Games"),
        script_style_hint="Gameplay and competitive language: patches, ranks, comps, meta movement.",
    ),
    DomainPack(
        id="media-creator",
        label="Media & Creator",
        description="Content production, creator workflows, and publishing tools.",
        preferred_template="founder-story",
        keywords=("creator", "content", "audience", "channel", "video", "podcast", "newsletter", "publish", "engagement"),
        allowed_icons=("media", "analytics", "social", "chat", "calendar", "docs", "generic"),
        forbidden_terms=("ehr", "warehousing", "incident response"),
        concrete_fields=("Views", "Retention", "Publish Date", "CTR", "Engagement"),
        fallback_integrations=("YouTube", "TikTok", "Instagram", "Substack"),
        script_style_hint="Center the creator loop: ideation, production, distribution, audience growth.",
    ),
    DomainPack(
        id="education",
        label="Education & Learning",
        description="Edtech, courses, tutoring, and learning operations.",
        preferred_template="founder-story",
        keywords=("student", "curriculum", "course", "lesson", "learning", "assessment", "teacher", "classroom", "academy"),
        allowed_icons=("docs", "calendar", "analytics", "chat", "media", "support", "generic"),
        forbidden_terms=("jackpot", "warehouse slot", "payment fraud"),
        concrete_fields=("Module", "Completion", "Quiz Score", "Cohort", "Attendance"),
        fallback_integrations=("Google Classroom", "Canvas", "Zoom", "Notion"),
        script_style_hint="Learner outcomes and progress framing, concrete and instructional.",
    ),
    DomainPack(
        id="real-estate",
        label="Real Estate",
        description="Brokerage, listings, and property operations.",
        preferred_template="product-demo",
        keywords=("listing", "property", "broker", "agent", "showing", "escrow", "mortgage", "rental", "tenant"),
        allowed_icons=("calendar", "analytics", "docs", "chat", "finance", "support", "generic"),
        forbidden_terms=("patient chart", "comp reroll", "git commit"),
        concrete_fields=("Listing", "Showing", "Offer", "Close Date", "Occupancy"),
        fallback_integrations=("Zillow", "Redfin", "DocuSign", "Calendly"),
        script_style_hint="Speed-to-close, listing quality and client communication.",
    ),
    DomainPack(
        id="travel-hospitality",
        label="Travel & Hospitality",
        description="Booking, guest operations, and hospitality coordination.",
        preferred_template="product-demo",
        keywords=("booking", "guest", "reservation", "itinerary", "hotel", "travel", "check-in", "property management"),
        allowed_icons=("calendar", "support", "chat", "analytics", "commerce", "media", "generic"),
        forbidden_terms=("patient intake", "git deploy", "tier comp"),
        concrete_fields=("Reservation", "Occupancy", "ADR", "Arrival", "Check-in"),
        fallback_integrations=("Booking.com", "Airbnb", "Expedia", "Stripe"),
        script_style_hint="Guest experience, booking conversion and operational responsiveness.",
    ),
    DomainPack(
        id="logistics-ops",
        label="Logistics & Operations",
        description="Supply chain, delivery, and field operations.",
        preferred_template="yc-saas",
        keywords=("shipment", "warehouse", "fleet", "route", "fulfillment", "delivery", "inventory movement", "dispatch"),
        allowed_icons=("analytics", "calendar", "support", "chat", "docs", "commerce", "generic"),
        forbidden_terms=("patient diagnosis", "loot odds", "creator sponsorship"),
        concrete_fields=("ETA", "Route", "Shipment", "On-time", "Capacity"),
        fallback_integrations=("ShipStation", "UPS", "FedEx", "SAP"),
        script_style_hint="Throughput, ETA confidence and reliability under load.",
    ),
    DomainPack(
        id="social-community",
        label="Social & Community",
        description="Community platforms, social engagement, and moderation workflows.",
        preferred_template="founder-story",
        keywords=("community", "member", "social", "moderation", "engagement", "forum", "creator network", "discussion"),
        allowed_icons=("social", "chat", "media", "analytics", "support", "calendar", "generic"),
        forbidden_terms=("ehr", "shipping manifest", "tax ledger"),
        concrete_fields=("Members", "Posts", "Engagement", "Response Time", "Flagged"),
        fallback_integrations=("Discord", "Reddit", "X", "Telegram"),
        script_style_hint="Community health, engagement loops and moderation clarity.",
    ),
]

DOMAIN_PACKS: dict[str, DomainPack] = {pack.id: pack for pack in _PACKS}
DOMAIN_PACK_IDS: list[str] = list(DOMAIN_PACKS)


def get_domain_pack(pack_id: str) -> DomainPack:
    """
    Look up a pack by id.

    Raises:
        ValueError: if the id is not a known pack
    """
    try:
        return DOMAIN_PACKS[pack_id]
    except KeyError:
        raise ValueError(
            f"Unknown domain pack '{pack_id}'. Allowed: {', '.join(DOMAIN_PACK_IDS)}"
        ) from None


def keyword_weight(keyword: str) -> float:
    return KEYWORD_WEIGHTS.get(keyword.lower().strip(), 1.0)
