"""
Labelled site snapshots for evaluating pack classification.
"""
from pydantic import BaseModel, Field

from .models.scraped import ScrapedData


class PackFixture(BaseModel):
    id: str
    expected_pack: str
    min_confidence: float = Field(default=0, ge=0, le=1)
    scraped: ScrapedData


def make_scraped(
    domain: str,
    title: str,
    description: str,
    headings: list[str],
    features: list[str],
    body_text: str,
    links: list[str],
) -> ScrapedData:
    return ScrapedData(
        url=f"https://{domain}",
        title=title,
        description=description,
        og_title=title,
        og_description=description,
        headings=headings,
        features=features,
        body_text=body_text,
        links=links,
        domain=domain,
    )


PACK_FIXTURES: list[PackFixture] = [
    PackFixture(
        id="b2b-saas-ops-dash",
        expected_pack="b2b-saas",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="opspilot.io",
            title="OpsPilot - Workflow automation for enterprise teams",
            description="Track SLA, ticket ownership, and CRM handoffs in one platform.",
            headings=["Automate team workflows", "Pipeline and dashboard visibility"],
            features=["Route tickets by priority", "Monitor SLA breaches", "Coordinate enterprise ops"],
            body_text=(
                "OpsPilot helps operations teams manage workflow execution, automate approvals, "
                "and reduce cycle time across pipeline stages."
            ),
            links=["HubSpot integration: /integrations/hubspot", "Slack alerts: /integrations/slack"],
        ),
    ),
    PackFixture(
        id="devtools-api-runtime",
        expected_pack="devtools",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="runtimeforge.dev",
            title="RuntimeForge API observability for cloud services",
            description="Ship faster with SDK traces, CI checks, and deploy insights.",
            headings=["Debug latency in production", "Code level traces and incident context"],
            features=["Track API error rate", "Deploy with confidence", "Integrate with GitHub and Sentry"],
            body_text=(
                "Engineering teams use RuntimeForge to inspect runtime behavior, monitor build health, "
                "and resolve incidents from one observability workspace."
            ),
            links=["GitHub App: /github", "Sentry Sync: /sentry"],
        ),
    ),
    PackFixture(
        id="ecommerce-checkout-ops",
        expected_pack="ecommerce-retail",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="cartnative.com",
            title="CartNative boosts checkout conversion for D2C stores",
            description="Manage catalog, stock, order flow, and fulfillment from one retail dashboard.",
            headings=["Improve checkout completion", "Track SKU inventory health"],
            features=["AOV insights by campaign", "Low stock alerts", "Recover abandoned cart"],
            body_text=(
                "Retail teams optimize merchandising, shipping, and conversion with daily order "
                "analytics and demand trends."
            ),
            links=["Shopify app: /shopify", "Stripe payments: /stripe"],
        ),
    ),
    PackFixture(
        id="fintech-risk-ledger",
        expected_pack="fintech",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="ledgerguard.ai",
            title="LedgerGuard payment risk and compliance platform",
            description="Reconcile transaction data, monitor fraud, and control settlement workflows.",
            headings=["Audit ready ledger controls", "Risk score on every transaction"],
            features=["Invoice and billing automation", "Dispute workflow tracking", "Treasury visibility"],
            body_text=(
                "Finance operators use LedgerGuard to reduce reconciliation errors, detect fraud patterns, "
                "and keep compliance evidence centralized."
            ),
            links=["Plaid connector: /plaid", "QuickBooks sync: /quickbooks"],
        ),
    ),
    PackFixture(
        id="gaming-meta-patch",
        expected_pack="gaming",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="metaarena.gg",
            title="MetaArena tier list and patch tracker for ranked players",
            description="Analyze comp win rate shifts and champion builds after each patch.",
            headings=["Daily meta updates", "Best comps for your rank"],
            features=["Patch 14.4 breakdown", "Guide videos by challenger coaches", "Ranked comp explorer"],
            body_text=(
                "Players review patch notes, compare win rate by comp, and prep for tournament weekend "
                "with up to date strategy data."
            ),
            links=["Discord community: /discord", "Twitch VODs: /twitch"],
        ),
    ),
    PackFixture(
        id="media-creator-channel-ops",
        expected_pack="media-creator",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="channelloop.co",
            title="ChannelLoop for creator content operations",
            description="Plan videos, track audience retention, and publish to every channel.",
            headings=["Creator workflow from idea to publish", "Content performance by audience segment"],
            features=["Video publish calendar", "Retention and CTR trends", "Newsletter and podcast sync"],
            body_text=(
                "ChannelLoop helps creators systematize production and distribution while monitoring "
                "engagement across each platform."
            ),
            links=["YouTube publishing: /youtube", "Substack distribution: /substack"],
        ),
    ),
    PackFixture(
        id="education-course-progress",
        expected_pack="education",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="cohortpath.edu",
            title="CohortPath learning platform for schools and academies",
            description="Track student progress, lesson completion, and assessment outcomes.",
            headings=["Curriculum planning tools", "Classroom analytics for teachers"],
            features=["Quiz score dashboard", "Cohort attendance tracking", "Module completion alerts"],
            body_text=(
                "Education teams manage courses, assignments, and learning milestones while helping "
                "students stay on track through each lesson."
            ),
            links=["Canvas integration: /canvas", "Zoom classes: /zoom"],
        ),
    ),
    PackFixture(
        id="real-estate-listing-pipeline",
        expected_pack="real-estate",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="closergrid.com",
            title="CloserGrid for modern real estate broker teams",
            description="Manage listings, showings, and escrow updates in a single system.",
            headings=["Move from listing to close faster", "Offer and occupancy visibility"],
            features=["Showing schedule board", "Offer tracker by property", "Close date reminders"],
            body_text=(
                "Agents and brokers coordinate documents, buyer communication, and listing activity "
                "to improve close rate and response time."
            ),
            links=["Zillow feed sync: /zillow", "DocuSign workflow: /docusign"],
        ),
    ),
    PackFixture(
        id="travel-hospitality-guest-ops",
        expected_pack="travel-hospitality",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="guestlane.travel",
            title="GuestLane booking and reservation operations",
            description="Increase occupancy with better itinerary, check in, and guest messaging.",
            headings=["Reservation intelligence", "Arrival and check in coordination"],
            features=["ADR and occupancy dashboard", "Guest support inbox", "Booking conversion funnel"],
            body_text=(
                "Hospitality teams manage reservations, guest communication, and stay operations "
                "with reliable property level insights."
            ),
            links=["Airbnb channel manager: /airbnb", "Expedia sync: /expedia"],
        ),
    ),
    PackFixture(
        id="logistics-dispatch-eta",
        expected_pack="logistics-ops",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="routepulse.io",
            title="RoutePulse dispatch and shipment orchestration",
            description="Plan routes, track ETA confidence, and optimize warehouse throughput.",
            headings=["Fleet and delivery control center", "On time shipment performance"],
            features=["Dispatch board by route", "Capacity utilization analytics", "Fulfillment delay alerts"],
            body_text=(
                "Operations leaders coordinate shipment movement across warehouses and carriers "
                "while reducing missed delivery windows."
            ),
            links=["FedEx connector: /fedex", "UPS connector: /ups"],
        ),
    ),
    PackFixture(
        id="social-community-moderation",
        expected_pack="social-community",
        min_confidence=0.5,
        scraped=make_scraped(
            domain="tribehub.social",
            title="TribeHub community platform with moderation workflows",
            description="Grow member engagement while keeping discussion quality healthy.",
            headings=["Community engagement analytics", "Moderation queue and response times"],
            features=["Flagged post triage", "Member activity score", "Discussion health dashboard"],
            body_text=(
                "Community teams run social spaces with clear moderation policies, fast member support, "
                "and measurable engagement loops."
            ),
            links=["Discord bridge: /discord", "Telegram sync: /telegram"],
        ),
    ),
    PackFixture(
        id="general-ambiguous-product",
        expected_pack="general",
        scraped=make_scraped(
            domain="northstarapp.com",
            title="Northstar - one platform for better product experiences",
            description="Align your team around outcomes, communication, and execution.",
            headings=["Plan and build faster", "Connect teams across workstreams"],
            features=["Unified workspace", "Cross functional visibility", "AI assistant"],
            body_text="Northstar helps teams launch projects and track progress with one simple product experience.",
            links=["Contact sales: /contact", "Read docs: /docs"],
        ),
    ),
    PackFixture(
        id="general-mixed-signals",
        expected_pack="general",
        scraped=make_scraped(
            domain="allflow.one",
            title="Allflow for teams, customers, and operations",
            description="From engagement to analytics, run everything in one place.",
            headings=["Create workflows", "Track metrics", "Share updates"],
            features=["Automation builder", "Dashboards", "Messaging"],
            body_text=(
                "Allflow combines project planning, reporting, and communication for companies "
                "with mixed workflows."
            ),
            links=["Overview: /overview", "Pricing: /pricing"],
        ),
    ),
    PackFixture(
        id="general-minimal-site",
        expected_pack="general",
        scraped=make_scraped(
            domain="simplelaunch.page",
            title="SimpleLaunch",
            description="Coming soon.",
            headings=["Build something great"],
            features=["Join waitlist"],
            body_text="SimpleLaunch helps founders go from idea to launch.",
            links=["Join waitlist: /waitlist"],
        ),
    ),
]
