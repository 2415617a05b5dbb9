"""
Shared fixtures: a labelled site snapshot, a passing script for it, and a file store.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from scriptguard.config import reset_config
from scriptguard.fixtures import make_scraped
from scriptguard.models.jobs import JobOptions, JobRecord
from scriptguard.models.packs import PromotionSegment
from scriptguard.models.scraped import ScrapedData
from scriptguard.models.script import Feature, ScriptResult
from scriptguard.models.versions import JobStatus, VersionArtifacts, VersionMode
from scriptguard.packs import get_domain_pack
from scriptguard.storage import ProjectStore


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Each test sees default configuration."""
    for name in (
        "SCRIPTGUARD_MIN_QUALITY",
        "SCRIPTGUARD_MAX_WARNINGS",
        "SCRIPTGUARD_STRICT",
        "SCRIPTGUARD_TARGET_SCORE",
        "SCRIPTGUARD_MIN_CONFIDENCE",
        "SCRIPTGUARD_WATCHDOG_INTERVAL",
        "SCRIPTGUARD_OUTPUT_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def saas_scraped() -> ScrapedData:
    """B2B workflow product snapshot."""
    return make_scraped(
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
    )


@pytest.fixture
def saas_pack():
    return get_domain_pack("b2b-saas")


@pytest.fixture
def good_script() -> ScriptResult:
    """A script that passes the gate for saas_scraped with no warnings."""
    return ScriptResult(
        brand_name="OpsPilot",
        brand_url="opspilot.io",
        tagline="Workflow automation for enterprise teams",
        hook_line1="Tickets pile up",
        hook_line2="SLAs slip quietly",
        hook_keyword="Route work faster",
        features=[
            Feature(
                icon="support",
                app_name="Ticket Router",
                caption="Route tickets by priority",
                demo_lines=["Ticket #4821 routed to Maya", "Priority: P1", "SLA: 3h"],
            ),
            Feature(
                icon="analytics",
                app_name="SLA Monitor",
                caption="Monitor SLA breaches live",
                demo_lines=["SLA breach risk: 2 tickets", "Owner: Jordan", "Status: In Progress"],
            ),
            Feature(
                icon="docs",
                app_name="CRM Handoffs",
                caption="Coordinate CRM handoffs",
                demo_lines=["HubSpot deal moved to onboarding", "Owner: Priya", "Due: Friday"],
            ),
        ],
        integrations=["HubSpot", "Slack", "Zapier"],
        cta_url="opspilot.io",
        narration_segments=[
            "Support queues grow faster than teams can triage them.",
            "Tickets bounce between owners, SLAs slip, and nobody sees the full pipeline.",
            "Meet OpsPilot, workflow automation built for enterprise operations teams.",
            "Ticket Router assigns every request by priority, so the right owner picks it up "
            "within minutes instead of hours.",
            "SLA Monitor flags breaches before they happen and shows which tickets need attention right away.",
            "CRM Handoffs keep sales and operations aligned, moving every deal into onboarding "
            "with clear ownership and status.",
            "OpsPilot connects with HubSpot, Slack, and Zapier, so approvals and alerts flow "
            "through the tools your team already uses.",
            "Cut cycle time across every pipeline stage and start today at opspilot.io.",
        ],
        domain_pack_id="b2b-saas",
    )


@pytest.fixture
def broken_script(good_script) -> ScriptResult:
    """Two features, long hooks, one integration and a foreign CTA."""
    script = good_script.clone()
    del script.features[2]
    script.hook_line1 = "Your support queue is completely out of control today"
    script.hook_keyword = "Go"
    script.integrations = ["Zapier"]
    script.cta_url = "https://elsewhere.example.org/signup"
    return script


@pytest.fixture
def store(tmp_path) -> ProjectStore:
    return ProjectStore(tmp_path / "out")


@pytest.fixture
def seed_version(store, tmp_path):
    """
    Factory that writes a job record, quality file and optional video for one version.
    Returns the saved JobRecord.
    """
    def seed(
        root: str,
        version: int,
        score: int = 90,
        passed: bool = True,
        blockers: int = 0,
        warnings: int = 0,
        status: JobStatus = JobStatus.COMPLETED,
        mode: VersionMode = VersionMode.GENERATE,
        video: bool = True,
        pack: str = "general",
        template: str = "founder-story",
        auto_promote: bool = False,
        segment: Optional[PromotionSegment] = None,
    ) -> JobRecord:
        video_path = None
        if video:
            video_path = tmp_path / "renders" / f"{root}-v{version}.mp4"
            video_path.parent.mkdir(parents=True, exist_ok=True)
            video_path.write_bytes(b"\x00")
        job = JobRecord(
            id=f"{root}-job{version}",
            url=f"https://{root}.example.net",
            root=root,
            version=version,
            status=status,
            mode=mode,
            options=JobOptions(auto_promote_if_winner=auto_promote, auto_promote_segment=segment),
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=version),
            artifacts=VersionArtifacts(video_path=str(video_path) if video_path else None),
        )
        store.save_job(job)
        store.save_quality(root, version, {
            "qualityReport": {
                "score": score,
                "passed": passed,
                "blockers": [f"blocker {i}" for i in range(blockers)],
                "warnings": [f"warning {i}" for i in range(warnings)],
            },
            "domainPack": pack,
            "template": template,
            "generationMode": "model",
        })
        return job

    return seed
