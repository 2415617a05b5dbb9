"""
Job models - queued generation/rerender jobs and render completions.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import PersistedModel
from .packs import PromotionSegment
from .versions import JobStatus, VersionArtifacts, VersionMode


class JobOptions(PersistedModel):
    """Options carried by a job from submission to completion."""
    pack: str = "auto"
    template: str = "auto"
    strict: bool = False
    skip_render: bool = False
    auto_promote_if_winner: bool = False
    auto_promote_segment: Optional[PromotionSegment] = None
    source_job_id: Optional[str] = Field(default=None, description="Job this rerender derives from")


class JobRecord(PersistedModel):
    """Durable record of one job; one job is one project version."""
    id: str
    url: str
    owner: Optional[str] = None
    root: str
    version: int = Field(ge=1)
    status: JobStatus = JobStatus.QUEUED
    mode: VersionMode = VersionMode.GENERATE
    options: JobOptions = Field(default_factory=JobOptions)
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    exit_code: Optional[int] = None
    error: Optional[str] = None
    artifacts: VersionArtifacts = Field(default_factory=VersionArtifacts)
    auto_promote_evaluated_at: Optional[datetime] = None
    auto_promote_result: Optional[str] = None
    logs: list[str] = Field(default_factory=list)

    @property
    def wants_auto_promote(self) -> bool:
        return self.mode == VersionMode.RERENDER and self.options.auto_promote_if_winner

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


class RenderCompletion(PersistedModel):
    """What the external render step reports back."""
    status: JobStatus
    exit_code: Optional[int] = None
    error: Optional[str] = None
    artifacts: VersionArtifacts = Field(default_factory=VersionArtifacts)
