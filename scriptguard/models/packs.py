"""
Domain pack models - content profiles selected per site.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PromotionSegment(str, Enum):
    """Promotion threshold buckets."""
    CORE_ICP = "core-icp"
    BROAD = "broad"


class DomainPack(BaseModel):
    """Immutable content profile: vocabulary, icons, forbidden terms and defaults."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    description: str = ""
    preferred_template: str = "founder-story"
    keywords: tuple[str, ...] = ()
    negative_keywords: tuple[str, ...] = ()
    allowed_icons: tuple[str, ...] = ("generic",)
    forbidden_terms: tuple[str, ...] = ()
    concrete_fields: tuple[str, ...] = ()
    fallback_integrations: tuple[str, ...] = ()
    script_style_hint: str = ""
    segment: PromotionSegment = PromotionSegment.BROAD

    def allows_icon(self, icon: str) -> bool:
        return icon in self.allowed_icons

    def field_at(self, index: int, default: str = "Status") -> str:
        """Concrete field at index, wrapping around."""
        if not self.concrete_fields:
            return default
        return self.concrete_fields[index % len(self.concrete_fields)]


class PackCandidate(BaseModel):
    """A scored pack candidate."""
    id: str
    score: float


class DomainPackSelection(BaseModel):
    """Result of domain classification."""
    pack: DomainPack
    reason: str
    scores: dict[str, float] = Field(default_factory=dict)
    confidence: float = Field(ge=0, le=1)
    top_candidates: list[PackCandidate] = Field(default_factory=list)
