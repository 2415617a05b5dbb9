"""
Script models - the generated video script and its sections.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .base import PersistedModel


FEATURE_COUNT = 3
NARRATION_SEGMENT_COUNT = 8

# Narration segment indexes by scene
WORDMARK_SEGMENT = 2
FIRST_FEATURE_SEGMENT = 3
CLOSING_SEGMENT = 7


class Section(str, Enum):
    """Regenerable script sections."""
    HOOK = "hook"
    FEATURE1 = "feature1"
    FEATURE2 = "feature2"
    FEATURE3 = "feature3"
    CTA = "cta"

    @property
    def feature_index(self) -> Optional[int]:
        """Zero-based feature index for feature sections, else None."""
        if self in (Section.FEATURE1, Section.FEATURE2, Section.FEATURE3):
            return int(self.value[-1]) - 1
        return None

    @classmethod
    def for_feature(cls, index: int) -> "Section":
        return cls(f"feature{index + 1}")


SECTION_ORDER = list(Section)


class Feature(PersistedModel):
    """A feature scene: icon, app context, caption and on-screen demo lines."""
    icon: str = "generic"
    app_name: str = ""
    caption: str = ""
    demo_lines: list[str] = Field(default_factory=list)


class ScriptResult(PersistedModel):
    """
    The mutable artifact under evaluation.
    Serializes with camelCase keys so the renderer can read it as-is.
    """
    brand_name: str = ""
    brand_url: str = ""
    brand_color: str = "#111111"
    accent_color: str = "#2563EB"
    tagline: str = ""
    hook_line1: str = ""
    hook_line2: str = ""
    hook_keyword: str = ""
    features: list[Feature] = Field(default_factory=list)
    integrations: list[str] = Field(default_factory=list)
    cta_url: str = ""
    narration_segments: list[str] = Field(default_factory=list)
    scene_weights: Optional[list[int]] = None
    domain_pack_id: Optional[str] = None
    segment_durations_ms: Optional[list[int]] = None
    audio_src: Optional[str] = None
    audio_duration_ms: Optional[int] = None

    def clone(self) -> "ScriptResult":
        """Deep copy, so callers can compare before and after."""
        return self.model_copy(deep=True)

    @property
    def hook_lines(self) -> list[str]:
        return [self.hook_line1, self.hook_line2, self.hook_keyword]

    @property
    def narration(self) -> str:
        return " ".join(self.narration_segments)

    def text_corpus(self) -> str:
        """All user-visible text joined for term scanning."""
        parts = [
            self.brand_name,
            self.tagline,
            self.hook_line1,
            self.hook_line2,
            self.hook_keyword,
            *self.narration_segments,
        ]
        for feature in self.features:
            parts.extend([feature.app_name, feature.caption, *feature.demo_lines])
        parts.extend(self.integrations)
        return " ".join(parts)


class AutoFixResult(BaseModel):
    """Corrected script clone plus a human-readable action log."""
    script: ScriptResult
    actions: list[str] = Field(default_factory=list)


class RegenerateSectionResult(BaseModel):
    """Script clone with one section regenerated."""
    script: ScriptResult
    section: Section
    actions: list[str] = Field(default_factory=list)
