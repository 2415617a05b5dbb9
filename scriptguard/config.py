"""
Configuration and environment handling for scriptguard.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class QualityConfig(BaseModel):
    """Quality gate configuration."""
    min_score: int = Field(default_factory=lambda: _env_int("SCRIPTGUARD_MIN_QUALITY", 74))
    max_warnings: int = Field(default_factory=lambda: _env_int("SCRIPTGUARD_MAX_WARNINGS", 3))
    strict: bool = Field(
        default_factory=lambda: os.getenv("SCRIPTGUARD_STRICT", "").lower() in ("1", "true", "yes"),
        description="Strict mode fails the gate on any warning",
    )
    autofix: bool = Field(default=True)


class ImproveConfig(BaseModel):
    """Auto-improve loop configuration."""
    target_score: int = Field(default_factory=lambda: _env_int("SCRIPTGUARD_TARGET_SCORE", 85))
    max_steps: int = Field(default=6, description="Hard step budget per run")
    max_section_attempts: int = Field(default=2, description="Retries allowed per section per run")
    stall_limit: int = Field(default=2, description="Consecutive non-improving steps before giving up")


class PromotionConfig(BaseModel):
    """Version promotion configuration."""
    default_min_confidence: float = Field(default_factory=lambda: _env_float("SCRIPTGUARD_MIN_CONFIDENCE", 0.75))
    core_icp_threshold: float = Field(default=0.8)
    broad_threshold: float = Field(default=0.75)
    calibration_floor: float = Field(default=0.55)
    calibration_ceiling: float = Field(default=0.9)
    calibration_full_evidence: int = Field(default=20, description="Outcomes needed for full calibration weight")
    watchdog_interval_seconds: float = Field(
        default_factory=lambda: _env_float("SCRIPTGUARD_WATCHDOG_INTERVAL", 60.0)
    )


class StorageConfig(BaseModel):
    """File-backed storage configuration."""
    output_dir: Path = Field(default_factory=lambda: Path(os.getenv("SCRIPTGUARD_OUTPUT_DIR", "out")))

    @property
    def jobs_dir(self) -> Path:
        return self.output_dir / "jobs"


class Config(BaseModel):
    """Main configuration."""
    quality: QualityConfig = Field(default_factory=QualityConfig)
    improve: ImproveConfig = Field(default_factory=ImproveConfig)
    promotion: PromotionConfig = Field(default_factory=PromotionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


# Singleton config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the singleton config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next call re-reads the environment."""
    global _config
    _config = None
