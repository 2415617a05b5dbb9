"""
Tests for environment-driven configuration.
"""
from pathlib import Path

from scriptguard.config import get_config, reset_config


class TestConfig:

    def test_defaults(self):
        config = get_config()

        assert config.quality.min_score == 74
        assert config.quality.max_warnings == 3
        assert not config.quality.strict
        assert config.improve.target_score == 85
        assert config.promotion.core_icp_threshold == 0.8
        assert config.storage.output_dir == Path("out")

    def test_singleton(self):
        assert get_config() is get_config()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SCRIPTGUARD_MIN_QUALITY", "80")
        monkeypatch.setenv("SCRIPTGUARD_STRICT", "1")
        monkeypatch.setenv("SCRIPTGUARD_MIN_CONFIDENCE", "0.6")
        reset_config()

        config = get_config()

        assert config.quality.min_score == 80
        assert config.quality.strict
        assert config.promotion.default_min_confidence == 0.6
