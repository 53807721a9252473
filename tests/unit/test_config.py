"""
Unit tests for settings, thresholds and logging setup.
"""

import sys

import pytest
from loguru import logger

from config import Settings
from src.core.levels import ActivityDifficulty, ProficiencyLevel
from src.core.log_config import configure_logging
from src.core.thresholds import AdaptationThresholds


class TestThresholds:
    def test_defaults_match_settings(self):
        assert AdaptationThresholds.from_settings(Settings(_env_file=None)) == AdaptationThresholds()

    def test_overrides_flow_through(self):
        settings = Settings(
            _env_file=None,
            scale_up_accuracy=0.8,
            streak_length=3,
            prerequisite_target_level="intermediate",
            advanced_activity_minutes=50,
        )

        thresholds = AdaptationThresholds.from_settings(settings)

        assert thresholds.scale_up_accuracy == 0.8
        assert thresholds.streak_length == 3
        assert thresholds.prerequisite_target_level == ProficiencyLevel.INTERMEDIATE
        assert thresholds.minutes_for(ActivityDifficulty.ADVANCED) == 50

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("MASTERY_BUMP_ACCURACY", "0.75")

        assert Settings(_env_file=None).mastery_bump_accuracy == 0.75

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, scale_down_accuracy=1.5)


class TestLogging:
    @pytest.fixture(autouse=True)
    def restore_logger(self):
        yield
        logger.remove()
        logger.add(sys.stderr)

    def test_file_sink(self, tmp_path):
        log_file = tmp_path / "logs" / "skillpath.log"
        configure_logging(Settings(_env_file=None, log_file=str(log_file), log_level="INFO"))

        logger.info("path regenerated for dev-1")
        logger.debug("not written at INFO")

        content = log_file.read_text(encoding="utf-8")
        assert "path regenerated for dev-1" in content
        assert "not written at INFO" not in content
