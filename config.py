"""
Configuration settings for the skillpath engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///skillpath.db",
        description="SQLAlchemy async connection string for profiles, paths and the skill graph",
    )
    save_max_retries: int = Field(
        default=3,
        ge=0,
        description="Reload-and-retry attempts after a version conflict before giving up",
    )

    # ========================================
    # Mastery (Skill Profiler)
    # ========================================
    mastery_bump_accuracy: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Accuracy needed to raise proficiency by one level",
    )
    first_attempt_bump_accuracy: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Accuracy needed to raise proficiency on the first data point for a skill",
    )
    mastery_min_data_points: int = Field(
        default=2,
        ge=1,
        description="Trend samples (including the current one) before the normal bump threshold applies",
    )
    trend_window: int = Field(
        default=5,
        ge=3,
        description="Most recent trend samples used to classify a skill trend",
    )
    trend_slope_epsilon: float = Field(
        default=0.05,
        ge=0.0,
        description="Slope magnitude below which a trend is considered stable",
    )
    summary_top_gaps: int = Field(
        default=5,
        ge=1,
        description="Number of gaps reported in a skill summary",
    )

    # ========================================
    # Adaptation (difficulty state machine)
    # ========================================
    scale_up_accuracy: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Accuracy at or above which an activity counts toward a success streak",
    )
    scale_down_accuracy: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Accuracy at or below which an activity counts toward a struggle streak",
    )
    streak_length: int = Field(
        default=2,
        ge=1,
        description="Consecutive activities needed to change difficulty",
    )
    consistency_window: int = Field(
        default=5,
        ge=2,
        description="Recent accuracies kept per skill for the rolling consistency variance",
    )

    # ========================================
    # Path Builder
    # ========================================
    prerequisite_target_level: Literal["beginner", "intermediate", "advanced", "expert"] = Field(
        default="beginner",
        description="Level a prerequisite of an unstarted skill must reach before it is skipped",
    )
    beginner_activity_minutes: int = Field(default=20, ge=1)
    intermediate_activity_minutes: int = Field(default=30, ge=1)
    advanced_activity_minutes: int = Field(default=45, ge=1)
    expert_activity_minutes: int = Field(default=60, ge=1)

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def get_activity_minutes(self) -> dict[str, int]:
        """Default duration per difficulty band for synthesized activities."""
        return {
            "beginner": self.beginner_activity_minutes,
            "intermediate": self.intermediate_activity_minutes,
            "advanced": self.advanced_activity_minutes,
            "expert": self.expert_activity_minutes,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
