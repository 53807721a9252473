"""
Tunable numbers used by the profiler, path builder and difficulty machine.

Built once from Settings and handed to components, so the pure functions
that use them never read configuration themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from config import Settings, get_settings
from src.core.levels import ActivityDifficulty, ProficiencyLevel


def _default_minutes() -> dict[ActivityDifficulty, int]:
    return {
        ActivityDifficulty.BEGINNER: 20,
        ActivityDifficulty.INTERMEDIATE: 30,
        ActivityDifficulty.ADVANCED: 45,
        ActivityDifficulty.EXPERT: 60,
    }


@dataclass(frozen=True)
class AdaptationThresholds:
    # Skill Profiler
    mastery_bump_accuracy: float = 0.85
    first_attempt_bump_accuracy: float = 0.95
    mastery_min_data_points: int = 2
    trend_window: int = 5
    trend_slope_epsilon: float = 0.05
    summary_top_gaps: int = 5

    # Difficulty state machine
    scale_up_accuracy: float = 0.9
    scale_down_accuracy: float = 0.5
    streak_length: int = 2
    consistency_window: int = 5

    # Path Builder
    prerequisite_target_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    activity_minutes: dict[ActivityDifficulty, int] = field(default_factory=_default_minutes)

    def __post_init__(self):
        if self.scale_down_accuracy >= self.scale_up_accuracy:
            raise ValueError("scale_down_accuracy must be lower than scale_up_accuracy")
        if self.trend_window < 3:
            raise ValueError("trend_window must be at least 3")

    def minutes_for(self, difficulty: ActivityDifficulty) -> int:
        return self.activity_minutes.get(difficulty, 30)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> AdaptationThresholds:
        settings = settings or get_settings()
        return cls(
            mastery_bump_accuracy=settings.mastery_bump_accuracy,
            first_attempt_bump_accuracy=settings.first_attempt_bump_accuracy,
            mastery_min_data_points=settings.mastery_min_data_points,
            trend_window=settings.trend_window,
            trend_slope_epsilon=settings.trend_slope_epsilon,
            summary_top_gaps=settings.summary_top_gaps,
            scale_up_accuracy=settings.scale_up_accuracy,
            scale_down_accuracy=settings.scale_down_accuracy,
            streak_length=settings.streak_length,
            consistency_window=settings.consistency_window,
            prerequisite_target_level=ProficiencyLevel.from_name(
                settings.prerequisite_target_level
            ),
            activity_minutes={
                ActivityDifficulty.from_name(name): minutes
                for name, minutes in settings.get_activity_minutes().items()
            },
        )
