"""
Core Module - Shared domain vocabulary.

Components:
- levels: proficiency and difficulty scales, skill categories, trend enums
- models: dataclass domain models (Skill, SkillProfile, LearningPath, ...)
- errors: error taxonomy rooted in SkillPathError
- thresholds: tunable numbers handed to the engine components
- log_config: loguru sink setup for host processes

All other packages (graph, learning, adaptive, db) import shared concepts
from here rather than redefining them.
"""

from src.core.errors import (
    CycleError,
    GenerationUnavailable,
    PathInvariantError,
    SkillPathError,
    SnapshotNotFound,
    UnknownSkillError,
    VersionConflict,
)
from src.core.levels import (
    ActivityDifficulty,
    DifficultyTrend,
    ProficiencyLevel,
    SkillCategory,
    TrendDirection,
)
from src.core.models import (
    DeveloperSnapshot,
    DifficultyState,
    LearningActivity,
    LearningGoal,
    LearningPath,
    Performance,
    Skill,
    SkillProfile,
    TrendSample,
)
from src.core.thresholds import AdaptationThresholds

__all__ = [
    # Scales
    "ActivityDifficulty",
    "DifficultyTrend",
    "ProficiencyLevel",
    "SkillCategory",
    "TrendDirection",
    # Models
    "DeveloperSnapshot",
    "DifficultyState",
    "LearningActivity",
    "LearningGoal",
    "LearningPath",
    "Performance",
    "Skill",
    "SkillProfile",
    "TrendSample",
    # Errors
    "CycleError",
    "GenerationUnavailable",
    "PathInvariantError",
    "SkillPathError",
    "SnapshotNotFound",
    "UnknownSkillError",
    "VersionConflict",
    # Config
    "AdaptationThresholds",
]
