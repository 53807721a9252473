"""
Proficiency and difficulty scales.

Both scales are ordinal. ActivityDifficulty shares its integer values with
ProficiencyLevel so a level maps onto a band by value, with NOVICE clamped
to BEGINNER (there are no novice activities).
"""

from __future__ import annotations

from enum import Enum, IntEnum


class ProficiencyLevel(IntEnum):
    """Ordinal mastery rating for a single skill."""

    NOVICE = 0
    BEGINNER = 1
    INTERMEDIATE = 2
    ADVANCED = 3
    EXPERT = 4

    @classmethod
    def from_name(cls, name: str | ProficiencyLevel) -> ProficiencyLevel:
        """Parse a level from its lowercase name (as stored and configured)."""
        if isinstance(name, ProficiencyLevel):
            return name
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown proficiency level: {name!r}") from None

    @property
    def label(self) -> str:
        return self.name.lower()

    def below(self, other: ProficiencyLevel) -> bool:
        return self < other

    def within_one_of(self, other: ProficiencyLevel) -> bool:
        return abs(int(self) - int(other)) <= 1

    def distance_to(self, other: ProficiencyLevel) -> int:
        """Levels still missing to reach ``other`` (0 when already there)."""
        return max(0, int(other) - int(self))

    def step_up(self) -> ProficiencyLevel:
        return ProficiencyLevel(min(int(self) + 1, int(ProficiencyLevel.EXPERT)))


class ActivityDifficulty(IntEnum):
    """Difficulty band of a learning activity."""

    BEGINNER = 1
    INTERMEDIATE = 2
    ADVANCED = 3
    EXPERT = 4

    @classmethod
    def for_level(cls, level: ProficiencyLevel) -> ActivityDifficulty:
        """Band matching a proficiency level; novice developers start at beginner."""
        return cls(max(int(level), int(cls.BEGINNER)))

    @classmethod
    def from_name(cls, name: str | ActivityDifficulty) -> ActivityDifficulty:
        if isinstance(name, ActivityDifficulty):
            return name
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown activity difficulty: {name!r}") from None

    @property
    def label(self) -> str:
        return self.name.lower()

    def harder(self) -> ActivityDifficulty:
        return ActivityDifficulty(min(int(self) + 1, int(ActivityDifficulty.EXPERT)))

    def easier(self) -> ActivityDifficulty:
        return ActivityDifficulty(max(int(self) - 1, int(ActivityDifficulty.BEGINNER)))


class SkillCategory(str, Enum):
    """Kind of skill tracked in the graph."""

    LANGUAGE = "language"
    FRAMEWORK = "framework"
    ALGORITHM = "algorithm"
    DESIGN = "design"
    TOOL = "tool"
    CONCEPT = "concept"


class TrendDirection(str, Enum):
    """Direction of a skill's progress trend."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class DifficultyTrend(str, Enum):
    """State of the per-skill difficulty state machine."""

    SCALING_UP = "scaling_up"
    STABLE = "stable"
    SCALING_DOWN = "scaling_down"
