"""
Core domain models.

Dataclasses shared by the graph, profiler, path builder and adaptation
engine. Everything here is plain data: behaviour lives in the components
that own each model. Each persisted model carries ``to_dict``/``from_dict``
so that a save/load round-trip yields an equal object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.core.levels import (
    ActivityDifficulty,
    DifficultyTrend,
    ProficiencyLevel,
    SkillCategory,
)


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# =============================================================================
# Skill graph records
# =============================================================================


@dataclass(frozen=True)
class Skill:
    """A published skill and the skills it directly depends on."""

    skill_id: str
    category: SkillCategory = SkillCategory.CONCEPT
    prerequisites: frozenset[str] = frozenset()

    def __post_init__(self):
        if not self.skill_id:
            raise ValueError("skill_id must be a non-empty string")
        # Accept any iterable / plain strings from callers
        object.__setattr__(self, "prerequisites", frozenset(self.prerequisites))
        object.__setattr__(self, "category", SkillCategory(self.category))

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "category": self.category.value,
            "prerequisites": sorted(self.prerequisites),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Skill:
        return cls(
            skill_id=data["skill_id"],
            category=SkillCategory(data.get("category", SkillCategory.CONCEPT.value)),
            prerequisites=frozenset(data.get("prerequisites", ())),
        )


# =============================================================================
# Developer competency
# =============================================================================


@dataclass(frozen=True)
class TrendSample:
    """One piece of evidence about a skill level at a point in time."""

    at: datetime
    level: ProficiencyLevel

    def to_dict(self) -> dict[str, Any]:
        return {"at": _dt_to_str(self.at), "level": self.level.label}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrendSample:
        return cls(at=_dt_from_str(data["at"]), level=ProficiencyLevel.from_name(data["level"]))


@dataclass
class SkillProfile:
    """
    A developer's competency map and progress history.

    Owned by the SkillProfiler; other components read it and receive new
    instances from the profiler instead of mutating it.
    """

    developer_id: str
    levels: dict[str, ProficiencyLevel] = field(default_factory=dict)
    progress_trend: dict[str, list[TrendSample]] = field(default_factory=dict)

    def level_of(self, skill_id: str) -> ProficiencyLevel:
        return self.levels.get(skill_id, ProficiencyLevel.NOVICE)

    def samples(self, skill_id: str) -> list[TrendSample]:
        return list(self.progress_trend.get(skill_id, ()))

    @property
    def strengths(self) -> list[str]:
        """Skills at advanced level or above."""
        return sorted(
            skill_id
            for skill_id, level in self.levels.items()
            if level >= ProficiencyLevel.ADVANCED
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "developer_id": self.developer_id,
            "levels": {k: v.label for k, v in sorted(self.levels.items())},
            "progress_trend": {
                k: [s.to_dict() for s in samples]
                for k, samples in sorted(self.progress_trend.items())
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillProfile:
        return cls(
            developer_id=data["developer_id"],
            levels={k: ProficiencyLevel.from_name(v) for k, v in data.get("levels", {}).items()},
            progress_trend={
                k: [TrendSample.from_dict(s) for s in samples]
                for k, samples in data.get("progress_trend", {}).items()
            },
        )


@dataclass(frozen=True)
class LearningGoal:
    """Reach ``target_level`` in ``skill_id``; weight ranks competing goals."""

    skill_id: str
    target_level: ProficiencyLevel
    priority_weight: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "target_level", ProficiencyLevel.from_name(self.target_level))
        if self.priority_weight < 0:
            raise ValueError(f"priority_weight must be >= 0, got {self.priority_weight}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "target_level": self.target_level.label,
            "priority_weight": self.priority_weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningGoal:
        return cls(
            skill_id=data["skill_id"],
            target_level=ProficiencyLevel.from_name(data["target_level"]),
            priority_weight=float(data.get("priority_weight", 1.0)),
        )


# =============================================================================
# Activities and performance
# =============================================================================


@dataclass(frozen=True)
class LearningActivity:
    """
    Catalog template for a single piece of learning work.

    ``content`` is the catalog text served when the content generator is
    unavailable.
    """

    activity_id: str
    topic: str
    difficulty: ActivityDifficulty
    prerequisites: tuple[str, ...] = ()
    estimated_minutes: int = 30
    content: str = ""

    def __post_init__(self):
        object.__setattr__(self, "difficulty", ActivityDifficulty.from_name(self.difficulty))
        object.__setattr__(self, "prerequisites", tuple(self.prerequisites))
        if self.estimated_minutes < 0:
            raise ValueError("estimated_minutes must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "topic": self.topic,
            "difficulty": self.difficulty.label,
            "prerequisites": list(self.prerequisites),
            "estimated_minutes": self.estimated_minutes,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningActivity:
        return cls(
            activity_id=data["activity_id"],
            topic=data["topic"],
            difficulty=ActivityDifficulty.from_name(data["difficulty"]),
            prerequisites=tuple(data.get("prerequisites", ())),
            estimated_minutes=int(data.get("estimated_minutes", 30)),
            content=data.get("content", ""),
        )


@dataclass(frozen=True)
class Performance:
    """
    Signals from one completed activity.

    accuracy: fraction correct (0-1)
    speed_ratio: actual / estimated time
    consistency: rolling variance of recent accuracies; the engine
        recomputes it from the skill's difficulty history
    attempts: tries needed for this activity
    """

    accuracy: float
    speed_ratio: float = 1.0
    consistency: float = 0.0
    attempts: int = 1

    def __post_init__(self):
        if not 0.0 <= self.accuracy <= 1.0:
            raise ValueError(f"accuracy must be within [0, 1], got {self.accuracy}")
        if self.speed_ratio < 0:
            raise ValueError(f"speed_ratio must be >= 0, got {self.speed_ratio}")
        if self.consistency < 0:
            raise ValueError(f"consistency must be >= 0, got {self.consistency}")
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")


# =============================================================================
# Adaptation state
# =============================================================================


@dataclass(frozen=True)
class DifficultyState:
    """Difficulty state machine for one (developer, skill) pair."""

    trend: DifficultyTrend = DifficultyTrend.STABLE
    success_streak: int = 0
    struggle_streak: int = 0
    band: ActivityDifficulty | None = None
    recent_accuracies: tuple[float, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend": self.trend.value,
            "success_streak": self.success_streak,
            "struggle_streak": self.struggle_streak,
            "band": self.band.label if self.band is not None else None,
            "recent_accuracies": list(self.recent_accuracies),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DifficultyState:
        band = data.get("band")
        return cls(
            trend=DifficultyTrend(data.get("trend", DifficultyTrend.STABLE.value)),
            success_streak=int(data.get("success_streak", 0)),
            struggle_streak=int(data.get("struggle_streak", 0)),
            band=ActivityDifficulty.from_name(band) if band else None,
            recent_accuracies=tuple(float(a) for a in data.get("recent_accuracies", ())),
        )


# =============================================================================
# Learning path
# =============================================================================


@dataclass
class LearningPath:
    """
    Ordered activities for one developer's goal set.

    Activities before ``current_position`` are completed. ``targets`` holds
    the level each path skill must reach; ``satisfied_skills`` are the
    skills treated as mastered when the path was created. Paths are only
    changed through PathBuilder / AdaptationEngine operations, which return
    new instances.
    """

    developer_id: str
    activities: list[LearningActivity] = field(default_factory=list)
    current_position: int = 0
    goals: tuple[LearningGoal, ...] = ()
    estimated_completion: datetime | None = None
    targets: dict[str, ProficiencyLevel] = field(default_factory=dict)
    satisfied_skills: frozenset[str] = frozenset()
    difficulty_states: dict[str, DifficultyState] = field(default_factory=dict)
    pending_overrides: dict[str, ActivityDifficulty] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.activities)

    @property
    def is_complete(self) -> bool:
        return self.current_position >= len(self.activities)

    @property
    def completed(self) -> list[LearningActivity]:
        return self.activities[: self.current_position]

    @property
    def remaining(self) -> list[LearningActivity]:
        return self.activities[self.current_position:]

    @property
    def progress(self) -> float:
        """Fraction of activities completed (1.0 for an empty path)."""
        if not self.activities:
            return 1.0
        return min(self.current_position, len(self.activities)) / len(self.activities)

    def difficulty_state(self, skill_id: str) -> DifficultyState:
        return self.difficulty_states.get(skill_id, DifficultyState())

    def to_dict(self) -> dict[str, Any]:
        return {
            "developer_id": self.developer_id,
            "activities": [a.to_dict() for a in self.activities],
            "current_position": self.current_position,
            "goals": [g.to_dict() for g in self.goals],
            "estimated_completion": _dt_to_str(self.estimated_completion),
            "targets": {k: v.label for k, v in sorted(self.targets.items())},
            "satisfied_skills": sorted(self.satisfied_skills),
            "difficulty_states": {
                k: v.to_dict() for k, v in sorted(self.difficulty_states.items())
            },
            "pending_overrides": {k: v.label for k, v in sorted(self.pending_overrides.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningPath:
        return cls(
            developer_id=data["developer_id"],
            activities=[LearningActivity.from_dict(a) for a in data.get("activities", [])],
            current_position=int(data.get("current_position", 0)),
            goals=tuple(LearningGoal.from_dict(g) for g in data.get("goals", [])),
            estimated_completion=_dt_from_str(data.get("estimated_completion")),
            targets={
                k: ProficiencyLevel.from_name(v) for k, v in data.get("targets", {}).items()
            },
            satisfied_skills=frozenset(data.get("satisfied_skills", ())),
            difficulty_states={
                k: DifficultyState.from_dict(v)
                for k, v in data.get("difficulty_states", {}).items()
            },
            pending_overrides={
                k: ActivityDifficulty.from_name(v)
                for k, v in data.get("pending_overrides", {}).items()
            },
        )


@dataclass(frozen=True)
class DeveloperSnapshot:
    """Versioned profile + path pair passed explicitly between calls."""

    developer_id: str
    profile: SkillProfile
    path: LearningPath
    version: int = 0
