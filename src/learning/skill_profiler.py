"""
Skill Profiler.

Owns each developer's competency map and progress history:
- assess: initial profile covering every skill in the graph
- update: fold one completed activity into a new profile
- apply_insight: fold a code-derived skill observation into a new profile
- identify_gaps: goals the developer has not reached yet, by priority
- summary: competencies, strengths, trends and top gaps

All operations are pure: they return new SkillProfile instances and never
touch the one they were given.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence

from loguru import logger

from src.core.errors import UnknownSkillError
from src.core.levels import ProficiencyLevel, TrendDirection
from src.core.models import (
    LearningActivity,
    LearningGoal,
    Performance,
    SkillProfile,
    TrendSample,
)
from src.core.thresholds import AdaptationThresholds
from src.graph.skill_graph import SkillGraph


@dataclass(frozen=True)
class SkillGap:
    """A skill whose current level is below a goal's target."""

    skill_id: str
    current_level: ProficiencyLevel
    target_level: ProficiencyLevel
    priority: float

    @property
    def distance(self) -> int:
        return self.current_level.distance_to(self.target_level)


@dataclass
class SkillSummary:
    """Aggregated view of a profile for display and reporting."""

    developer_id: str
    competencies: dict[str, ProficiencyLevel] = field(default_factory=dict)
    strengths: list[str] = field(default_factory=list)
    trends: dict[str, TrendDirection] = field(default_factory=dict)
    declining: list[str] = field(default_factory=list)
    top_gaps: list[SkillGap] = field(default_factory=list)


def classify_trend(
    samples: Sequence[TrendSample],
    window: int = 5,
    epsilon: float = 0.05,
) -> TrendDirection:
    """
    Classify the direction of the most recent ``window`` samples.

    Uses the sign of the least-squares slope of level against sample order.
    Fewer than 3 samples is stable by convention.
    """
    recent = list(samples)[-window:]
    if len(recent) < 3:
        return TrendDirection.STABLE

    n = len(recent)
    mean_x = (n - 1) / 2
    mean_y = sum(int(s.level) for s in recent) / n
    num = sum((i - mean_x) * (int(s.level) - mean_y) for i, s in enumerate(recent))
    den = sum((i - mean_x) ** 2 for i in range(n))
    slope = num / den

    if slope > epsilon:
        return TrendDirection.IMPROVING
    if slope < -epsilon:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def consistency(accuracies: Sequence[float]) -> float:
    """Population variance of recent accuracies (0.0 with fewer than 2)."""
    if len(accuracies) < 2:
        return 0.0
    return statistics.pvariance(accuracies)


def gap_priority(goal: LearningGoal, current: ProficiencyLevel) -> float:
    """Priority of a gap: goal weight scaled by how many levels are missing."""
    return goal.priority_weight * current.distance_to(goal.target_level)


class SkillProfiler:
    """
    Maintain developer competency maps against a skill graph.

    Usage:
        profiler = SkillProfiler(graph)
        profile = profiler.assess("dev-1", {"loops": ProficiencyLevel.BEGINNER})
        profile = profiler.update(profile, activity, Performance(accuracy=0.9))
    """

    def __init__(self, graph: SkillGraph, thresholds: Optional[AdaptationThresholds] = None):
        self._graph = graph
        self._thresholds = thresholds or AdaptationThresholds()

    @property
    def graph(self) -> SkillGraph:
        return self._graph

    def assess(
        self,
        developer_id: str,
        assessed: Optional[Mapping[str, ProficiencyLevel | str]] = None,
        at: Optional[datetime] = None,
    ) -> SkillProfile:
        """
        Create the initial profile for a developer.

        Args:
            developer_id: Developer identifier
            assessed: Levels reported by the assessment collaborator
            at: Assessment timestamp (defaults to now, UTC)

        Returns:
            Profile with an explicit level for every graph skill; skills
            without an assessment start at novice. Assessed skills get one
            trend sample.
        """
        at = at or datetime.now(timezone.utc)
        assessed = dict(assessed or {})
        for skill_id in assessed:
            if skill_id not in self._graph:
                raise UnknownSkillError(skill_id, "in assessment")

        levels = {skill_id: ProficiencyLevel.NOVICE for skill_id in self._graph.skill_ids}
        trend: dict[str, list[TrendSample]] = {}
        for skill_id, level in sorted(assessed.items()):
            parsed = ProficiencyLevel.from_name(level)
            levels[skill_id] = parsed
            trend[skill_id] = [TrendSample(at=at, level=parsed)]

        logger.info(
            f"Assessed {developer_id}: {len(assessed)} of {len(levels)} skills rated"
        )
        return SkillProfile(developer_id=developer_id, levels=levels, progress_trend=trend)

    def update(
        self,
        profile: SkillProfile,
        activity: LearningActivity,
        performance: Performance,
        at: Optional[datetime] = None,
    ) -> SkillProfile:
        """
        Fold a completed activity into a new profile.

        The activity's skill gains one level when accuracy reaches the bump
        threshold and there are enough data points (or the first data point
        is near-perfect). Levels never drop here. A trend sample is always
        appended, even when the level is unchanged.
        """
        skill_id = activity.topic
        if skill_id not in self._graph:
            raise UnknownSkillError(skill_id, f"topic of activity {activity.activity_id}")
        at = at or datetime.now(timezone.utc)
        t = self._thresholds

        old_level = profile.level_of(skill_id)
        data_points = len(profile.progress_trend.get(skill_id, ())) + 1
        enough_evidence = (
            data_points >= t.mastery_min_data_points
            or performance.accuracy >= t.first_attempt_bump_accuracy
        )
        new_level = old_level
        if performance.accuracy >= t.mastery_bump_accuracy and enough_evidence:
            new_level = old_level.step_up()

        if new_level != old_level:
            logger.info(
                f"{profile.developer_id}: {skill_id} {old_level.label} -> {new_level.label} "
                f"(accuracy {performance.accuracy:.2f}, {data_points} data points)"
            )

        return self._with_sample(profile, skill_id, new_level, TrendSample(at=at, level=new_level))

    def apply_insight(
        self,
        profile: SkillProfile,
        skill_id: str,
        observed: ProficiencyLevel | str,
        at: Optional[datetime] = None,
    ) -> SkillProfile:
        """
        Fold a code-derived observation of a skill into a new profile.

        The competency map only moves up; the observed level is recorded in
        the trend either way, so a regression shows up as a declining trend.
        """
        if skill_id not in self._graph:
            raise UnknownSkillError(skill_id, "in skill insight")
        at = at or datetime.now(timezone.utc)
        observed = ProficiencyLevel.from_name(observed)
        level = max(profile.level_of(skill_id), observed)
        return self._with_sample(profile, skill_id, level, TrendSample(at=at, level=observed))

    def identify_gaps(
        self,
        profile: SkillProfile,
        goals: Iterable[LearningGoal],
    ) -> list[SkillGap]:
        """
        Gaps between the profile and the goals, highest priority first.

        One gap per skill; when several goals name the same skill the one
        with the highest priority wins. Ties are ordered by skill id.
        """
        by_skill: dict[str, SkillGap] = {}
        for goal in goals:
            if goal.skill_id not in self._graph:
                raise UnknownSkillError(goal.skill_id, "in learning goal")
            current = profile.level_of(goal.skill_id)
            if not current.below(goal.target_level):
                continue
            gap = SkillGap(
                skill_id=goal.skill_id,
                current_level=current,
                target_level=goal.target_level,
                priority=gap_priority(goal, current),
            )
            existing = by_skill.get(goal.skill_id)
            if existing is None or (gap.priority, gap.target_level) > (
                existing.priority,
                existing.target_level,
            ):
                by_skill[goal.skill_id] = gap

        return sorted(by_skill.values(), key=lambda g: (-g.priority, g.skill_id))

    def summary(
        self,
        profile: SkillProfile,
        goals: Iterable[LearningGoal] = (),
        top_n: Optional[int] = None,
    ) -> SkillSummary:
        """Aggregate competencies, trend classification and top gaps."""
        t = self._thresholds
        top_n = top_n if top_n is not None else t.summary_top_gaps

        trends = {
            skill_id: classify_trend(profile.samples(skill_id), t.trend_window, t.trend_slope_epsilon)
            for skill_id in sorted(profile.levels)
        }
        return SkillSummary(
            developer_id=profile.developer_id,
            competencies=dict(sorted(profile.levels.items())),
            strengths=profile.strengths,
            trends=trends,
            declining=[s for s, d in trends.items() if d is TrendDirection.DECLINING],
            top_gaps=self.identify_gaps(profile, goals)[:top_n],
        )

    @staticmethod
    def _with_sample(
        profile: SkillProfile,
        skill_id: str,
        level: ProficiencyLevel,
        sample: TrendSample,
    ) -> SkillProfile:
        levels = dict(profile.levels)
        levels[skill_id] = level
        trend = {k: list(v) for k, v in profile.progress_trend.items()}
        trend.setdefault(skill_id, []).append(sample)
        return SkillProfile(developer_id=profile.developer_id, levels=levels, progress_trend=trend)
