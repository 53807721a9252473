"""
Learning Path Builder.

Builds and patches ordered learning paths:
- generate: goals + profile -> topologically ordered activities
- next_activity / advance: cursor handling
- insert_prerequisites: remedial prerequisites placed at the cursor
- skip_redundant_content: drop mastered work nothing later depends on
- redifficulty / ensure_follow_up: adjust upcoming practice for a topic

Every operation returns a new LearningPath; the input path is never
modified. Mutations are re-validated against the ordering invariant:
each activity's prerequisite skills are satisfied or appear earlier.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional

from loguru import logger

from src.adaptive.catalog import ActivityCatalog
from src.core.errors import PathInvariantError, UnknownSkillError
from src.core.levels import ActivityDifficulty, ProficiencyLevel
from src.core.models import (
    DifficultyState,
    LearningActivity,
    LearningGoal,
    LearningPath,
    SkillProfile,
)
from src.core.thresholds import AdaptationThresholds
from src.graph.skill_graph import SkillGraph


def estimate_completion(activities: Iterable[LearningActivity], at: datetime) -> datetime:
    return at + timedelta(minutes=sum(a.estimated_minutes for a in activities))


def band_for(state: Optional[DifficultyState], level: ProficiencyLevel) -> ActivityDifficulty:
    """Band a skill's streaks settled on, else the one matching its level."""
    if state is not None and state.band is not None:
        return state.band
    return ActivityDifficulty.for_level(level)


class PathBuilder:
    """
    Sequence activities for learning goals over a skill graph.

    Usage:
        builder = PathBuilder(graph, catalog)
        path = builder.generate("dev-1", goals, profile)
        activity = builder.next_activity(path)
        path = builder.advance(path)
    """

    def __init__(
        self,
        graph: SkillGraph,
        catalog: Optional[ActivityCatalog] = None,
        thresholds: Optional[AdaptationThresholds] = None,
    ):
        self._graph = graph
        self._thresholds = thresholds or AdaptationThresholds()
        self._catalog = catalog or ActivityCatalog(thresholds=self._thresholds)

    @property
    def catalog(self) -> ActivityCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(
        self,
        developer_id: str,
        goals: Iterable[LearningGoal],
        profile: SkillProfile,
        at: Optional[datetime] = None,
        difficulty_states: Optional[Mapping[str, DifficultyState]] = None,
    ) -> LearningPath:
        """
        Generate a path that closes every goal gap.

        Required skills are the goal skills below target plus, beneath any
        unstarted required skill, the prerequisites still below the
        configured prerequisite level. A skill the developer has already
        started is taken to imply its prerequisites.

        Args:
            developer_id: Owner of the path
            goals: Goal set to plan for
            profile: Current competencies
            at: Reference time for the completion estimate
            difficulty_states: Per-skill state carried over from an earlier
                path; a skill with a settled band keeps it

        Returns:
            A validated path; zero-length when nothing is required
        """
        goals = tuple(goals)
        at = at or datetime.now(timezone.utc)
        prereq_level = self._thresholds.prerequisite_target_level

        targets: dict[str, ProficiencyLevel] = {}
        for goal in goals:
            if goal.skill_id not in self._graph:
                raise UnknownSkillError(goal.skill_id, "in learning goal")
            if profile.level_of(goal.skill_id).below(goal.target_level):
                targets[goal.skill_id] = max(
                    targets.get(goal.skill_id, ProficiencyLevel.NOVICE), goal.target_level
                )

        pending = sorted(targets, reverse=True)
        while pending:
            skill_id = pending.pop()
            if profile.level_of(skill_id) > ProficiencyLevel.NOVICE:
                continue
            for prereq_id in sorted(self._graph.prerequisite_ids(skill_id)):
                if not profile.level_of(prereq_id).below(prereq_level):
                    continue
                if prereq_id not in targets:
                    pending.append(prereq_id)
                targets[prereq_id] = max(targets.get(prereq_id, ProficiencyLevel.NOVICE), prereq_level)

        states = dict(difficulty_states or {})
        activities: list[LearningActivity] = []
        used: set[str] = set()
        for skill_id in self._graph.topological_order(targets):
            band = band_for(states.get(skill_id), profile.level_of(skill_id))
            activity = self._catalog.select(skill_id, band, exclude=used)
            used.add(activity.activity_id)
            activities.append(activity)

        path = LearningPath(
            developer_id=developer_id,
            activities=activities,
            current_position=0,
            goals=goals,
            estimated_completion=estimate_completion(activities, at),
            targets=targets,
            satisfied_skills=frozenset(self._graph.skill_ids) - set(targets),
            difficulty_states=states,
        )
        self.validate(path)

        if activities:
            logger.info(
                f"Generated path for {developer_id}: {len(activities)} activities "
                f"({', '.join(a.activity_id for a in activities)})"
            )
        else:
            logger.info(f"Generated empty path for {developer_id}: all goals already met")
        return path

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    @staticmethod
    def next_activity(path: LearningPath) -> Optional[LearningActivity]:
        """Activity at the cursor, or None once the path is finished."""
        if path.current_position >= len(path.activities):
            return None
        return path.activities[path.current_position]

    def advance(self, path: LearningPath, at: Optional[datetime] = None) -> LearningPath:
        """Move the cursor past the current activity; a finished path is returned as-is."""
        if path.is_complete:
            return path
        return self._rebuild(path, path.activities, at, current_position=path.current_position + 1)

    # ------------------------------------------------------------------
    # Patching
    # ------------------------------------------------------------------

    def insert_prerequisites(
        self,
        path: LearningPath,
        topic: str,
        levels: Optional[Mapping[str, ProficiencyLevel]] = None,
        at: Optional[datetime] = None,
    ) -> LearningPath:
        """
        Place the not-yet-completed prerequisites of ``topic`` at the cursor.

        Direct prerequisites are always included; deeper ones only when they
        are not already satisfied. Prerequisites already waiting further down
        the path are moved up instead of duplicated. A topic without
        prerequisites, or a second identical call, leaves the path unchanged.

        Args:
            path: Path to patch
            topic: Skill the developer is struggling with
            levels: Current proficiency per skill, used to pick difficulty
                for skills without a settled band on the path
            at: Reference time for the completion estimate
        """
        if topic not in self._graph:
            raise UnknownSkillError(topic, "insert_prerequisites topic")
        direct = self._graph.prerequisite_ids(topic)
        if not direct:
            logger.debug(f"{topic} has no prerequisites; nothing to insert")
            return path

        completed_skills = {a.topic for a in path.completed}
        remaining = path.remaining
        remaining_skills = {a.topic for a in remaining}
        wanted = {
            skill_id
            for skill_id in self._graph.transitive_prerequisites(topic)
            if skill_id not in completed_skills
            and (
                skill_id in direct
                or skill_id in remaining_skills
                or skill_id not in path.satisfied_skills
            )
        }
        if not wanted:
            return path

        pulled: dict[str, LearningActivity] = {}
        rest: list[LearningActivity] = []
        for activity in remaining:
            if activity.topic in wanted and activity.topic not in pulled:
                pulled[activity.topic] = activity
            else:
                rest.append(activity)

        used = {a.activity_id for a in path.activities}
        levels = levels or {}
        block: list[LearningActivity] = []
        for skill_id in self._graph.topological_order(wanted):
            activity = pulled.get(skill_id)
            if activity is None:
                band = band_for(
                    path.difficulty_states.get(skill_id),
                    levels.get(skill_id, ProficiencyLevel.NOVICE),
                )
                activity = self._catalog.select(skill_id, band, exclude=used)
                used.add(activity.activity_id)
            block.append(activity)

        activities = path.completed + block + rest
        targets = dict(path.targets)
        for skill_id in wanted:
            targets[skill_id] = max(
                targets.get(skill_id, ProficiencyLevel.NOVICE),
                self._thresholds.prerequisite_target_level,
            )
        if activities == path.activities and targets == path.targets:
            return path

        patched = self._rebuild(path, activities, at, targets=targets)
        self.validate(patched)
        logger.info(
            f"Inserted prerequisites of {topic} for {path.developer_id}: "
            f"{', '.join(a.activity_id for a in block)}"
        )
        return patched

    def skip_redundant_content(
        self,
        path: LearningPath,
        mastered_topics: Iterable[str],
        at: Optional[datetime] = None,
    ) -> LearningPath:
        """
        Remove remaining activities whose topic is already mastered.

        Candidates are checked leftmost first and an activity is kept while a
        later remaining activity still lists its topic as a prerequisite.
        Passes repeat until nothing changes, so running it again on the
        result is a no-op. Removed topics join ``satisfied_skills``.
        """
        mastered = set(mastered_topics)
        if not mastered:
            return path

        remaining = path.remaining
        removed: list[LearningActivity] = []
        changed = True
        while changed:
            changed = False
            for idx, activity in enumerate(remaining):
                if activity.topic not in mastered:
                    continue
                later = remaining[idx + 1:]
                if any(activity.topic in self._graph.prerequisite_ids(b.topic) for b in later):
                    continue
                removed.append(activity)
                remaining = remaining[:idx] + later
                changed = True
                break

        if not removed:
            return path

        patched = self._rebuild(
            path,
            path.completed + remaining,
            at,
            satisfied_skills=path.satisfied_skills | {a.topic for a in removed},
        )
        self.validate(patched)
        logger.info(
            f"Skipped mastered content for {path.developer_id}: "
            f"{', '.join(a.activity_id for a in removed)}"
        )
        return patched

    def redifficulty(
        self,
        path: LearningPath,
        topic: str,
        difficulty: ActivityDifficulty,
        at: Optional[datetime] = None,
    ) -> LearningPath:
        """Swap the next remaining activity for ``topic`` with one at ``difficulty``."""
        found = self.next_for_topic(path, topic)
        if found is None:
            return path
        index, current = found
        if current.difficulty == difficulty:
            return path

        used = {a.activity_id for a in path.activities}
        replacement = self._catalog.select(topic, difficulty, exclude=used)
        activities = list(path.activities)
        activities[index] = replacement
        return self._rebuild(path, activities, at)

    def ensure_follow_up(
        self,
        path: LearningPath,
        topic: str,
        difficulty: ActivityDifficulty,
        at: Optional[datetime] = None,
    ) -> LearningPath:
        """Queue a practice activity for ``topic`` at the cursor unless one is still pending."""
        if self.next_for_topic(path, topic) is not None:
            return path

        used = {a.activity_id for a in path.activities}
        activity = self._catalog.select(topic, difficulty, exclude=used)
        activities = path.completed + [activity] + path.remaining
        patched = self._rebuild(path, activities, at)
        self.validate(patched)
        return patched

    @staticmethod
    def next_for_topic(path: LearningPath, topic: str) -> Optional[tuple[int, LearningActivity]]:
        """Index and activity of the first remaining activity for ``topic``."""
        for index in range(path.current_position, len(path.activities)):
            if path.activities[index].topic == topic:
                return index, path.activities[index]
        return None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, path: LearningPath) -> None:
        """
        Check the ordering invariant.

        Raises:
            PathInvariantError: an activity precedes one of its prerequisite skills
            UnknownSkillError: an activity topic is not in the graph
        """
        seen = set(path.satisfied_skills)
        for position, activity in enumerate(path.activities):
            missing = self._graph.prerequisite_ids(activity.topic) - seen
            if missing:
                raise PathInvariantError(position, activity.topic, missing)
            seen.add(activity.topic)

    def is_valid(self, path: LearningPath) -> bool:
        try:
            self.validate(path)
        except PathInvariantError:
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _rebuild(
        path: LearningPath,
        activities: list[LearningActivity],
        at: Optional[datetime],
        **changes,
    ) -> LearningPath:
        at = at or datetime.now(timezone.utc)
        cursor = changes.pop("current_position", path.current_position)
        return replace(
            path,
            activities=list(activities),
            current_position=cursor,
            estimated_completion=estimate_completion(activities[cursor:], at),
            targets=dict(changes.pop("targets", path.targets)),
            satisfied_skills=frozenset(changes.pop("satisfied_skills", path.satisfied_skills)),
            difficulty_states=dict(path.difficulty_states),
            pending_overrides=dict(path.pending_overrides),
        )
