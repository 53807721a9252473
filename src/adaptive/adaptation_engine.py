"""
Adaptation Engine.

Turns performance on completed activities into profile and path changes.
Each event is handled as one unit of work over an explicit
DeveloperSnapshot: the returned snapshot carries both the updated profile
and the patched path, or (when adaptation fails) the untouched originals.

Every decision produces an Adjustment with a human-readable rationale:
difficulty changes, prerequisite insertion, follow-up practice, skipped
content, proficiency raises and path regeneration.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from loguru import logger

from src.adaptive.difficulty import streak_accuracies, transition
from src.adaptive.path_builder import PathBuilder
from src.core.errors import PathInvariantError, UnknownSkillError
from src.core.levels import ActivityDifficulty, DifficultyTrend, ProficiencyLevel
from src.core.models import (
    DeveloperSnapshot,
    LearningActivity,
    LearningGoal,
    LearningPath,
    Performance,
    SkillProfile,
)
from src.core.thresholds import AdaptationThresholds
from src.learning.skill_profiler import SkillProfiler, consistency


class AdjustmentKind(str, Enum):
    """What the engine changed."""

    PROFICIENCY_RAISED = "proficiency_raised"
    DIFFICULTY_INCREASED = "difficulty_increased"
    DIFFICULTY_DECREASED = "difficulty_decreased"
    DIFFICULTY_REQUESTED = "difficulty_requested"
    PREREQUISITES_INSERTED = "prerequisites_inserted"
    FOLLOW_UP_ADDED = "follow_up_added"
    CONTENT_SKIPPED = "content_skipped"
    PATH_REGENERATED = "path_regenerated"
    ADAPTATION_FAILED = "adaptation_failed"


@dataclass(frozen=True)
class Adjustment:
    """One engine decision and the explanation shown to the developer."""

    kind: AdjustmentKind
    skill_id: str
    rationale: str
    activity_ids: tuple[str, ...] = ()


@dataclass
class AdaptationResult:
    """Outcome of one adaptation event."""

    snapshot: DeveloperSnapshot
    adjustments: list[Adjustment] = field(default_factory=list)
    degraded: bool = False

    @property
    def rationales(self) -> list[str]:
        return [a.rationale for a in self.adjustments]

    def of_kind(self, kind: AdjustmentKind) -> list[Adjustment]:
        return [a for a in self.adjustments if a.kind is kind]


def _fmt_accuracies(values: Iterable[float]) -> str:
    return ", ".join(f"{v:.2f}" for v in values)


def _fmt_signal(performance: Performance) -> str:
    return (
        f"speed x{performance.speed_ratio:.2f}, {performance.attempts} attempt(s), "
        f"variance {performance.consistency:.3f}"
    )


class AdaptationEngine:
    """
    Apply completed-activity performance to a developer's profile and path.

    Usage:
        engine = AdaptationEngine(profiler, builder)
        result = engine.record_completion(snapshot, activity, Performance(accuracy=0.2))
        for line in result.rationales:
            print(line)
    """

    def __init__(
        self,
        profiler: SkillProfiler,
        builder: PathBuilder,
        thresholds: Optional[AdaptationThresholds] = None,
    ):
        self._profiler = profiler
        self._builder = builder
        self._thresholds = thresholds or AdaptationThresholds()

    @property
    def profiler(self) -> SkillProfiler:
        return self._profiler

    @property
    def builder(self) -> PathBuilder:
        return self._builder

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def record_completion(
        self,
        snapshot: DeveloperSnapshot,
        activity: LearningActivity,
        performance: Performance,
        requested_difficulty: Optional[ActivityDifficulty] = None,
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        """
        Fold one completed activity into the snapshot.

        Args:
            snapshot: Current profile + path for the developer
            activity: The completed activity (normally the path's current one)
            performance: Signals from the completion
            requested_difficulty: Explicit difficulty for the skill's next activity
            at: Event time (defaults to now, UTC)

        Returns:
            AdaptationResult; ``degraded`` is set when the path could not be
            adapted, in which case the snapshot is returned unchanged
        """
        at = at or datetime.now(timezone.utc)
        try:
            return self._record_completion(snapshot, activity, performance, requested_difficulty, at)
        except PathInvariantError as exc:
            rationale = (
                f"Kept previous path for {activity.topic}: adaptation after "
                f"{activity.activity_id} failed ({exc})"
            )
            logger.warning(rationale)
            return AdaptationResult(
                snapshot=snapshot,
                adjustments=[
                    Adjustment(
                        AdjustmentKind.ADAPTATION_FAILED,
                        activity.topic,
                        rationale,
                        (activity.activity_id,),
                    )
                ],
                degraded=True,
            )

    def request_difficulty(
        self,
        snapshot: DeveloperSnapshot,
        skill_id: str,
        difficulty: ActivityDifficulty,
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        """
        Use ``difficulty`` for the next activity of ``skill_id`` only.

        Streak counters are unaffected, so the computed band takes over
        again for the activity after.
        """
        if skill_id not in self._profiler.graph:
            raise UnknownSkillError(skill_id, "difficulty request")
        path = snapshot.path
        found = self._builder.next_for_topic(path, skill_id)
        patched = self._builder.redifficulty(path, skill_id, difficulty, at)
        overrides = dict(patched.pending_overrides)
        overrides[skill_id] = difficulty
        patched = replace(patched, pending_overrides=overrides)

        if found is not None:
            _, old = found
            _, new = self._builder.next_for_topic(patched, skill_id)
            rationale = (
                f"{skill_id}: next activity {old.activity_id} ({old.difficulty.label}) "
                f"replaced by {new.activity_id} ({difficulty.label}) on request"
            )
            ids = (old.activity_id, new.activity_id)
        else:
            rationale = f"{skill_id}: next activity will be {difficulty.label} on request"
            ids = ()

        adjustment = Adjustment(AdjustmentKind.DIFFICULTY_REQUESTED, skill_id, rationale, ids)
        logger.info(rationale)
        return AdaptationResult(snapshot=replace(snapshot, path=patched), adjustments=[adjustment])

    def replan(
        self,
        snapshot: DeveloperSnapshot,
        goals: Iterable[LearningGoal],
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        """Regenerate the path wholesale for a new goal set, keeping per-skill difficulty state."""
        goals = tuple(goals)
        old = snapshot.path
        path = self._builder.generate(
            snapshot.developer_id,
            goals,
            snapshot.profile,
            at,
            difficulty_states=old.difficulty_states,
        )
        # Overrides only survive for skills the new path still practises
        overrides = {
            skill_id: difficulty
            for skill_id, difficulty in old.pending_overrides.items()
            if self._builder.next_for_topic(path, skill_id) is not None
        }
        dropped = sorted(set(old.pending_overrides) - set(overrides))
        if dropped:
            logger.debug(f"Dropped difficulty requests for {', '.join(dropped)}: no longer on the path")
        path = replace(path, pending_overrides=overrides)
        for skill_id, difficulty in sorted(overrides.items()):
            path = self._builder.redifficulty(path, skill_id, difficulty, at)
        goal_text = ", ".join(f"{g.skill_id}->{g.target_level.label}" for g in goals) or "none"
        rationale = (
            f"Regenerated path for goals [{goal_text}]: {len(path)} activities "
            f"(was {len(old.remaining)} remaining)"
        )
        logger.info(rationale)
        adjustment = Adjustment(
            AdjustmentKind.PATH_REGENERATED,
            ",".join(g.skill_id for g in goals),
            rationale,
            tuple(a.activity_id for a in path.activities),
        )
        return AdaptationResult(snapshot=replace(snapshot, path=path), adjustments=[adjustment])

    def record_insight(
        self,
        snapshot: DeveloperSnapshot,
        skill_id: str,
        observed: ProficiencyLevel,
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        """Apply a code-derived skill observation and skip content it makes redundant."""
        at = at or datetime.now(timezone.utc)
        old_level = snapshot.profile.level_of(skill_id)
        profile = self._profiler.apply_insight(snapshot.profile, skill_id, observed, at)
        adjustments: list[Adjustment] = []
        new_level = profile.level_of(skill_id)
        if new_level > old_level:
            adjustments.append(
                Adjustment(
                    AdjustmentKind.PROFICIENCY_RAISED,
                    skill_id,
                    f"{skill_id}: raised from {old_level.label} to {new_level.label} "
                    f"based on code analysis",
                )
            )
        path = self._skip_mastered(snapshot.path, profile, at, adjustments)
        for adjustment in adjustments:
            logger.info(adjustment.rationale)
        return AdaptationResult(
            snapshot=replace(snapshot, profile=profile, path=path),
            adjustments=adjustments,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_completion(
        self,
        snapshot: DeveloperSnapshot,
        activity: LearningActivity,
        performance: Performance,
        requested_difficulty: Optional[ActivityDifficulty],
        at: datetime,
    ) -> AdaptationResult:
        skill_id = activity.topic
        adjustments: list[Adjustment] = []

        # 1. Profile
        old_level = snapshot.profile.level_of(skill_id)
        profile = self._profiler.update(snapshot.profile, activity, performance, at)
        new_level = profile.level_of(skill_id)
        if new_level > old_level:
            adjustments.append(
                Adjustment(
                    AdjustmentKind.PROFICIENCY_RAISED,
                    skill_id,
                    f"{skill_id}: raised from {old_level.label} to {new_level.label} "
                    f"after {activity.activity_id} at accuracy {performance.accuracy:.2f} "
                    f"(speed x{performance.speed_ratio:.2f}, {performance.attempts} attempt(s))",
                    (activity.activity_id,),
                )
            )

        # 2. Cursor
        path = snapshot.path
        current = self._builder.next_activity(path)
        on_path = current is not None and current.activity_id == activity.activity_id
        if on_path:
            path = self._builder.advance(path, at)

        # 3. Difficulty state machine
        overrides = dict(path.pending_overrides)
        pending = overrides.get(skill_id)
        overridden = pending is not None and on_path and activity.difficulty == pending
        if overridden:
            # The requested activity is done; streaks decide from here on
            overrides.pop(skill_id)
            pending = None
        base_band = ActivityDifficulty.for_level(old_level) if overridden else activity.difficulty

        old_state = path.difficulty_state(skill_id)
        state = transition(old_state, performance.accuracy, base_band, self._thresholds)
        old_band = old_state.band if old_state.band is not None else base_band
        states = dict(path.difficulty_states)
        states[skill_id] = state
        signal = replace(performance, consistency=consistency(state.recent_accuracies))

        next_band = requested_difficulty or pending or state.band
        if requested_difficulty is not None:
            overrides[skill_id] = requested_difficulty
        path = replace(path, difficulty_states=states, pending_overrides=overrides)

        if state.band != old_band:
            kind = (
                AdjustmentKind.DIFFICULTY_INCREASED
                if state.band > old_band
                else AdjustmentKind.DIFFICULTY_DECREASED
            )
            streak = max(state.success_streak, state.struggle_streak)
            adjustments.append(
                Adjustment(
                    kind,
                    skill_id,
                    f"{skill_id}: difficulty {old_band.label} -> {state.band.label} "
                    f"({state.trend.value}) after {streak} consecutive activities "
                    f"at accuracy {_fmt_accuracies(streak_accuracies(state))}; "
                    f"{_fmt_signal(signal)}",
                    (activity.activity_id,),
                )
            )
        if requested_difficulty is not None:
            adjustments.append(
                Adjustment(
                    AdjustmentKind.DIFFICULTY_REQUESTED,
                    skill_id,
                    f"{skill_id}: next activity set to {requested_difficulty.label} on request "
                    f"(computed band {state.band.label})",
                )
            )

        # 4. Upcoming practice for the skill
        target = path.targets.get(skill_id)
        if self._builder.next_for_topic(path, skill_id) is not None:
            path = self._builder.redifficulty(path, skill_id, next_band, at)
        elif target is not None and new_level.below(target):
            path = self._builder.ensure_follow_up(path, skill_id, next_band, at)
            _, follow_up = self._builder.next_for_topic(path, skill_id)
            adjustments.append(
                Adjustment(
                    AdjustmentKind.FOLLOW_UP_ADDED,
                    skill_id,
                    f"{skill_id}: queued {follow_up.activity_id} ({next_band.label}) because "
                    f"level {new_level.label} is below target {target.label} "
                    f"(accuracy {signal.accuracy:.2f}; {_fmt_signal(signal)})",
                    (follow_up.activity_id,),
                )
            )

        # 5. Remediation
        if state.trend is DifficultyTrend.SCALING_DOWN:
            before = path
            path = self._builder.insert_prerequisites(path, skill_id, levels=profile.levels, at=at)
            if path is not before:
                scheduled = self._scheduled_prerequisites(path, skill_id)
                adjustments.append(
                    Adjustment(
                        AdjustmentKind.PREREQUISITES_INSERTED,
                        skill_id,
                        f"{skill_id}: inserted prerequisites {', '.join(scheduled)} after "
                        f"{state.struggle_streak} consecutive activities at accuracy "
                        f"{_fmt_accuracies(streak_accuracies(state))}; {_fmt_signal(signal)}",
                        tuple(scheduled),
                    )
                )

        # 6. Redundant content
        path = self._skip_mastered(path, profile, at, adjustments)

        for adjustment in adjustments:
            logger.info(f"{snapshot.developer_id}: {adjustment.rationale}")

        return AdaptationResult(
            snapshot=replace(snapshot, profile=profile, path=path),
            adjustments=adjustments,
        )

    def _skip_mastered(
        self,
        path: LearningPath,
        profile: SkillProfile,
        at: datetime,
        adjustments: list[Adjustment],
    ) -> LearningPath:
        mastered = {
            skill_id
            for skill_id, target in path.targets.items()
            if not profile.level_of(skill_id).below(target)
        }
        remaining_ids = [a.activity_id for a in path.remaining]
        patched = self._builder.skip_redundant_content(path, mastered, at)
        if patched is path:
            return path

        kept = {a.activity_id for a in patched.remaining}
        removed = [activity_id for activity_id in remaining_ids if activity_id not in kept]
        skills = sorted({a.topic for a in path.remaining if a.activity_id in removed})
        adjustments.append(
            Adjustment(
                AdjustmentKind.CONTENT_SKIPPED,
                ",".join(skills),
                f"Skipped {', '.join(removed)}: "
                + "; ".join(
                    f"{s} already at {profile.level_of(s).label} "
                    f"(target {path.targets[s].label})"
                    for s in skills
                ),
                tuple(removed),
            )
        )
        return patched

    def _scheduled_prerequisites(self, path: LearningPath, skill_id: str) -> list[str]:
        """Prerequisite activities now waiting before the next ``skill_id`` activity."""
        closure = self._profiler.graph.transitive_prerequisites(skill_id)
        scheduled = []
        for activity in path.remaining:
            if activity.topic == skill_id:
                break
            if activity.topic in closure:
                scheduled.append(activity.activity_id)
        return scheduled
