"""
Unit tests for AdaptationEngine.

Scenarios follow a developer through several completions and check that
profile, path and rationale move together.
"""

import pytest

from src.adaptive.adaptation_engine import AdjustmentKind
from src.core.errors import UnknownSkillError
from src.core.levels import ActivityDifficulty, DifficultyTrend, ProficiencyLevel
from src.core.models import (
    DeveloperSnapshot,
    LearningActivity,
    LearningGoal,
    LearningPath,
    Performance,
)


def _complete(engine, snapshot, accuracy, at, **kwargs):
    activity = engine.builder.next_activity(snapshot.path)
    return engine.record_completion(snapshot, activity, Performance(accuracy=accuracy), at=at, **kwargs)


def _kinds(result):
    return [a.kind for a in result.adjustments]


class TestStruggle:
    def test_prerequisites_inserted_after_struggle_streak(self, engine, make_snapshot, at):
        snapshot = make_snapshot(
            [LearningGoal("recursion", ProficiencyLevel.ADVANCED)],
            {"recursion": ProficiencyLevel.BEGINNER},
        )

        first = _complete(engine, snapshot, 0.2, at)
        second = _complete(engine, first.snapshot, 0.15, at)

        path = second.snapshot.path
        assert path.difficulty_state("recursion").trend is DifficultyTrend.SCALING_DOWN
        assert engine.builder.next_activity(path).topic == "loops"
        assert path.current_position == 2
        assert AdjustmentKind.PREREQUISITES_INSERTED in _kinds(second)
        inserted = second.of_kind(AdjustmentKind.PREREQUISITES_INSERTED)[0]
        assert "loops:beginner" in inserted.rationale
        assert "0.20, 0.15" in inserted.rationale
        assert all(r.strip() for r in second.rationales)
        assert not second.degraded
        engine.builder.validate(path)

    def test_struggle_lowers_difficulty(self, engine, make_snapshot, at):
        snapshot = make_snapshot(
            [LearningGoal("arrays", ProficiencyLevel.ADVANCED)],
            {"arrays": ProficiencyLevel.INTERMEDIATE},
        )

        result = _complete(engine, snapshot, 0.3, at)
        result = _complete(engine, result.snapshot, 0.3, at)

        assert AdjustmentKind.DIFFICULTY_DECREASED in _kinds(result)
        # loops runs first, then arrays practice at the lower band
        assert engine.builder.next_activity(result.snapshot.path).activity_id == "loops:beginner"
        result = _complete(engine, result.snapshot, 0.96, at)
        next_up = engine.builder.next_activity(result.snapshot.path)
        assert next_up.activity_id == "arrays:beginner"

        result = _complete(engine, result.snapshot, 0.3, at)

        path = result.snapshot.path
        assert path.difficulty_state("arrays").band == ActivityDifficulty.BEGINNER
        assert engine.builder.next_activity(path).difficulty == ActivityDifficulty.BEGINNER
        assert "loops:beginner" in [a.activity_id for a in path.completed]

    def test_rationale_carries_performance_numbers(self, engine, make_snapshot, at):
        snapshot = make_snapshot(
            [LearningGoal("arrays", ProficiencyLevel.ADVANCED)],
            {"arrays": ProficiencyLevel.INTERMEDIATE},
        )
        for accuracy in (0.3, 0.1):
            activity = engine.builder.next_activity(snapshot.path)
            performance = Performance(accuracy=accuracy, speed_ratio=1.5, consistency=0.9, attempts=3)
            result = engine.record_completion(snapshot, activity, performance, at=at)
            snapshot = result.snapshot

        decreased = result.of_kind(AdjustmentKind.DIFFICULTY_DECREASED)[0]
        assert "0.30, 0.10" in decreased.rationale
        assert "speed x1.50" in decreased.rationale
        assert "3 attempt(s)" in decreased.rationale
        # variance comes from the recorded accuracies, not the caller's value
        assert "variance 0.010" in decreased.rationale
        inserted = result.of_kind(AdjustmentKind.PREREQUISITES_INSERTED)[0]
        assert "speed x1.50" in inserted.rationale

    def test_first_struggle_queues_follow_up(self, engine, make_snapshot, at):
        snapshot = make_snapshot(
            [LearningGoal("recursion", ProficiencyLevel.ADVANCED)],
            {"recursion": ProficiencyLevel.BEGINNER},
        )

        result = _complete(engine, snapshot, 0.2, at)

        assert _kinds(result) == [AdjustmentKind.FOLLOW_UP_ADDED]
        assert engine.builder.next_activity(result.snapshot.path).activity_id == "recursion:beginner#2"


class TestSuccess:
    def test_success_streak_raises_difficulty(self, engine, make_snapshot, at):
        snapshot = make_snapshot([LearningGoal("variables", ProficiencyLevel.EXPERT)])
        result = None
        for _ in range(3):
            result = _complete(engine, snapshot, 0.96, at)
            snapshot = result.snapshot

        path = snapshot.path
        assert path.difficulty_state("variables").trend is DifficultyTrend.SCALING_UP
        assert engine.builder.next_activity(path).difficulty > ActivityDifficulty.BEGINNER
        assert snapshot.profile.level_of("variables") == ProficiencyLevel.ADVANCED
        assert AdjustmentKind.DIFFICULTY_INCREASED in _kinds(result)
        assert AdjustmentKind.PROFICIENCY_RAISED in _kinds(result)

    def test_profile_and_path_move_together(self, engine, make_snapshot, at):
        snapshot = make_snapshot([LearningGoal("variables", ProficiencyLevel.BEGINNER)])

        result = _complete(engine, snapshot, 0.96, at)

        assert result.snapshot.profile.level_of("variables") == ProficiencyLevel.BEGINNER
        assert result.snapshot.path.is_complete
        assert result.snapshot.version == snapshot.version
        # input snapshot untouched
        assert snapshot.profile.level_of("variables") == ProficiencyLevel.NOVICE
        assert snapshot.path.current_position == 0


class TestRequestedDifficulty:
    def test_request_replaces_next_activity_once(self, engine, make_snapshot, at):
        snapshot = make_snapshot(
            [LearningGoal("recursion", ProficiencyLevel.ADVANCED)],
            {"recursion": ProficiencyLevel.BEGINNER},
        )

        requested = engine.request_difficulty(snapshot, "recursion", ActivityDifficulty.ADVANCED, at)

        path = requested.snapshot.path
        assert engine.builder.next_activity(path).activity_id == "recursion:advanced"
        assert path.pending_overrides == {"recursion": ActivityDifficulty.ADVANCED}
        assert _kinds(requested) == [AdjustmentKind.DIFFICULTY_REQUESTED]

        done = _complete(engine, requested.snapshot, 0.7, at)

        path = done.snapshot.path
        assert path.pending_overrides == {}
        assert engine.builder.next_activity(path).difficulty == ActivityDifficulty.BEGINNER

    def test_request_with_completion(self, engine, make_snapshot, at):
        snapshot = make_snapshot(
            [LearningGoal("recursion", ProficiencyLevel.ADVANCED)],
            {"recursion": ProficiencyLevel.BEGINNER},
        )

        result = _complete(engine, snapshot, 0.7, at, requested_difficulty=ActivityDifficulty.EXPERT)

        next_up = engine.builder.next_activity(result.snapshot.path)
        assert next_up.activity_id == "recursion:expert"
        assert result.snapshot.path.difficulty_state("recursion").band == ActivityDifficulty.BEGINNER
        assert AdjustmentKind.DIFFICULTY_REQUESTED in _kinds(result)

    def test_unknown_skill_rejected(self, engine, make_snapshot):
        snapshot = make_snapshot([LearningGoal("recursion", ProficiencyLevel.ADVANCED)])

        with pytest.raises(UnknownSkillError):
            engine.request_difficulty(snapshot, "haskell", ActivityDifficulty.EXPERT)


class TestReplanAndInsight:
    def test_abandoning_goals_empties_path(self, engine, make_snapshot, at):
        snapshot = make_snapshot([LearningGoal("sorting", ProficiencyLevel.INTERMEDIATE)])
        snapshot = _complete(engine, snapshot, 0.7, at).snapshot

        result = engine.replan(snapshot, [], at)

        assert len(result.snapshot.path) == 0
        assert _kinds(result) == [AdjustmentKind.PATH_REGENERATED]
        assert "variables" in result.snapshot.path.difficulty_states

    def test_replan_for_new_goal(self, engine, make_snapshot, at):
        snapshot = make_snapshot([LearningGoal("variables", ProficiencyLevel.BEGINNER)])

        result = engine.replan(snapshot, [LearningGoal("arrays", ProficiencyLevel.BEGINNER)], at)

        assert [a.topic for a in result.snapshot.path.activities] == ["variables", "loops", "arrays"]
        assert result.snapshot.path.goals == (LearningGoal("arrays", ProficiencyLevel.BEGINNER),)

    def test_replan_keeps_lowered_band(self, engine, make_snapshot, at):
        goal = LearningGoal("arrays", ProficiencyLevel.ADVANCED)
        snapshot = make_snapshot([goal], {"arrays": ProficiencyLevel.INTERMEDIATE})
        for _ in range(2):
            snapshot = _complete(engine, snapshot, 0.3, at).snapshot
        state = snapshot.path.difficulty_state("arrays")
        assert state.trend is DifficultyTrend.SCALING_DOWN
        assert state.band == ActivityDifficulty.BEGINNER

        result = engine.replan(
            snapshot, [goal, LearningGoal("recursion", ProficiencyLevel.BEGINNER)], at
        )

        path = result.snapshot.path
        _, arrays = engine.builder.next_for_topic(path, "arrays")
        assert arrays.difficulty == ActivityDifficulty.BEGINNER
        assert path.difficulty_state("arrays") == state
        engine.builder.validate(path)

    def test_replan_drops_overrides_for_skills_off_the_path(self, engine, make_snapshot, at):
        snapshot = make_snapshot(
            [LearningGoal("recursion", ProficiencyLevel.ADVANCED)],
            {"recursion": ProficiencyLevel.BEGINNER},
        )
        snapshot = engine.request_difficulty(
            snapshot, "recursion", ActivityDifficulty.ADVANCED, at
        ).snapshot

        result = engine.replan(snapshot, [LearningGoal("arrays", ProficiencyLevel.BEGINNER)], at)

        assert result.snapshot.path.pending_overrides == {}

    def test_replan_reapplies_overrides_still_on_the_path(self, engine, make_snapshot, at):
        goal = LearningGoal("recursion", ProficiencyLevel.ADVANCED)
        snapshot = make_snapshot([goal], {"recursion": ProficiencyLevel.BEGINNER})
        snapshot = engine.request_difficulty(
            snapshot, "recursion", ActivityDifficulty.ADVANCED, at
        ).snapshot

        result = engine.replan(snapshot, [goal, LearningGoal("arrays", ProficiencyLevel.BEGINNER)], at)

        path = result.snapshot.path
        assert path.pending_overrides == {"recursion": ActivityDifficulty.ADVANCED}
        _, recursion = engine.builder.next_for_topic(path, "recursion")
        assert recursion.activity_id == "recursion:advanced"

    def test_insight_skips_mastered_content(self, engine, make_snapshot, at):
        snapshot = make_snapshot([LearningGoal("sorting", ProficiencyLevel.INTERMEDIATE)])

        result = engine.record_insight(snapshot, "sorting", ProficiencyLevel.ADVANCED, at)

        assert _kinds(result) == [AdjustmentKind.PROFICIENCY_RAISED, AdjustmentKind.CONTENT_SKIPPED]
        skipped = result.of_kind(AdjustmentKind.CONTENT_SKIPPED)[0]
        assert skipped.activity_ids == ("sorting:beginner",)
        assert "sorting" not in [a.topic for a in result.snapshot.path.activities]

    def test_insight_keeps_content_later_work_depends_on(self, engine, make_snapshot, at):
        snapshot = make_snapshot([LearningGoal("sorting", ProficiencyLevel.INTERMEDIATE)])

        result = engine.record_insight(snapshot, "arrays", ProficiencyLevel.ADVANCED, at)

        assert _kinds(result) == [AdjustmentKind.PROFICIENCY_RAISED]
        assert "arrays" in [a.topic for a in result.snapshot.path.activities]


class TestDegradation:
    def test_failed_adaptation_keeps_previous_snapshot(self, engine, profiler, at):
        profile = profiler.assess("dev-1", at=at)
        broken = LearningPath(
            developer_id="dev-1",
            activities=[LearningActivity("arrays:beginner", "arrays", ActivityDifficulty.BEGINNER)],
            targets={"arrays": ProficiencyLevel.ADVANCED},
        )
        snapshot = DeveloperSnapshot("dev-1", profile, broken, version=4)

        result = _complete(engine, snapshot, 0.4, at)

        assert result.degraded
        assert result.snapshot is snapshot
        assert _kinds(result) == [AdjustmentKind.ADAPTATION_FAILED]
        assert "arrays" in result.rationales[0]
