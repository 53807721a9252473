"""
Activity Catalog.

Template LearningActivity entries keyed by topic and difficulty. When the
catalog has nothing for a (topic, difficulty) pair a template activity is
synthesized, so path generation never stalls on missing content.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

from loguru import logger

from src.core.levels import ActivityDifficulty
from src.core.models import LearningActivity
from src.core.thresholds import AdaptationThresholds


class ActivityCatalog:
    """Lookup and synthesis of learning activities."""

    def __init__(
        self,
        activities: Iterable[LearningActivity] = (),
        thresholds: Optional[AdaptationThresholds] = None,
    ):
        self._thresholds = thresholds or AdaptationThresholds()
        self._by_id: dict[str, LearningActivity] = {}
        self._by_topic: dict[str, list[LearningActivity]] = defaultdict(list)
        for activity in activities:
            self.add(activity)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._by_id

    def add(self, activity: LearningActivity) -> None:
        if activity.activity_id in self._by_id:
            raise ValueError(f"Duplicate catalog activity: {activity.activity_id}")
        self._by_id[activity.activity_id] = activity
        entries = self._by_topic[activity.topic]
        entries.append(activity)
        entries.sort(key=lambda a: (a.difficulty, a.activity_id))

    def get(self, activity_id: str) -> Optional[LearningActivity]:
        return self._by_id.get(activity_id)

    def select(
        self,
        topic: str,
        difficulty: ActivityDifficulty,
        exclude: Iterable[str] = (),
    ) -> LearningActivity:
        """
        Pick an activity for ``topic`` at exactly ``difficulty``.

        Catalog entries win (lowest id first, skipping ``exclude``);
        otherwise a template is synthesized with an id that does not clash
        with ``exclude``.
        """
        excluded = set(exclude)
        for activity in self._by_topic.get(topic, ()):
            if activity.difficulty == difficulty and activity.activity_id not in excluded:
                return activity
        return self.synthesize(topic, difficulty, excluded)

    def synthesize(
        self,
        topic: str,
        difficulty: ActivityDifficulty,
        exclude: Iterable[str] = (),
    ) -> LearningActivity:
        excluded = set(exclude) | set(self._by_id)
        base_id = f"{topic}:{difficulty.label}"
        activity_id = base_id
        n = 2
        while activity_id in excluded:
            activity_id = f"{base_id}#{n}"
            n += 1

        logger.debug(f"Synthesized activity {activity_id}")
        return LearningActivity(
            activity_id=activity_id,
            topic=topic,
            difficulty=difficulty,
            estimated_minutes=self._thresholds.minutes_for(difficulty),
            content=f"Practice {topic} at {difficulty.label} level.",
        )
