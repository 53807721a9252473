"""
Adaptation Service.

Async orchestration around the pure engine. Every event follows the same
unit of work:

    load snapshot -> compute new profile + path -> save(expected_version)

A VersionConflict (another session wrote first) triggers a reload and a
recompute from the fresh snapshot, up to ``save_max_retries`` times. A
degraded adaptation keeps the stored snapshot and writes nothing.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional

from loguru import logger

from config import Settings, get_settings
from src.adaptive.adaptation_engine import AdaptationEngine, AdaptationResult
from src.adaptive.catalog import ActivityCatalog
from src.adaptive.content import ContentGenerator, ContentService, MaterializedActivity
from src.adaptive.path_builder import PathBuilder
from src.core.errors import VersionConflict
from src.core.levels import ActivityDifficulty, ProficiencyLevel
from src.core.models import (
    DeveloperSnapshot,
    LearningActivity,
    LearningGoal,
    Performance,
)
from src.core.thresholds import AdaptationThresholds
from src.db.gateway import PersistenceGateway
from src.graph.skill_graph import SkillGraph
from src.learning.skill_profiler import SkillProfiler, SkillSummary


class AdaptationService:
    """
    Per-developer entry point used by the host application.

    Usage:
        service = build_service(graph, gateway)
        await service.enroll("dev-1", [LearningGoal("recursion", ProficiencyLevel.ADVANCED)])
        item = await service.next_activity("dev-1")
        result = await service.complete_activity("dev-1", item.activity, Performance(accuracy=0.4))
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        engine: AdaptationEngine,
        content: Optional[ContentService] = None,
        max_retries: int = 3,
    ):
        self._gateway = gateway
        self._engine = engine
        self._content = content or ContentService(catalog=engine.builder.catalog)
        self._max_retries = max_retries

    @property
    def engine(self) -> AdaptationEngine:
        return self._engine

    async def enroll(
        self,
        developer_id: str,
        goals: Iterable[LearningGoal],
        assessed: Optional[Mapping[str, ProficiencyLevel | str]] = None,
        at: Optional[datetime] = None,
    ) -> DeveloperSnapshot:
        """
        Assess a new developer, generate their first path and store both.

        Raises:
            VersionConflict: state already exists for ``developer_id``
        """
        profile = self._engine.profiler.assess(developer_id, assessed, at)
        path = self._engine.builder.generate(developer_id, goals, profile, at)
        version = await self._gateway.save(developer_id, profile, path, expected_version=0)
        logger.info(f"Enrolled {developer_id} with {len(path)} activities")
        return DeveloperSnapshot(developer_id=developer_id, profile=profile, path=path, version=version)

    async def snapshot(self, developer_id: str) -> DeveloperSnapshot:
        return await self._gateway.load(developer_id)

    async def complete_activity(
        self,
        developer_id: str,
        activity: LearningActivity,
        performance: Performance,
        requested_difficulty: Optional[ActivityDifficulty] = None,
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        return await self._apply(
            developer_id,
            lambda snapshot: self._engine.record_completion(
                snapshot, activity, performance, requested_difficulty, at
            ),
        )

    async def change_goals(
        self,
        developer_id: str,
        goals: Iterable[LearningGoal],
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        goals = tuple(goals)
        return await self._apply(
            developer_id, lambda snapshot: self._engine.replan(snapshot, goals, at)
        )

    async def request_difficulty(
        self,
        developer_id: str,
        skill_id: str,
        difficulty: ActivityDifficulty,
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        return await self._apply(
            developer_id,
            lambda snapshot: self._engine.request_difficulty(snapshot, skill_id, difficulty, at),
        )

    async def record_insight(
        self,
        developer_id: str,
        skill_id: str,
        observed: ProficiencyLevel,
        at: Optional[datetime] = None,
    ) -> AdaptationResult:
        return await self._apply(
            developer_id,
            lambda snapshot: self._engine.record_insight(snapshot, skill_id, observed, at),
        )

    async def next_activity(self, developer_id: str) -> Optional[MaterializedActivity]:
        """Activity at the cursor with its content, or None when the path is finished."""
        snapshot = await self._gateway.load(developer_id)
        activity = self._engine.builder.next_activity(snapshot.path)
        if activity is None:
            return None
        return await self._content.materialize(activity)

    async def summary(self, developer_id: str, top_n: Optional[int] = None) -> SkillSummary:
        snapshot = await self._gateway.load(developer_id)
        return self._engine.profiler.summary(snapshot.profile, snapshot.path.goals, top_n)

    async def _apply(
        self,
        developer_id: str,
        compute: Callable[[DeveloperSnapshot], AdaptationResult],
    ) -> AdaptationResult:
        attempt = 0
        while True:
            snapshot = await self._gateway.load(developer_id)
            result = compute(snapshot)
            if result.degraded:
                return result
            try:
                version = await self._gateway.save(
                    developer_id,
                    result.snapshot.profile,
                    result.snapshot.path,
                    expected_version=snapshot.version,
                )
            except VersionConflict as exc:
                attempt += 1
                if attempt > self._max_retries:
                    logger.error(f"Giving up on {developer_id} after {attempt} attempts: {exc}")
                    raise
                logger.warning(f"{exc}; reloading (retry {attempt}/{self._max_retries})")
                continue
            result.snapshot = replace(result.snapshot, version=version)
            return result


def build_service(
    graph: SkillGraph,
    gateway: PersistenceGateway,
    catalog: Optional[ActivityCatalog] = None,
    generator: Optional[ContentGenerator] = None,
    settings: Optional[Settings] = None,
) -> AdaptationService:
    """Wire profiler, builder, engine and content service from settings."""
    settings = settings or get_settings()
    thresholds = AdaptationThresholds.from_settings(settings)
    catalog = catalog or ActivityCatalog(thresholds=thresholds)
    engine = AdaptationEngine(
        SkillProfiler(graph, thresholds),
        PathBuilder(graph, catalog, thresholds),
        thresholds,
    )
    return AdaptationService(
        gateway,
        engine,
        content=ContentService(generator, catalog),
        max_retries=settings.save_max_retries,
    )
