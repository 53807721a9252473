"""
Content materialization.

The content generator is an external collaborator: given a topic and a
difficulty band it returns opaque text, and it may be unavailable. Path
progress never waits on it. When generation fails the catalog text of the
activity is served instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from loguru import logger

from src.adaptive.catalog import ActivityCatalog
from src.core.errors import GenerationUnavailable
from src.core.levels import ActivityDifficulty
from src.core.models import LearningActivity


@runtime_checkable
class ContentGenerator(Protocol):
    """Produces challenge/explanation text for a topic at a difficulty."""

    async def materialize(self, topic: str, difficulty: ActivityDifficulty) -> str: ...


@dataclass(frozen=True)
class MaterializedActivity:
    """An activity together with the content to show for it."""

    activity: LearningActivity
    payload: str
    from_fallback: bool = False


class ContentService:
    """
    Materialize path activities, falling back to catalog content.

    Usage:
        service = ContentService(generator, catalog)
        item = await service.materialize(activity)
        if item.from_fallback:
            ...
    """

    def __init__(
        self,
        generator: Optional[ContentGenerator] = None,
        catalog: Optional[ActivityCatalog] = None,
    ):
        self._generator = generator
        self._catalog = catalog or ActivityCatalog()

    async def materialize(self, activity: LearningActivity) -> MaterializedActivity:
        if self._generator is None:
            return self._fallback(activity)
        try:
            payload = await self._generator.materialize(activity.topic, activity.difficulty)
        except GenerationUnavailable as exc:
            logger.warning(f"Serving catalog content for {activity.activity_id}: {exc}")
            return self._fallback(activity)
        return MaterializedActivity(activity=activity, payload=payload)

    def _fallback(self, activity: LearningActivity) -> MaterializedActivity:
        cached = self._catalog.get(activity.activity_id)
        payload = (cached.content if cached is not None else "") or activity.content
        if not payload:
            payload = f"Practice {activity.topic} at {activity.difficulty.label} level."
        return MaterializedActivity(activity=activity, payload=payload, from_fallback=True)
