"""
Skill Graph store interface.

The graph is loaded once at process start and extended through
``publish``; a publish that would corrupt the graph fails with CycleError
and leaves both the stored graph and the in-memory graph untouched.
"""
from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from loguru import logger

from src.core.models import Skill
from src.graph.skill_graph import SkillGraph


@runtime_checkable
class SkillGraphStore(Protocol):
    """Durable home of the skill graph."""

    async def load_graph(self) -> SkillGraph: ...

    async def publish(self, skill: Skill) -> Skill: ...


class InMemorySkillGraphStore:
    """Process-local store, used by tests and single-process hosts."""

    def __init__(self, skills: Iterable[Skill] = ()):
        self._graph = SkillGraph.from_skills(skills)

    async def load_graph(self) -> SkillGraph:
        # Callers get their own copy so publishes go through the store
        return SkillGraph.from_skills(self._graph)

    async def publish(self, skill: Skill) -> Skill:
        stored = self._graph.add_skill(skill)
        logger.debug(f"Stored skill {stored.skill_id} in memory")
        return stored
