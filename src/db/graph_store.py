"""
SQL-backed Skill Graph store.

Skills are stored one row each, in publish order. ``publish`` rebuilds the
graph from the table, validates the new skill against it and only then
writes, all inside one transaction, so a rejected skill leaves the stored
graph untouched.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.levels import SkillCategory
from src.core.models import Skill
from src.db.database import async_session_scope
from src.db.models import PublishedSkill
from src.graph.skill_graph import SkillGraph


def _to_skill(row: PublishedSkill) -> Skill:
    return Skill(
        skill_id=row.skill_id,
        category=SkillCategory(row.category),
        prerequisites=frozenset(row.prerequisites or ()),
    )


class SqlSkillGraphStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._factory = session_factory

    async def load_graph(self) -> SkillGraph:
        async with async_session_scope(self._factory) as session:
            rows = await self._rows(session)
        graph = SkillGraph.from_skills(_to_skill(row) for row in rows)
        logger.debug(f"Loaded skill graph with {len(graph)} skills")
        return graph

    async def publish(self, skill: Skill) -> Skill:
        async with async_session_scope(self._factory) as session:
            rows = await self._rows(session)
            graph = SkillGraph.from_skills(_to_skill(row) for row in rows)
            stored = graph.add_skill(skill)

            existing = next((row for row in rows if row.skill_id == stored.skill_id), None)
            if existing is None:
                session.add(
                    PublishedSkill(
                        skill_id=stored.skill_id,
                        position=len(rows),
                        category=stored.category.value,
                        prerequisites=sorted(stored.prerequisites),
                    )
                )
            else:
                existing.prerequisites = sorted(stored.prerequisites)
        return stored

    @staticmethod
    async def _rows(session: AsyncSession) -> list[PublishedSkill]:
        result = await session.execute(select(PublishedSkill).order_by(PublishedSkill.position))
        return list(result.scalars().all())
