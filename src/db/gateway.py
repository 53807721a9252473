"""
Persistence Gateway.

Durable home of each developer's versioned (profile, path) snapshot.

- load: latest snapshot, or SnapshotNotFound
- save: compare-and-set on the version the caller loaded; a stale
  ``expected_version`` raises VersionConflict and nothing is written

Versions start at 0 (nothing stored); the first save passes
``expected_version=0`` and returns 1.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.errors import SnapshotNotFound, VersionConflict
from src.core.models import DeveloperSnapshot, LearningPath, SkillProfile
from src.db.database import async_session_scope
from src.db.models import DeveloperState


@runtime_checkable
class PersistenceGateway(Protocol):
    async def load(self, developer_id: str) -> DeveloperSnapshot: ...

    async def save(
        self,
        developer_id: str,
        profile: SkillProfile,
        path: LearningPath,
        expected_version: int,
    ) -> int: ...


class InMemoryPersistenceGateway:
    """Dict-backed gateway storing serialized copies, so callers never share objects."""

    def __init__(self):
        self._rows: dict[str, tuple[int, dict[str, Any], dict[str, Any]]] = {}

    def __contains__(self, developer_id: object) -> bool:
        return developer_id in self._rows

    def version_of(self, developer_id: str) -> int:
        row = self._rows.get(developer_id)
        return row[0] if row is not None else 0

    async def load(self, developer_id: str) -> DeveloperSnapshot:
        row = self._rows.get(developer_id)
        if row is None:
            raise SnapshotNotFound(developer_id)
        version, profile, path = row
        return DeveloperSnapshot(
            developer_id=developer_id,
            profile=SkillProfile.from_dict(profile),
            path=LearningPath.from_dict(path),
            version=version,
        )

    async def save(
        self,
        developer_id: str,
        profile: SkillProfile,
        path: LearningPath,
        expected_version: int,
    ) -> int:
        actual = self.version_of(developer_id)
        if actual != expected_version:
            raise VersionConflict(developer_id, expected_version, actual)
        new_version = actual + 1
        self._rows[developer_id] = (new_version, profile.to_dict(), path.to_dict())
        logger.debug(f"Saved {developer_id} at version {new_version}")
        return new_version


class SqlPersistenceGateway:
    """
    SQLAlchemy-backed gateway over the ``developer_states`` table.

    Usage:
        gateway = SqlPersistenceGateway(create_session_factory(engine))
        snapshot = await gateway.load("dev-1")
        version = await gateway.save("dev-1", profile, path, snapshot.version)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._factory = session_factory

    async def load(self, developer_id: str) -> DeveloperSnapshot:
        async with async_session_scope(self._factory) as session:
            row = await session.get(DeveloperState, developer_id)
            if row is None:
                raise SnapshotNotFound(developer_id)
            return DeveloperSnapshot(
                developer_id=developer_id,
                profile=SkillProfile.from_dict(row.profile),
                path=LearningPath.from_dict(row.path),
                version=row.version,
            )

    async def save(
        self,
        developer_id: str,
        profile: SkillProfile,
        path: LearningPath,
        expected_version: int,
    ) -> int:
        new_version = expected_version + 1
        try:
            async with async_session_scope(self._factory) as session:
                if expected_version == 0:
                    await self._insert(session, developer_id, profile, path)
                else:
                    await self._compare_and_set(
                        session, developer_id, profile, path, expected_version
                    )
        except IntegrityError:
            # Another writer created the row first
            actual = await self._stored_version(developer_id)
            raise VersionConflict(developer_id, expected_version, actual) from None

        logger.debug(f"Saved {developer_id} at version {new_version}")
        return new_version

    async def _insert(
        self,
        session: AsyncSession,
        developer_id: str,
        profile: SkillProfile,
        path: LearningPath,
    ) -> None:
        existing = await session.get(DeveloperState, developer_id)
        if existing is not None:
            raise VersionConflict(developer_id, 0, existing.version)
        session.add(
            DeveloperState(
                developer_id=developer_id,
                version=1,
                profile=profile.to_dict(),
                path=path.to_dict(),
            )
        )
        await session.flush()

    async def _compare_and_set(
        self,
        session: AsyncSession,
        developer_id: str,
        profile: SkillProfile,
        path: LearningPath,
        expected_version: int,
    ) -> None:
        result = await session.execute(
            update(DeveloperState)
            .where(
                DeveloperState.developer_id == developer_id,
                DeveloperState.version == expected_version,
            )
            .values(
                version=expected_version + 1,
                profile=profile.to_dict(),
                path=path.to_dict(),
                updated_at=datetime.now(timezone.utc),
            )
        )
        if result.rowcount == 0:
            actual = await session.scalar(
                select(DeveloperState.version).where(DeveloperState.developer_id == developer_id)
            )
            raise VersionConflict(developer_id, expected_version, actual or 0)

    async def _stored_version(self, developer_id: str) -> int:
        async with async_session_scope(self._factory) as session:
            version = await session.scalar(
                select(DeveloperState.version).where(DeveloperState.developer_id == developer_id)
            )
        return version or 0
