"""
Skillpath persistence models.

- DeveloperState: one row per developer holding the versioned profile + path
  snapshot as JSON documents
- PublishedSkill: one row per skill in the prerequisite graph, kept in
  publish order
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeveloperState(Base):
    """
    Versioned snapshot of a developer's profile and learning path.

    ``version`` increases by one on every successful save; writers send the
    version they loaded and are rejected when it is stale.
    """

    __tablename__ = "developer_states"

    developer_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    profile: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    path: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<DeveloperState developer={self.developer_id} version={self.version}>"


class PublishedSkill(Base):
    """A skill node and its direct prerequisite ids."""

    __tablename__ = "skills"

    skill_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="concept")
    prerequisites: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<PublishedSkill {self.skill_id} prerequisites={self.prerequisites}>"
