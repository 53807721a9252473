"""
Error taxonomy for the skillpath engine.

- CycleError: prerequisite graph integrity violation
- UnknownSkillError: input references a skill the graph does not know
- VersionConflict: stale base version on save (reload and retry)
- GenerationUnavailable: content generator outage (fall back to the catalog)
- PathInvariantError: a path would place an activity before its prerequisites
- SnapshotNotFound: no stored state for a developer

A zero-length learning path is a valid result, not an error.
"""

from __future__ import annotations

from typing import Iterable


class SkillPathError(Exception):
    """Base class for all engine errors."""


class CycleError(SkillPathError):
    """The prerequisite relation contains a cycle."""

    def __init__(self, cycle: Iterable[str]):
        self.cycle = list(cycle)
        super().__init__(f"Prerequisite cycle detected: {' -> '.join(self.cycle)}")


class UnknownSkillError(SkillPathError, KeyError):
    """A skill identifier is not present in the skill graph."""

    def __init__(self, skill_id: str, context: str | None = None):
        self.skill_id = skill_id
        self.context = context
        message = f"Unknown skill: {skill_id!r}"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class VersionConflict(SkillPathError):
    """A write was based on a stale version of the developer's state."""

    def __init__(self, developer_id: str, expected: int, actual: int):
        self.developer_id = developer_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict for {developer_id}: expected {expected}, stored {actual}"
        )


class GenerationUnavailable(SkillPathError):
    """The content generator could not produce content."""

    def __init__(self, topic: str, difficulty: str, reason: str | None = None):
        self.topic = topic
        self.difficulty = difficulty
        self.reason = reason
        message = f"Content generation unavailable for {topic} ({difficulty})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PathInvariantError(SkillPathError):
    """An activity appears before one of its prerequisite skills."""

    def __init__(self, position: int, skill_id: str, missing: Iterable[str]):
        self.position = position
        self.skill_id = skill_id
        self.missing = sorted(missing)
        super().__init__(
            f"Activity at position {position} ({skill_id}) precedes prerequisites: "
            f"{', '.join(self.missing)}"
        )


class SnapshotNotFound(SkillPathError, LookupError):
    """No profile/path has been stored for the developer."""

    def __init__(self, developer_id: str):
        self.developer_id = developer_id
        super().__init__(f"No stored state for developer {developer_id}")
