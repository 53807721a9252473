"""
Skill Graph.

Prerequisite DAG over skills, kept as an index-addressed arena:
- ``_skills``: Skill records, addressed by position
- ``_index``: skill id -> position
- ``_prereqs`` / ``_dependents``: per-position edge lists of positions

The graph is append-only. Every mutation is staged on copies of the edge
lists and validated for cycles before it is committed, so a rejected
mutation leaves the graph exactly as it was.
"""
from __future__ import annotations

import heapq
from typing import Iterable, Iterator, Optional

from loguru import logger

from src.core.errors import CycleError, UnknownSkillError
from src.core.models import Skill

_WHITE, _GREY, _BLACK = 0, 1, 2


def _find_cycle(
    prereqs: list[list[int]],
    roots: Optional[Iterable[int]] = None,
) -> Optional[list[int]]:
    """
    Return one cycle (as positions, first node repeated at the end) reachable
    from ``roots`` (all nodes when omitted), or None.

    Iterative three-colour DFS so deep graphs do not hit the recursion limit.
    """
    colour = [_WHITE] * len(prereqs)
    start_nodes = range(len(prereqs)) if roots is None else roots

    for root in start_nodes:
        if colour[root] != _WHITE:
            continue
        stack: list[tuple[int, int]] = [(root, 0)]
        trail: list[int] = [root]
        colour[root] = _GREY
        while stack:
            node, edge_idx = stack[-1]
            edges = prereqs[node]
            if edge_idx < len(edges):
                stack[-1] = (node, edge_idx + 1)
                nxt = edges[edge_idx]
                if colour[nxt] == _GREY:
                    return trail[trail.index(nxt):] + [nxt]
                if colour[nxt] == _WHITE:
                    colour[nxt] = _GREY
                    stack.append((nxt, 0))
                    trail.append(nxt)
            else:
                colour[node] = _BLACK
                stack.pop()
                trail.pop()
    return None


class SkillGraph:
    """
    Append-only prerequisite graph.

    Usage:
        graph = SkillGraph.from_skills([
            Skill("loops"),
            Skill("arrays", prerequisites={"loops"}),
        ])
        graph.topological_order({"arrays", "loops"})  # ["loops", "arrays"]
    """

    def __init__(self):
        self._skills: list[Skill] = []
        self._index: dict[str, int] = {}
        self._prereqs: list[list[int]] = []
        self._dependents: list[list[int]] = []

    @classmethod
    def from_skills(cls, skills: Iterable[Skill]) -> SkillGraph:
        """
        Build a graph from skills in any order.

        Raises:
            UnknownSkillError: a prerequisite is not among ``skills``
            CycleError: the prerequisite relation is cyclic
            ValueError: the same skill id is given twice with different data
        """
        graph = cls()
        pending: list[Skill] = []
        for skill in skills:
            if skill.skill_id in graph._index:
                if graph._skills[graph._index[skill.skill_id]] != skill:
                    raise ValueError(f"Conflicting definitions for skill {skill.skill_id!r}")
                continue
            graph._index[skill.skill_id] = len(graph._skills)
            graph._skills.append(skill)
            graph._prereqs.append([])
            graph._dependents.append([])
            pending.append(skill)

        for skill in pending:
            pos = graph._index[skill.skill_id]
            for prereq_id in sorted(skill.prerequisites):
                if prereq_id not in graph._index:
                    raise UnknownSkillError(prereq_id, f"prerequisite of {skill.skill_id}")
                prereq_pos = graph._index[prereq_id]
                graph._prereqs[pos].append(prereq_pos)
                graph._dependents[prereq_pos].append(pos)

        cycle = _find_cycle(graph._prereqs)
        if cycle is not None:
            raise CycleError(graph._ids(cycle))

        logger.debug(f"Loaded skill graph with {len(graph)} skills")
        return graph

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._index

    def __iter__(self) -> Iterator[Skill]:
        return iter(list(self._skills))

    @property
    def skill_ids(self) -> list[str]:
        return sorted(self._index)

    def get(self, skill_id: str) -> Skill:
        return self._skills[self._position(skill_id)]

    def prerequisites_of(self, skill_id: str) -> set[Skill]:
        """Direct prerequisites of a skill."""
        return {self._skills[p] for p in self._prereqs[self._position(skill_id)]}

    def prerequisite_ids(self, skill_id: str) -> frozenset[str]:
        return frozenset(self._skills[p].skill_id for p in self._prereqs[self._position(skill_id)])

    def dependents_of(self, skill_id: str) -> frozenset[str]:
        """Skills that list ``skill_id`` as a direct prerequisite."""
        return frozenset(
            self._skills[p].skill_id for p in self._dependents[self._position(skill_id)]
        )

    def transitive_prerequisites(self, skill_id: str) -> frozenset[str]:
        """All skills reachable through prerequisite edges (excluding the skill itself)."""
        start = self._position(skill_id)
        return frozenset(self._ids(self._reach(start)))

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_order(self, subset: Iterable[str | Skill]) -> list[str]:
        """
        Order ``subset`` so every skill follows the subset members it depends on.

        Dependencies are transitive: if ``a <- x <- b`` and only ``a`` and ``b``
        are requested, ``a`` still precedes ``b``. Ties are broken by ascending
        skill id, so the result is reproducible for a fixed graph and input.

        Raises:
            UnknownSkillError: a requested skill is not in the graph
            CycleError: a cycle is reachable from the requested skills
        """
        positions = sorted({self._position(s.skill_id if isinstance(s, Skill) else s) for s in subset})
        if not positions:
            return []

        cycle = _find_cycle(self._prereqs, positions)
        if cycle is not None:
            raise CycleError(self._ids(cycle))

        members = set(positions)
        depends_on: dict[int, set[int]] = {p: self._reach(p) & members for p in positions}
        unlocks: dict[int, list[int]] = {p: [] for p in positions}
        for pos, deps in depends_on.items():
            for dep in deps:
                unlocks[dep].append(pos)

        indegree = {p: len(deps) for p, deps in depends_on.items()}
        ready = [(self._skills[p].skill_id, p) for p in positions if indegree[p] == 0]
        heapq.heapify(ready)

        ordered: list[str] = []
        while ready:
            skill_id, pos = heapq.heappop(ready)
            ordered.append(skill_id)
            for nxt in unlocks[pos]:
                indegree[nxt] -= 1
                if indegree[nxt] == 0:
                    heapq.heappush(ready, (self._skills[nxt].skill_id, nxt))

        return ordered

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_skill(self, skill: Skill) -> Skill:
        """
        Publish a skill, or append prerequisite edges to an existing one.

        Existing prerequisite edges are never removed. The mutation is
        validated before it is applied.

        Returns:
            The stored skill record (with the merged prerequisite set)

        Raises:
            UnknownSkillError: a prerequisite has not been published
            CycleError: the new edges would close a cycle
            ValueError: the category of an existing skill would change
        """
        for prereq_id in sorted(skill.prerequisites):
            if prereq_id != skill.skill_id and prereq_id not in self._index:
                raise UnknownSkillError(prereq_id, f"prerequisite of {skill.skill_id}")
        if skill.skill_id in skill.prerequisites:
            raise CycleError([skill.skill_id, skill.skill_id])

        existing_pos = self._index.get(skill.skill_id)
        if existing_pos is None:
            pos = len(self._skills)
            stored = skill
            new_edges = sorted(self._index[p] for p in skill.prerequisites)
        else:
            current = self._skills[existing_pos]
            if current.category != skill.category:
                raise ValueError(
                    f"Skill {skill.skill_id!r} is published as {current.category.value}, "
                    f"not {skill.category.value}"
                )
            added = skill.prerequisites - current.prerequisites
            if not added:
                return current
            pos = existing_pos
            stored = Skill(
                skill_id=current.skill_id,
                category=current.category,
                prerequisites=current.prerequisites | added,
            )
            new_edges = sorted(self._index[p] for p in added)

        staged = [list(edges) for edges in self._prereqs]
        if existing_pos is None:
            staged.append([])
        staged[pos].extend(new_edges)

        cycle = _find_cycle(staged, [pos])
        if cycle is not None:
            ids = [self._skills[p].skill_id if p < len(self._skills) else skill.skill_id for p in cycle]
            logger.warning(f"Rejected publish of {skill.skill_id}: cycle {' -> '.join(ids)}")
            raise CycleError(ids)

        if existing_pos is None:
            self._index[skill.skill_id] = pos
            self._skills.append(stored)
            self._dependents.append([])
        else:
            self._skills[pos] = stored
        self._prereqs = staged
        for prereq_pos in new_edges:
            self._dependents[prereq_pos].append(pos)

        logger.info(
            f"Published skill {stored.skill_id} "
            f"(prerequisites: {', '.join(sorted(stored.prerequisites)) or 'none'})"
        )
        return stored

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _position(self, skill_id: str) -> int:
        try:
            return self._index[skill_id]
        except KeyError:
            raise UnknownSkillError(skill_id) from None

    def _ids(self, positions: Iterable[int]) -> list[str]:
        return [self._skills[p].skill_id for p in positions]

    def _reach(self, start: int) -> set[int]:
        seen: set[int] = set()
        stack = list(self._prereqs[start])
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            stack.extend(self._prereqs[node])
        return seen
