"""
Skill Graph.

Components:
- SkillGraph: append-only prerequisite DAG with deterministic topological order
- SkillGraphStore: load/publish interface for the durable graph
- InMemorySkillGraphStore: process-local store
"""
from src.graph.skill_graph import SkillGraph
from src.graph.store import InMemorySkillGraphStore, SkillGraphStore

__all__ = [
    "SkillGraph",
    "SkillGraphStore",
    "InMemorySkillGraphStore",
]
