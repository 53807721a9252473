"""
Unit tests for SkillGraph and the in-memory graph store.

Tests:
- Loading in arbitrary order, unknown prerequisites, cycles
- Deterministic topological order with transitive constraints
- Append-only publish and cycle rejection without corruption
"""

import pytest

from src.core.errors import CycleError, UnknownSkillError
from src.core.levels import SkillCategory
from src.core.models import Skill
from src.graph.skill_graph import SkillGraph
from src.graph.store import InMemorySkillGraphStore, SkillGraphStore


class TestLoading:
    def test_arbitrary_order(self):
        graph = SkillGraph.from_skills([
            Skill("arrays", prerequisites={"loops"}),
            Skill("loops"),
        ])

        assert len(graph) == 2
        assert "arrays" in graph
        assert graph.prerequisite_ids("arrays") == frozenset({"loops"})

    def test_unknown_prerequisite_rejected(self):
        with pytest.raises(UnknownSkillError) as exc_info:
            SkillGraph.from_skills([Skill("arrays", prerequisites={"loops"})])

        assert exc_info.value.skill_id == "loops"

    def test_cycle_rejected(self):
        with pytest.raises(CycleError) as exc_info:
            SkillGraph.from_skills([
                Skill("a", prerequisites={"b"}),
                Skill("b", prerequisites={"c"}),
                Skill("c", prerequisites={"a"}),
            ])

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_conflicting_duplicate_rejected(self):
        with pytest.raises(ValueError):
            SkillGraph.from_skills([Skill("loops"), Skill("loops", SkillCategory.TOOL)])

    def test_empty_skill_id_rejected(self):
        with pytest.raises(ValueError):
            Skill("")


class TestReadAccess:
    def test_prerequisites_of_returns_skills(self, graph):
        assert graph.prerequisites_of("arrays") == {graph.get("loops")}

    def test_dependents(self, graph):
        assert graph.dependents_of("loops") == frozenset({"arrays", "recursion"})

    def test_transitive_prerequisites(self, graph):
        assert graph.transitive_prerequisites("sorting") == frozenset(
            {"arrays", "recursion", "loops", "variables"}
        )
        assert graph.transitive_prerequisites("variables") == frozenset()

    def test_unknown_skill_lookup(self, graph):
        with pytest.raises(UnknownSkillError):
            graph.prerequisite_ids("haskell")


class TestTopologicalOrder:
    def test_full_order_ties_by_id(self, graph):
        assert graph.topological_order(graph.skill_ids) == [
            "variables",
            "loops",
            "arrays",
            "recursion",
            "sorting",
        ]

    def test_transitive_constraint_inside_subset(self, graph):
        # sorting depends on variables only through skills left out of the subset
        assert graph.topological_order({"sorting", "variables"}) == ["variables", "sorting"]

    def test_independent_skills_sorted_by_id(self, graph):
        assert graph.topological_order(["recursion", "arrays"]) == ["arrays", "recursion"]

    def test_deterministic_regardless_of_input_order(self, skills):
        forward = SkillGraph.from_skills(skills)
        backward = SkillGraph.from_skills(list(reversed(skills)))

        assert forward.topological_order(forward.skill_ids) == backward.topological_order(
            reversed(backward.skill_ids)
        )

    def test_empty_subset(self, graph):
        assert graph.topological_order([]) == []

    def test_unknown_skill(self, graph):
        with pytest.raises(UnknownSkillError):
            graph.topological_order({"loops", "haskell"})


class TestAddSkill:
    def test_new_skill(self, graph):
        stored = graph.add_skill(Skill("searching", SkillCategory.ALGORITHM, {"arrays"}))

        assert stored.skill_id == "searching"
        assert "searching" in graph
        assert graph.dependents_of("arrays") == frozenset({"searching", "sorting"})

    def test_existing_skill_gains_edges(self, graph):
        stored = graph.add_skill(Skill("recursion", SkillCategory.ALGORITHM, {"arrays"}))

        assert stored.prerequisites == frozenset({"loops", "arrays"})
        assert graph.topological_order({"recursion", "arrays"}) == ["arrays", "recursion"]

    def test_republish_without_new_edges_is_noop(self, graph):
        before = graph.get("arrays")

        assert graph.add_skill(Skill("arrays", SkillCategory.CONCEPT)) is before

    def test_cycle_rejected_and_graph_untouched(self, graph):
        order_before = graph.topological_order(graph.skill_ids)

        with pytest.raises(CycleError):
            graph.add_skill(Skill("variables", SkillCategory.LANGUAGE, {"sorting"}))

        assert graph.prerequisite_ids("variables") == frozenset()
        assert graph.dependents_of("sorting") == frozenset()
        assert graph.topological_order(graph.skill_ids) == order_before

    def test_self_prerequisite_rejected(self, graph):
        with pytest.raises(CycleError):
            graph.add_skill(Skill("loops", SkillCategory.LANGUAGE, {"loops"}))

    def test_unknown_prerequisite_rejected(self, graph):
        with pytest.raises(UnknownSkillError):
            graph.add_skill(Skill("graphs", SkillCategory.ALGORITHM, {"trees"}))
        assert "graphs" not in graph

    def test_category_change_rejected(self, graph):
        with pytest.raises(ValueError):
            graph.add_skill(Skill("loops", SkillCategory.TOOL))


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_publish_then_load(self, skills):
        store = InMemorySkillGraphStore(skills)
        await store.publish(Skill("searching", SkillCategory.ALGORITHM, {"arrays"}))

        graph = await store.load_graph()

        assert isinstance(store, SkillGraphStore)
        assert "searching" in graph
        assert len(graph) == 6

    @pytest.mark.asyncio
    async def test_loaded_graph_is_a_copy(self, skills):
        store = InMemorySkillGraphStore(skills)
        graph = await store.load_graph()
        graph.add_skill(Skill("searching", SkillCategory.ALGORITHM, {"arrays"}))

        assert "searching" not in await store.load_graph()

    @pytest.mark.asyncio
    async def test_rejected_publish_keeps_store(self, skills):
        store = InMemorySkillGraphStore(skills)

        with pytest.raises(CycleError):
            await store.publish(Skill("loops", SkillCategory.LANGUAGE, {"sorting"}))

        graph = await store.load_graph()
        assert graph.prerequisite_ids("loops") == frozenset({"variables"})
