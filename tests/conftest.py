"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.adaptive.adaptation_engine import AdaptationEngine  # noqa: E402
from src.adaptive.catalog import ActivityCatalog  # noqa: E402
from src.adaptive.path_builder import PathBuilder  # noqa: E402
from src.core.levels import SkillCategory  # noqa: E402
from src.core.models import DeveloperSnapshot, Skill  # noqa: E402
from src.core.thresholds import AdaptationThresholds  # noqa: E402
from src.graph.skill_graph import SkillGraph  # noqa: E402
from src.learning.skill_profiler import SkillProfiler  # noqa: E402

FIXED_NOW = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite database)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def at():
    """Fixed reference time so completion estimates are reproducible."""
    return FIXED_NOW


@pytest.fixture
def skills():
    """
    Small curriculum:

        variables <- loops <- arrays    <- sorting
                           <- recursion <-
    """
    return [
        Skill("variables", SkillCategory.LANGUAGE),
        Skill("loops", SkillCategory.LANGUAGE, {"variables"}),
        Skill("arrays", SkillCategory.CONCEPT, {"loops"}),
        Skill("recursion", SkillCategory.ALGORITHM, {"loops"}),
        Skill("sorting", SkillCategory.ALGORITHM, {"arrays", "recursion"}),
    ]


@pytest.fixture
def graph(skills):
    return SkillGraph.from_skills(skills)


@pytest.fixture
def thresholds():
    return AdaptationThresholds()


@pytest.fixture
def catalog(thresholds):
    return ActivityCatalog(thresholds=thresholds)


@pytest.fixture
def profiler(graph, thresholds):
    return SkillProfiler(graph, thresholds)


@pytest.fixture
def builder(graph, catalog, thresholds):
    return PathBuilder(graph, catalog, thresholds)


@pytest.fixture
def engine(profiler, builder, thresholds):
    return AdaptationEngine(profiler, builder, thresholds)


@pytest.fixture
def make_snapshot(profiler, builder, at):
    """Assess a developer and generate their first path."""

    def _make(goals, assessed=None, developer_id="dev-1", version=1):
        profile = profiler.assess(developer_id, assessed, at)
        path = builder.generate(developer_id, goals, profile, at)
        return DeveloperSnapshot(developer_id=developer_id, profile=profile, path=path, version=version)

    return _make
