"""
Adaptive Learning Engine.

Builds learning paths over the skill graph and re-sequences them after
every completed activity.

Components:
- ActivityCatalog: activity templates per topic and difficulty
- PathBuilder: generates and patches prerequisite-ordered paths
- transition: per-skill difficulty state machine
- AdaptationEngine: folds performance into profile + path with rationales
- ContentService: content materialization with catalog fallback
- AdaptationService: load/compute/save orchestration with conflict retry
"""
from src.adaptive.adaptation_engine import (
    AdaptationEngine,
    AdaptationResult,
    Adjustment,
    AdjustmentKind,
)
from src.adaptive.catalog import ActivityCatalog
from src.adaptive.content import ContentGenerator, ContentService, MaterializedActivity
from src.adaptive.difficulty import transition
from src.adaptive.path_builder import PathBuilder
from src.adaptive.service import AdaptationService, build_service

__all__ = [
    # Main engine
    "AdaptationEngine",
    "AdaptationService",
    "build_service",
    # Component classes
    "ActivityCatalog",
    "ContentService",
    "PathBuilder",
    "transition",
    # Results
    "AdaptationResult",
    "Adjustment",
    "AdjustmentKind",
    "MaterializedActivity",
    # Interfaces
    "ContentGenerator",
]
