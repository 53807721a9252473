"""
Learning: developer competency tracking.

- skill_profiler: competency maps, gap analysis, trend summaries
"""

from src.learning.skill_profiler import (
    SkillGap,
    SkillProfiler,
    SkillSummary,
    classify_trend,
    consistency,
)

__all__ = [
    "SkillGap",
    "SkillProfiler",
    "SkillSummary",
    "classify_trend",
    "consistency",
]
