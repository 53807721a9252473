"""
Difficulty state machine.

One DifficultyState per (developer, skill). After every completed activity
the state moves between ScalingUp, Stable and ScalingDown:

- ``streak_length`` consecutive accuracies >= ``scale_up_accuracy``
  -> ScalingUp, band one step harder (capped at expert)
- ``streak_length`` consecutive accuracies <= ``scale_down_accuracy``
  -> ScalingDown, band one step easier (floored at beginner)
- otherwise -> Stable, band unchanged

``transition`` is a pure function with no I/O.
"""
from __future__ import annotations

from src.core.levels import ActivityDifficulty, DifficultyTrend
from src.core.models import DifficultyState
from src.core.thresholds import AdaptationThresholds


def transition(
    state: DifficultyState,
    accuracy: float,
    base_band: ActivityDifficulty,
    thresholds: AdaptationThresholds,
) -> DifficultyState:
    """
    Apply one completed activity to a skill's difficulty state.

    Args:
        state: Current state (``DifficultyState()`` for a fresh skill)
        accuracy: Accuracy of the completed activity (0-1)
        base_band: Band to start from when the state has none yet,
            normally the difficulty of the completed activity
        thresholds: Streak and accuracy thresholds

    Returns:
        The next state; ``band`` is the difficulty for the skill's next activity
    """
    success_streak = state.success_streak + 1 if accuracy >= thresholds.scale_up_accuracy else 0
    struggle_streak = state.struggle_streak + 1 if accuracy <= thresholds.scale_down_accuracy else 0
    band = state.band if state.band is not None else base_band

    if success_streak >= thresholds.streak_length:
        trend = DifficultyTrend.SCALING_UP
        band = band.harder()
    elif struggle_streak >= thresholds.streak_length:
        trend = DifficultyTrend.SCALING_DOWN
        band = band.easier()
    else:
        trend = DifficultyTrend.STABLE

    recent = (state.recent_accuracies + (accuracy,))[-thresholds.consistency_window:]
    return DifficultyState(
        trend=trend,
        success_streak=success_streak,
        struggle_streak=struggle_streak,
        band=band,
        recent_accuracies=recent,
    )


def streak_accuracies(state: DifficultyState) -> tuple[float, ...]:
    """Accuracies of the streak that drove the current trend (most recent last)."""
    length = max(state.success_streak, state.struggle_streak)
    if length == 0:
        return ()
    return state.recent_accuracies[-length:]
