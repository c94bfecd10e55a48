# Path: puzzle_svc/scoring.py
"""Speed-weighted scoring for solved puzzles."""
from __future__ import annotations

from typing import Optional

from . import config


def elapsed_seconds(launched_at_ms: Optional[int], completed_at_ms: Optional[int]) -> Optional[float]:
    if launched_at_ms is None or completed_at_ms is None:
        return None
    return (completed_at_ms - launched_at_ms) / 1000.0


def award_points(
    base_points: float,
    time_limit: float,
    elapsed: float,
    bonus_multiplier: float = config.BONUS_MULTIPLIER,
    places: int = config.SCORE_DECIMALS,
) -> float:
    """
    Points for a solve: base * (1 + bonus * (1 - elapsed/limit)).

    Args:
        base_points: points of the completed solution line
        time_limit: puzzle timer in seconds
        elapsed: seconds from launch to the concluding move (clamped to [0, time_limit])

    Returns:
        Awarded points rounded to `places` decimals; exactly base_points at the time limit.
    """
    if time_limit <= 0:
        # no window to spend: the bonus is only for an instant solve
        unused = 1.0 if elapsed <= 0 else 0.0
    else:
        elapsed = max(0.0, min(float(elapsed), float(time_limit)))
        unused = 1.0 - elapsed / time_limit
    return round(base_points * (1.0 + bonus_multiplier * unused), places)
