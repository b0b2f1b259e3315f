"""
Report Helpers
==============

Presentation-ready derivations of pipeline state.

Everything here is DERIVED from existing state for display purposes.
Nothing in this module feeds back into smoothing or classification.

NO PIPELINE IMPORTS.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from engagement_monitor.models.emotion import CATEGORIES, Category
from engagement_monitor.models.history import HistoryPoint


def format_duration(ms: float) -> str:
    """
    Format a dwell time as ``m:ss``.

    Whole seconds are floored; minutes are not padded and do not roll
    over into hours.

    Examples:
        format_duration(0)        -> "0:00"
        format_duration(61_999)   -> "1:01"
        format_duration(3_725_000) -> "62:05"
    """
    total_seconds = int(max(0.0, ms) // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def timeline_series(
    points: Sequence[HistoryPoint],
    reference_ms: float,
    window_ms: float,
) -> Dict[Category, List[Tuple[float, float]]]:
    """
    Per-category chart series for a rolling timeline.

    Each point becomes ``(progress, score)`` where progress is the position
    of the point inside ``[reference_ms - window_ms, reference_ms]`` mapped
    to [0, 1] and clamped, so that 1.0 is "now" and 0.0 is the left edge.

    Args:
        points: Ordered history points
        reference_ms: Right edge of the chart (usually the current time)
        window_ms: Width of the chart

    Returns:
        Mapping Category -> list of (progress, score) in point order
    """
    if window_ms <= 0:
        raise ValueError("window_ms must be positive")
    if not points:
        return {c: [] for c in CATEGORIES}

    timestamps = np.fromiter((p.timestamp_ms for p in points), dtype=float)
    progress = np.clip((timestamps - (reference_ms - window_ms)) / window_ms, 0.0, 1.0)

    series: Dict[Category, List[Tuple[float, float]]] = {}
    for category in CATEGORIES:
        scores = np.fromiter((p.scores.scores[category] for p in points), dtype=float)
        series[category] = [
            (float(x), float(y)) for x, y in zip(progress, scores)
        ]
    return series


def status_text(active: bool, last_error: Optional[str]) -> str:
    """
    One-line status for the presentation layer.

    The last source error is only surfaced while sampling; a paused loop
    simply reports that it is stopped.
    """
    if not active:
        return "Stopped…"
    if last_error:
        return f"Error: {last_error}"
    return "Detecting…"
