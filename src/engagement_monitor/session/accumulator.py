"""
Session Accumulator
===================

Running counts and dwell time per category for the whole session.

On every successful tick the dominant category of the raw reading is
credited with one count and with the elapsed time since the previous
successful tick. Totals only grow until an explicit reset.

Concurrency:
    All updates happen on the single sampling task. Readers receive
    copies, and reset swaps in fresh tables in one assignment, so a
    concurrent reader sees either the old totals or all zeros.
"""

import logging
from typing import Dict, Optional, Tuple

from engagement_monitor.models.emotion import CATEGORIES, Category, ScoreVector
from engagement_monitor.models.output import CategoryTotals, SessionSummary
from engagement_monitor.observability.report import format_duration


logger = logging.getLogger(__name__)


def _zeroed() -> Tuple[Dict[Category, int], Dict[Category, float]]:
    return {c: 0 for c in CATEGORIES}, {c: 0.0 for c in CATEGORIES}


class SessionAccumulator:
    """
    Per-category counters keyed by the per-tick dominant category.

    Example:
        accumulator = SessionAccumulator()
        accumulator.record(reading, elapsed_ms=300.0)

        accumulator.overall_dominant()   # Category.HAPPY
        accumulator.duration_ms(Category.HAPPY)
    """

    def __init__(self) -> None:
        """Initialize with all-zero totals."""
        self._totals: Tuple[Dict[Category, int], Dict[Category, float]] = _zeroed()
        logger.info("SessionAccumulator initialized")

    def record(self, reading: ScoreVector, elapsed_ms: float) -> Category:
        """
        Credit the dominant category of a reading.

        Args:
            reading: Raw scores of a successful tick
            elapsed_ms: Time since the previous successful tick

        Returns:
            The dominant category that was credited
        """
        dominant, _ = reading.dominant()
        counts, durations = self._totals
        counts[dominant] += 1
        durations[dominant] += max(0.0, float(elapsed_ms))
        return dominant

    def count(self, category: Category) -> int:
        """Ticks won by a category."""
        return self._totals[0][category]

    def duration_ms(self, category: Category) -> float:
        """Cumulative dwell time of a category."""
        return self._totals[1][category]

    def overall_dominant(self) -> Optional[Category]:
        """
        Category with the largest count.

        Ties resolve to declaration order. Returns None while every
        count is zero.
        """
        counts = self._totals[0]
        best: Optional[Category] = None
        best_count = 0
        for category in CATEGORIES:
            if counts[category] > best_count:
                best = category
                best_count = counts[category]
        return best

    def totals(self) -> Dict[Category, CategoryTotals]:
        """Point-in-time copy of all counters."""
        counts, durations = self._totals
        return {
            c: CategoryTotals(count=counts[c], duration_ms=durations[c])
            for c in CATEGORIES
        }

    def summary(self) -> SessionSummary:
        """Totals plus overall dominant category and its formatted dwell time."""
        counts, durations = self._totals
        overall = self.overall_dominant()
        dwell_ms = durations[overall] if overall is not None else 0.0
        return SessionSummary(
            totals={
                c: CategoryTotals(count=counts[c], duration_ms=durations[c])
                for c in CATEGORIES
            },
            overall_dominant=overall,
            overall_dwell_ms=dwell_ms,
            overall_dwell=format_duration(dwell_ms),
        )

    def reset(self) -> None:
        """Zero all counts and durations."""
        self._totals = _zeroed()
        logger.info("SessionAccumulator reset")
