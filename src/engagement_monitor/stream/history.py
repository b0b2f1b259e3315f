"""
History Window
==============

Time-evicting buffer of raw readings for the rolling timeline.

This module provides the HistoryWindow class, which keeps the raw
ScoreVector of every successful tick for a fixed trailing window so the
presentation layer can chart it.

Design Rules:
    - Points are kept sorted by timestamp; a late point is inserted in order
    - Eviction is purely time-based, relative to the newest point
    - Eviction preserves the relative order of surviving points
    - Reads return immutable snapshots (tuples of frozen points)
    - Does NOT process or modify readings
"""

import logging
from bisect import bisect_right
from typing import Optional, Tuple

from engagement_monitor.models.emotion import ScoreVector
from engagement_monitor.models.history import HistoryPoint


logger = logging.getLogger(__name__)


class HistoryWindow:
    """
    Rolling window of HistoryPoints ordered by timestamp.

    A point is kept while ``point.timestamp_ms >= now_ms - window_ms``.

    Attributes:
        window_ms: Retention window in milliseconds
        evicted_count: Number of points dropped by eviction

    Example:
        window = HistoryWindow(window_ms=15000)

        window.append(now_ms, reading)
        for point in window.snapshot():
            plot(point.timestamp_ms, point.scores)
    """

    def __init__(self, window_ms: float = 15000.0) -> None:
        """
        Initialize history window.

        Args:
            window_ms: Retention window in milliseconds. Must be > 0.
        """
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")

        self._window_ms = float(window_ms)
        self._points: Tuple[HistoryPoint, ...] = ()
        self._evicted_count: int = 0
        self._total_appended: int = 0

    @property
    def window_ms(self) -> float:
        """Retention window in milliseconds."""
        return self._window_ms

    @property
    def size(self) -> int:
        """Current number of points in the window."""
        return len(self._points)

    @property
    def evicted_count(self) -> int:
        """Number of points dropped by eviction."""
        return self._evicted_count

    @property
    def total_appended(self) -> int:
        """Total points ever appended."""
        return self._total_appended

    def append(
        self,
        timestamp_ms: float,
        scores: ScoreVector,
        now_ms: Optional[float] = None,
    ) -> HistoryPoint:
        """
        Insert a reading in timestamp order, then evict everything outside
        the window.

        Args:
            timestamp_ms: Time of the reading
            scores: Full raw reading (neutral included)
            now_ms: Reference time for eviction. Defaults to the newest
                timestamp in the window, so a late point never holds
                back eviction.

        Returns:
            The appended point (which may itself have been evicted if it
            was already older than ``now_ms - window_ms``).
        """
        point = HistoryPoint(timestamp_ms=float(timestamp_ms), scores=scores)
        self._total_appended += 1

        # Equal timestamps keep arrival order
        index = bisect_right([p.timestamp_ms for p in self._points], point.timestamp_ms)
        self._points = self._points[:index] + (point,) + self._points[index:]

        reference = self._points[-1].timestamp_ms if now_ms is None else float(now_ms)
        self.evict(reference)
        return point

    def evict(self, now_ms: float) -> int:
        """
        Drop every point older than ``now_ms - window_ms``.

        Returns:
            Number of points evicted.
        """
        cutoff = now_ms - self._window_ms
        kept = tuple(p for p in self._points if p.timestamp_ms >= cutoff)
        evicted = len(self._points) - len(kept)
        if evicted:
            self._evicted_count += evicted
            logger.debug(f"Evicted {evicted} history point(s) older than {cutoff:.1f}ms")
        self._points = kept
        return evicted

    def snapshot(self) -> Tuple[HistoryPoint, ...]:
        """Ordered, immutable view of the current window."""
        return self._points

    def clear(self) -> int:
        """
        Remove all points.

        Returns:
            Number of points cleared.
        """
        cleared = len(self._points)
        self._points = ()
        return cleared

    def metrics(self) -> dict:
        """
        Get window metrics for observability.

        Returns:
            Dict with size, window_ms, evicted_count, total_appended
        """
        return {
            "size": self.size,
            "window_ms": self._window_ms,
            "evicted_count": self._evicted_count,
            "total_appended": self._total_appended,
        }
