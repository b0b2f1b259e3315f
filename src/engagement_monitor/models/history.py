"""
History Models
==============

Timestamped raw readings kept by the rolling history window.
"""

from dataclasses import dataclass

from engagement_monitor.models.emotion import ScoreVector


@dataclass(frozen=True, slots=True)
class HistoryPoint:
    """
    One raw reading on the rolling timeline.

    Attributes:
        timestamp_ms: Monotonic wall-clock time of the tick (milliseconds)
        scores: Full raw ScoreVector, neutral included
    """

    timestamp_ms: float
    scores: ScoreVector

    def __repr__(self) -> str:
        return f"HistoryPoint(t={self.timestamp_ms:.1f}ms, {self.scores!r})"

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "timestamp_ms": round(self.timestamp_ms, 3),
            "scores": self.scores.to_dict(),
        }
