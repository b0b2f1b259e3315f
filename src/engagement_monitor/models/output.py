"""
Pipeline Output Models
======================

This module defines the read-only snapshot handed to the presentation layer
after every tick.

Output Contract:
    {
        "timestamp_ms": 48211.5,
        "tick": 161,
        "outcome": "RECORDED",
        "latest": {"category": "happy", "score": 0.83, "timestamp_ms": 48211.5},
        "session": {
            "totals": {"angry": {"count": 2, "duration_ms": 612.0}, ...},
            "overall_dominant": "happy",
            "overall_dwell_ms": 31250.0,
            "overall_dwell": "0:31"
        },
        "proportions": {"angry": 3.1, "happy": 81.0, ...},
        "smoothed": {"angry": 4.7, "happy": 70.2, ...},
        "engagement_state": "Highly Engaged",
        "engagement_score": 11.8,
        "history": [{"timestamp_ms": 33300.2, "scores": {...}}, ...]
    }

Design Rules:
    - Snapshots are point-in-time copies; later ticks never mutate them
    - Readers must not write back into the pipeline through a snapshot
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from engagement_monitor.models.emotion import Category
from engagement_monitor.models.outcome import TickOutcome
from engagement_monitor.models.profile import UNDETERMINED


class CategoryTotals(BaseModel):
    """Session counters for one category."""

    count: int = Field(default=0, ge=0, description="Ticks won by this category")
    duration_ms: float = Field(
        default=0.0,
        ge=0.0,
        description="Cumulative dwell time while this category was dominant",
    )


class DominantReading(BaseModel):
    """
    Dominant category of the most recent successful tick.

    Attributes:
        category: Category with the highest raw score
        score: Its raw classifier confidence [0, 1]
        timestamp_ms: Tick time (milliseconds)
    """

    category: Category
    score: float = Field(..., ge=0.0, le=1.0)
    timestamp_ms: float


class HistorySample(BaseModel):
    """Serializable form of a HistoryPoint."""

    timestamp_ms: float
    scores: Dict[Category, float] = Field(default_factory=dict)


class SessionSummary(BaseModel):
    """
    Session-long counters plus the overall dominant category.

    Attributes:
        totals: Count and dwell time per category
        overall_dominant: Category with the most ticks, None before any tick
        overall_dwell_ms: Dwell time of the overall dominant category
        overall_dwell: The same, formatted as m:ss
    """

    totals: Dict[Category, CategoryTotals] = Field(default_factory=dict)
    overall_dominant: Optional[Category] = None
    overall_dwell_ms: float = Field(default=0.0, ge=0.0)
    overall_dwell: str = "0:00"


class PipelineSnapshot(BaseModel):
    """
    Complete snapshot of the pipeline after one tick.

    Attributes:
        timestamp_ms: Time of the tick that produced this snapshot
        tick: Number of ticks processed since start (all outcomes)
        outcome: Outcome of the tick, None before the first tick
        latest: Dominant reading of the last successful tick
        session: Session counters and overall dominant category
        proportions: Non-neutral percentages of this tick (empty if degenerate)
        smoothed: Current smoothed non-neutral percentages
        engagement_state: Current engagement label
        engagement_score: Mean absolute difference to the held profile
        history: Ordered rolling history window
    """

    timestamp_ms: float = 0.0
    tick: int = Field(default=0, ge=0)
    outcome: Optional[TickOutcome] = None
    latest: Optional[DominantReading] = None
    session: SessionSummary = Field(default_factory=SessionSummary)
    proportions: Dict[Category, float] = Field(default_factory=dict)
    smoothed: Dict[Category, float] = Field(default_factory=dict)
    engagement_state: str = UNDETERMINED
    engagement_score: Optional[float] = None
    history: List[HistorySample] = Field(default_factory=list)
