"""
Data Models
===========

Typed models for the engagement monitor.

This module re-exports all data models for convenient access.

Models:
    Emotion:
        - Category: Fixed ordered set of expression categories
        - ScoreVector: Immutable raw classifier scores for one frame

    Profiles:
        - ReferenceProfile: Named target proportions
        - UNDETERMINED: Engagement state before any classification

    History:
        - HistoryPoint: (timestamp, ScoreVector) pair

    Output:
        - PipelineSnapshot: Read-only view handed to the presentation layer
        - SessionSummary, CategoryTotals, DominantReading, HistorySample

    Outcome:
        - TickOutcome: Result of a single sampling tick
"""

from engagement_monitor.models.emotion import (
    CATEGORIES,
    NON_NEUTRAL_CATEGORIES,
    Category,
    ScoreVector,
    parse_category,
)
from engagement_monitor.models.history import HistoryPoint
from engagement_monitor.models.outcome import TickOutcome
from engagement_monitor.models.output import (
    CategoryTotals,
    DominantReading,
    HistorySample,
    PipelineSnapshot,
    SessionSummary,
)
from engagement_monitor.models.profile import (
    UNDETERMINED,
    ReferenceProfile,
    default_profiles,
)

__all__ = [
    # Emotion
    "CATEGORIES",
    "NON_NEUTRAL_CATEGORIES",
    "Category",
    "ScoreVector",
    "parse_category",
    # Profiles
    "UNDETERMINED",
    "ReferenceProfile",
    "default_profiles",
    # History
    "HistoryPoint",
    # Output
    "CategoryTotals",
    "DominantReading",
    "HistorySample",
    "PipelineSnapshot",
    "SessionSummary",
    # Outcome
    "TickOutcome",
]
