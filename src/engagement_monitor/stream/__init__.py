"""
Stream Module
=============

Tick driving and rolling history for the engagement monitor.

This module provides the ingestion layer:
    - SamplingLoop: Fixed-cadence driver pulling from a ScoreSource
    - SamplingLoopMetrics: Loop counters for health monitoring
    - HistoryWindow: Time-evicting buffer of raw readings

Example:
    from engagement_monitor.stream import SamplingLoop

    loop = SamplingLoop(source=source, pipeline=pipeline, period_ms=300)

    # Run as background task
    task = loop.start()

    # Read state at any time
    snapshot = loop.last_snapshot
"""

from engagement_monitor.stream.history import HistoryWindow
from engagement_monitor.stream.sampler import (
    SamplingLoop,
    SamplingLoopMetrics,
    monotonic_ms,
)


__all__ = [
    "HistoryWindow",
    "SamplingLoop",
    "SamplingLoopMetrics",
    "monotonic_ms",
]
