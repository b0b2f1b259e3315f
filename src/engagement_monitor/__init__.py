"""
Engagement Monitor
==================

Turns a stream of per-frame emotion-classifier scores into session
counters, a rolling timeline and a coarse engagement-state label.

The package subscribes to a pluggable score source, processes ticks
strictly sequentially, and exposes point-in-time snapshots to a
presentation layer.

Components:
    - perception: Score source abstraction (external classifier)
    - signals: Proportion normalization and exponential smoothing
    - session: Session-long counts and dwell time
    - agent: Engagement classification and the per-tick pipeline
    - stream: Sampling loop and rolling history window
    - observability: Display helpers (dwell formatting, chart series)

Example:
    from engagement_monitor.agent import EngagementPipeline
    from engagement_monitor.models import ScoreVector

    pipeline = EngagementPipeline()
    snapshot = pipeline.process_tick(
        ScoreVector.from_mapping({"happy": 0.9, "neutral": 0.1}),
        elapsed_ms=300,
        timestamp_ms=300,
    )
    print(snapshot.engagement_state)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
