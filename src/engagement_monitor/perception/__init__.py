"""
Perception Module
=================

Black-box abstraction over the expression classifier.

The pipeline consumes ONLY the score vectors produced here, never raw
frames. Camera capture and model inference are external concerns.

Components:
    - ScoreSource: Protocol for classifier backends
    - ScoreSourceError: Transient per-tick failure
    - MockScoreSource: Seeded mock for development and testing
"""

from engagement_monitor.perception.engine import (
    MockScoreSource,
    ScoreSource,
    ScoreSourceError,
)

__all__ = [
    "MockScoreSource",
    "ScoreSource",
    "ScoreSourceError",
]
