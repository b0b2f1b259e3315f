"""
Score Source
============

Abstraction over the external expression classifier.

This module provides the ScoreSource protocol and MockScoreSource
implementation. The real classifier (camera capture, face detection and
expression inference) lives outside this package; the pipeline only ever
sees what a ScoreSource returns.

Contract:
    - read_scores() returns a ScoreVector for the current frame
    - read_scores() returns None when no subject is detected
    - read_scores() may raise; the sampling loop treats any exception as a
      transient failure for that tick
    - close() is optional and releases the underlying resource
"""

import asyncio
import logging
import math
from typing import Optional, Protocol

import numpy as np

from engagement_monitor.models.emotion import CATEGORIES, ScoreVector


logger = logging.getLogger(__name__)


class ScoreSourceError(Exception):
    """Transient failure of a score source for a single tick."""


class ScoreSource(Protocol):
    """
    Protocol for classifier backends.

    All implementations must provide an async `read_scores` method
    that classifies the current input frame.
    """

    async def read_scores(self) -> Optional[ScoreVector]:
        """
        Classify the current frame.

        Returns:
            ScoreVector, or None when no subject is detected
        """
        ...


class MockScoreSource:
    """
    Seeded mock classifier for development and testing.

    Generates plausible score vectors by Dirichlet sampling around a
    slowly rotating "mood" category. This gives:
        - Reproducible output for a given seed
        - Readings that sum to 1 across the seven categories
        - Stretches where one category dominates, then hands over

    Attributes:
        seed: RNG seed (None = nondeterministic)
        no_detection_rate: Probability a tick reports no subject
        failure_rate: Probability a tick raises ScoreSourceError
        drift_period_ticks: Ticks spent on each mood before rotating
        concentration: Extra Dirichlet weight on the current mood
        latency_ms: Simulated inference latency
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        no_detection_rate: float = 0.0,
        failure_rate: float = 0.0,
        drift_period_ticks: int = 100,
        concentration: float = 6.0,
        latency_ms: float = 0.0,
    ) -> None:
        """
        Initialize mock score source.

        Args:
            seed: RNG seed for reproducible sequences
            no_detection_rate: Probability in [0, 1] of returning None
            failure_rate: Probability in [0, 1] of raising
            drift_period_ticks: Ticks per mood before moving to the next
            concentration: Dirichlet weight added to the mood category
            latency_ms: Delay before each reading is returned
        """
        if not 0 <= no_detection_rate <= 1:
            raise ValueError("no_detection_rate must be in [0, 1]")
        if not 0 <= failure_rate <= 1:
            raise ValueError("failure_rate must be in [0, 1]")
        if drift_period_ticks < 1:
            raise ValueError("drift_period_ticks must be >= 1")

        self.seed = seed
        self.no_detection_rate = no_detection_rate
        self.failure_rate = failure_rate
        self.drift_period_ticks = drift_period_ticks
        self.concentration = concentration
        self.latency_ms = latency_ms

        self._rng = np.random.default_rng(seed)
        self._tick: int = 0
        self._closed: bool = False

        logger.info(
            f"MockScoreSource initialized: seed={seed}, "
            f"no_detection_rate={no_detection_rate}, failure_rate={failure_rate}, "
            f"period={drift_period_ticks} ticks"
        )

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    async def read_scores(self) -> Optional[ScoreVector]:
        """
        Produce the next mock reading.

        Raises:
            ScoreSourceError: On a simulated failure or after close()
        """
        if self._closed:
            raise ScoreSourceError("score source is closed")

        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)

        self._tick += 1

        if self._rng.random() < self.failure_rate:
            raise ScoreSourceError(f"simulated classifier failure at tick {self._tick}")
        if self._rng.random() < self.no_detection_rate:
            return None

        # Rotate through categories; a half-period sine bump sharpens the
        # mood in the middle of each stretch.
        mood = (self._tick // self.drift_period_ticks) % len(CATEGORIES)
        phase = math.pi * (self._tick % self.drift_period_ticks) / self.drift_period_ticks
        weights = np.full(len(CATEGORIES), 0.5)
        weights[mood] += self.concentration * (0.5 + 0.5 * math.sin(phase))

        sample = self._rng.dirichlet(weights)
        return ScoreVector(
            scores={c: float(min(1.0, max(0.0, v))) for c, v in zip(CATEGORIES, sample)}
        )

    async def close(self) -> None:
        """Release the source; further reads raise ScoreSourceError."""
        self._closed = True
        logger.info("MockScoreSource closed")
