"""
Exponential Smoother
====================

Keeps a temporally-stable view of the non-neutral emotion mix.

Raw per-frame classifier output jumps around from frame to frame. Each
category's percentage is tracked with a first-order exponential moving
average so that the engagement label built on top of it does not flicker.

Smoothing Choice (EMA):
    Formula: smoothed = smoothed + α * (reading - smoothed)
    Where α ∈ (0, 1] controls responsiveness (higher = more responsive)

    After n identical readings p the remaining gap shrinks geometrically:
        |smoothed_n - p| = |smoothed_0 - p| * (1 - α)^n

Categories missing from a reading keep their previous value. The state is
only ever cleared by reset().
"""

import logging
from typing import Dict, Mapping

from engagement_monitor.models.emotion import NON_NEUTRAL_CATEGORIES, Category


logger = logging.getLogger(__name__)


class ExponentialSmoother:
    """
    Per-category EMA over non-neutral percentages.

    Attributes:
        alpha: EMA smoothing factor (0, 1]

    Example:
        smoother = ExponentialSmoother(alpha=0.1)

        for proportions in readings:
            smoothed = smoother.update(proportions)
            print(smoothed[Category.HAPPY])
    """

    def __init__(
        self,
        alpha: float = 0.1,
        log_every_n_updates: int = 50,
    ) -> None:
        """
        Initialize smoother.

        Args:
            alpha: EMA smoothing factor in (0, 1]
                - 0.1 = very smooth, slow response
                - 0.3 = balanced
                - 0.5 = responsive, more noise
            log_every_n_updates: Log smoothed state every N updates
        """
        if not 0 < alpha <= 1:
            raise ValueError("alpha must be in (0, 1]")

        self.alpha = alpha
        self.log_every_n_updates = log_every_n_updates

        # Internal state
        self._state: Dict[Category, float] = {}
        self._update_count: int = 0

        logger.info(f"ExponentialSmoother initialized: alpha={alpha}")

    def update(self, proportions: Mapping[Category, float]) -> Dict[Category, float]:
        """
        Move the smoothed state toward a new reading.

        An empty mapping (degenerate reading) leaves the state untouched.

        Args:
            proportions: Non-neutral percentages for this tick

        Returns:
            Copy of the smoothed state after the update
        """
        if not proportions:
            return self.state

        state = dict(self._state)
        for category, value in proportions.items():
            prev = state.get(category, 0.0)
            state[category] = prev + self.alpha * (value - prev)
        self._state = state
        self._update_count += 1

        if self._update_count % self.log_every_n_updates == 0:
            summary = ", ".join(
                f"{c.value}={state[c]:.1f}"
                for c in NON_NEUTRAL_CATEGORIES
                if c in state
            )
            logger.info(f"Smoothed [update {self._update_count}]: {summary}")

        return dict(state)

    @property
    def state(self) -> Dict[Category, float]:
        """Point-in-time copy of the smoothed percentages."""
        return dict(self._state)

    @property
    def update_count(self) -> int:
        """Number of non-degenerate updates applied."""
        return self._update_count

    def reset(self) -> None:
        """Clear smoothed state."""
        self._state = {}
        self._update_count = 0
        logger.info("ExponentialSmoother reset")

    def get_metrics(self) -> dict:
        """Get smoother metrics for observability."""
        return {
            "update_count": self._update_count,
            "alpha": self.alpha,
            "smoothed": {c.value: round(v, 3) for c, v in self._state.items()},
        }
