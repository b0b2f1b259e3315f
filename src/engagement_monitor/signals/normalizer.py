"""
Proportion Normalizer
=====================

Converts a raw ScoreVector into percentages over the non-neutral categories.

Neutral is dropped before normalizing, so the result describes the mix of
expressed emotion only. When every non-neutral score is zero there is no
usable mix and an empty mapping is returned; callers treat that as
"no update" rather than as a reading.

    percentage[c] = 100 * score[c] / sum(score[k] for k != neutral)
"""

from typing import Dict

from engagement_monitor.models.emotion import (
    NON_NEUTRAL_CATEGORIES,
    Category,
    ScoreVector,
)


def normalize_proportions(reading: ScoreVector) -> Dict[Category, float]:
    """
    Percentages of each non-neutral category among the non-neutral total.

    Args:
        reading: Raw classifier scores for one frame

    Returns:
        Mapping over all six non-neutral categories summing to 100,
        or an empty dict for a degenerate (all-zero) reading.
    """
    total = sum(reading.scores[c] for c in NON_NEUTRAL_CATEGORIES)
    if total == 0:
        return {}
    return {c: 100.0 * reading.scores[c] / total for c in NON_NEUTRAL_CATEGORIES}
