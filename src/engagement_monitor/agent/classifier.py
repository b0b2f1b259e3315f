"""
Engagement State Classifier
===========================

Nearest-profile classification with strict-improvement hysteresis.

This module labels the smoothed non-neutral emotion mix with the closest
ReferenceProfile.

Scoring:
    For each profile, the mean absolute difference between its targets and
    the smoothed percentages, over the categories the profile specifies.
    Categories absent from the smoothed state count as 0. Profiles with
    no targets are skipped.

Hysteresis:
    - The lowest score wins; ties go to the profile declared first
    - The held state is only replaced by a STRICTLY lower score, so two
      equally-scoring profiles never alternate
    - No smoothed state, or no usable profiles: no update
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence

from engagement_monitor.models.emotion import Category
from engagement_monitor.models.profile import UNDETERMINED, ReferenceProfile


logger = logging.getLogger(__name__)


@dataclass
class ClassificationResult:
    """Result of a classification step."""

    state: str
    score: Optional[float]
    changed: bool
    scores: Dict[str, float] = field(default_factory=dict)

    def __repr__(self) -> str:
        score = "n/a" if self.score is None else f"{self.score:.2f}"
        return f"ClassificationResult({self.state}, score={score}, changed={self.changed})"


def profile_distance(
    profile: ReferenceProfile,
    smoothed: Mapping[Category, float],
) -> Optional[float]:
    """
    Mean absolute difference between a profile and the smoothed mix.

    Returns:
        The distance, or None if the profile specifies no categories.
    """
    if not profile.targets:
        return None
    total = sum(
        abs(target - smoothed.get(category, 0.0))
        for category, target in profile.targets.items()
    )
    return total / len(profile.targets)


class StateClassifier:
    """
    Holds the current EngagementState and updates it from smoothed proportions.

    Example:
        classifier = StateClassifier(default_profiles())

        result = classifier.classify(smoother.state)
        if result.changed:
            print(f"Now: {result.state}")
    """

    def __init__(self, profiles: Sequence[ReferenceProfile]) -> None:
        """
        Initialize classifier.

        Args:
            profiles: Reference table in tie-break order. May be empty, in
                which case the state stays undetermined.
        """
        names = [p.name for p in profiles]
        if len(set(names)) != len(names):
            raise ValueError("profile names must be unique")

        self._profiles = tuple(profiles)
        self._state: str = UNDETERMINED
        self._score: Optional[float] = None
        self._change_count: int = 0

        if not self._profiles:
            logger.warning("StateClassifier initialized with an empty profile table")
        else:
            logger.info(
                f"StateClassifier initialized: {len(self._profiles)} profiles "
                f"({', '.join(names)})"
            )

    @property
    def profiles(self) -> Sequence[ReferenceProfile]:
        """Reference table in declaration order."""
        return self._profiles

    @property
    def state(self) -> str:
        """Current engagement state label."""
        return self._state

    @property
    def score(self) -> Optional[float]:
        """Distance to the held profile at the last classification."""
        return self._score

    @property
    def change_count(self) -> int:
        """Number of state changes since the last reset."""
        return self._change_count

    def score_profiles(self, smoothed: Mapping[Category, float]) -> Dict[str, float]:
        """Distance to every usable profile, in declaration order."""
        scores: Dict[str, float] = {}
        for profile in self._profiles:
            distance = profile_distance(profile, smoothed)
            if distance is not None:
                scores[profile.name] = distance
        return scores

    def classify(self, smoothed: Mapping[Category, float]) -> ClassificationResult:
        """
        Classify the smoothed state.

        Args:
            smoothed: Current smoothed non-neutral percentages

        Returns:
            ClassificationResult with the (possibly unchanged) state
        """
        if not smoothed:
            return self._no_update()

        scores = self.score_profiles(smoothed)
        if not scores:
            return self._no_update()

        best_name = UNDETERMINED
        best_score = math.inf
        for name, score in scores.items():
            if score < best_score:
                best_name, best_score = name, score

        held_score = scores.get(self._state)
        if held_score is not None and held_score <= best_score:
            # Held profile ties the best: keep it
            self._score = held_score
            return ClassificationResult(
                state=self._state,
                score=held_score,
                changed=False,
                scores=scores,
            )

        previous = self._state
        self._state = best_name
        self._score = best_score
        self._change_count += 1

        logger.warning(
            f"ENGAGEMENT STATE CHANGE: {previous} → {best_name} "
            f"| distance={best_score:.2f}"
        )

        return ClassificationResult(
            state=best_name,
            score=best_score,
            changed=True,
            scores=scores,
        )

    def _no_update(self) -> ClassificationResult:
        return ClassificationResult(
            state=self._state,
            score=self._score,
            changed=False,
        )

    def reset(self) -> None:
        """Return to the undetermined state."""
        self._state = UNDETERMINED
        self._score = None
        self._change_count = 0
        logger.info("StateClassifier reset")
