"""
Emotion Models
==============

Category definitions and the raw per-frame score vector.

These are the values produced by the external expression classifier once
per successful tick and consumed by every downstream stage.

Design Rules:
    - Category order is fixed and is the tie-break order everywhere
    - A ScoreVector is immutable once created
    - Neutral is carried in the raw vector but excluded from proportions
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Tuple, Union


class Category(str, Enum):
    """
    Fixed, ordered set of expression categories.

    Declaration order matters: it is the tie-break order for the
    per-tick dominant category and the overall dominant category.
    """

    ANGRY = "angry"
    DISGUSTED = "disgusted"
    FEARFUL = "fearful"
    HAPPY = "happy"
    NEUTRAL = "neutral"
    SAD = "sad"
    SURPRISED = "surprised"


CATEGORIES: Tuple[Category, ...] = tuple(Category)

NON_NEUTRAL_CATEGORIES: Tuple[Category, ...] = tuple(
    c for c in Category if c is not Category.NEUTRAL
)


def parse_category(value: Union[str, Category]) -> Category:
    """Coerce a label such as ``"happy"`` into a Category."""
    if isinstance(value, Category):
        return value
    try:
        return Category(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown category: {value!r}") from None


@dataclass(frozen=True, slots=True)
class ScoreVector:
    """
    Classifier confidence per category for a single frame.

    Every category is present; categories missing from the input are
    filled with 0.0. Scores must lie in [0, 1].

    Attributes:
        scores: Read-only mapping Category -> confidence

    Example:
        vector = ScoreVector.from_mapping({"happy": 0.8, "neutral": 0.2})
        vector.dominant()   # (Category.HAPPY, 0.8)
    """

    scores: Mapping[Category, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Normalize keys, validate ranges and freeze the mapping."""
        normalized: Dict[Category, float] = {c: 0.0 for c in CATEGORIES}
        for key, value in dict(self.scores).items():
            category = parse_category(key)
            score = float(value)
            if not 0.0 <= score <= 1.0:
                raise ValueError(
                    f"Score for {category.value} must be in [0, 1], got {score}"
                )
            normalized[category] = score
        object.__setattr__(self, "scores", MappingProxyType(normalized))

    @classmethod
    def from_mapping(cls, scores: Mapping[Union[str, Category], float]) -> "ScoreVector":
        """Build a vector from a label -> score mapping."""
        return cls(scores=dict(scores))

    def __getitem__(self, category: Union[str, Category]) -> float:
        return self.scores[parse_category(category)]

    def dominant(self) -> Tuple[Category, float]:
        """
        Category with the highest raw score.

        Ties resolve to the category declared first.
        """
        best = CATEGORIES[0]
        for category in CATEGORIES[1:]:
            if self.scores[category] > self.scores[best]:
                best = category
        return best, self.scores[best]

    def to_dict(self) -> Dict[str, float]:
        """Export as label -> score for logging/serialization."""
        return {c.value: self.scores[c] for c in CATEGORIES}

    def __repr__(self) -> str:
        top, score = self.dominant()
        return f"ScoreVector(dominant={top.value}, score={score:.3f})"
