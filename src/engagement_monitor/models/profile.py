"""
Reference Profiles
==================

Named target proportions used to label the smoothed emotion mix.

Each profile lists a target percentage per non-neutral category. The
targets are independent reference points, not a distribution, so they
do not need to sum to 100.

The default table mirrors the five engagement states used in classroom
sessions:

    Highly Engaged             happy-dominant, some surprise
    Constructively Struggling  mixed, mild negative affect
    Confused / Overloaded      surprise and fear
    Disengaged / Distracted    sadness-dominant
    Actively Resistant         anger and disgust
"""

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from engagement_monitor.models.emotion import Category, parse_category


UNDETERMINED = "undetermined"


class ReferenceProfile(BaseModel):
    """
    A named target NonNeutralPercentage.

    Attributes:
        name: Engagement state label reported when this profile wins
        targets: Target percentage per non-neutral category
    """

    name: str = Field(..., min_length=1, description="Engagement state label")
    targets: Dict[Category, float] = Field(
        default_factory=dict,
        description="Target percentage per non-neutral category",
    )

    model_config = {"frozen": True}

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if value.strip().lower() == UNDETERMINED:
            raise ValueError(f"'{UNDETERMINED}' is reserved")
        return value

    @field_validator("targets", mode="before")
    @classmethod
    def _check_targets(cls, value: Dict) -> Dict[Category, float]:
        targets: Dict[Category, float] = {}
        for key, target in dict(value or {}).items():
            category = parse_category(key)
            if category is Category.NEUTRAL:
                raise ValueError("neutral cannot be a profile target")
            target = float(target)
            if not 0.0 <= target <= 100.0:
                raise ValueError(
                    f"Target for {category.value} must be in [0, 100], got {target}"
                )
            targets[category] = target
        return targets


def default_profiles() -> List[ReferenceProfile]:
    """Return the built-in five-profile table, in tie-break order."""
    return [
        ReferenceProfile(
            name="Highly Engaged",
            targets={
                "happy": 35, "surprised": 20, "fearful": 0,
                "angry": 0, "disgusted": 0, "sad": 0,
            },
        ),
        ReferenceProfile(
            name="Constructively Struggling",
            targets={
                "happy": 15, "surprised": 10, "fearful": 10,
                "angry": 10, "disgusted": 0, "sad": 10,
            },
        ),
        ReferenceProfile(
            name="Confused / Overloaded",
            targets={
                "happy": 5, "surprised": 15, "fearful": 15,
                "angry": 10, "disgusted": 5, "sad": 10,
            },
        ),
        ReferenceProfile(
            name="Disengaged / Distracted",
            targets={
                "happy": 5, "surprised": 5, "fearful": 5,
                "angry": 5, "disgusted": 5, "sad": 20,
            },
        ),
        ReferenceProfile(
            name="Actively Resistant",
            targets={
                "happy": 0, "surprised": 5, "fearful": 5,
                "angry": 40, "disgusted": 25, "sad": 10,
            },
        ),
    ]
