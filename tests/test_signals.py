"""
Signal Tests
============

Tests for proportion normalization and exponential smoothing.
"""

import pytest

from engagement_monitor.models import Category, NON_NEUTRAL_CATEGORIES, ScoreVector
from engagement_monitor.signals import ExponentialSmoother, normalize_proportions


class TestNormalizer:
    """Tests for normalize_proportions."""

    def test_angry_reading(self, angry_reading):
        """Verify neutral is excluded and the rest scaled to 100."""
        proportions = normalize_proportions(angry_reading)

        assert Category.NEUTRAL not in proportions
        assert set(proportions) == set(NON_NEUTRAL_CATEGORIES)
        assert proportions[Category.ANGRY] == pytest.approx(77.78, abs=0.01)
        assert proportions[Category.HAPPY] == pytest.approx(11.11, abs=0.01)
        assert proportions[Category.SURPRISED] == pytest.approx(11.11, abs=0.01)
        assert proportions[Category.SAD] == 0.0

    def test_sums_to_100(self, sad_reading):
        """Verify the percentages add up to 100."""
        assert sum(normalize_proportions(sad_reading).values()) == pytest.approx(100.0)

    def test_degenerate_reading(self, neutral_reading):
        """Verify an all-neutral reading yields no proportions."""
        assert normalize_proportions(neutral_reading) == {}

    def test_all_zero_reading(self):
        """Verify an all-zero reading yields no proportions."""
        assert normalize_proportions(ScoreVector.from_mapping({})) == {}


class TestExponentialSmoother:
    """Tests for ExponentialSmoother."""

    def test_alpha_validation(self):
        """Verify alpha must lie in (0, 1]."""
        with pytest.raises(ValueError):
            ExponentialSmoother(alpha=0)
        with pytest.raises(ValueError):
            ExponentialSmoother(alpha=1.5)
        assert ExponentialSmoother(alpha=1.0).alpha == 1.0

    def test_first_step_from_empty(self, angry_reading):
        """Verify one step from an empty state moves alpha of the way."""
        smoother = ExponentialSmoother(alpha=0.1)
        smoothed = smoother.update(normalize_proportions(angry_reading))

        assert smoothed[Category.ANGRY] == pytest.approx(7.78, abs=0.01)
        assert smoothed[Category.HAPPY] == pytest.approx(1.11, abs=0.01)
        assert smoothed[Category.SURPRISED] == pytest.approx(1.11, abs=0.01)
        assert smoothed[Category.FEARFUL] == 0.0

    def test_geometric_convergence(self, angry_reading):
        """Verify the gap shrinks by (1 - alpha) per identical reading."""
        alpha = 0.1
        proportions = normalize_proportions(angry_reading)
        smoother = ExponentialSmoother(alpha=alpha)

        for n in range(1, 31):
            smoothed = smoother.update(proportions)
            for category, target in proportions.items():
                expected_gap = target * (1 - alpha) ** n
                assert abs(smoothed[category] - target) == pytest.approx(expected_gap)

    def test_degenerate_update_is_noop(self, angry_reading):
        """Verify an empty mapping leaves the state untouched."""
        smoother = ExponentialSmoother(alpha=0.1)
        before = smoother.update(normalize_proportions(angry_reading))

        after = smoother.update({})

        assert after == before
        assert smoother.update_count == 1

    def test_missing_category_keeps_value(self):
        """Verify categories absent from a reading hold their value."""
        smoother = ExponentialSmoother(alpha=0.5)
        smoother.update({Category.HAPPY: 50.0})
        smoothed = smoother.update({Category.ANGRY: 100.0})

        assert smoothed[Category.HAPPY] == pytest.approx(25.0)
        assert smoothed[Category.ANGRY] == pytest.approx(50.0)

    def test_returns_copies(self):
        """Verify callers cannot mutate the internal state."""
        smoother = ExponentialSmoother(alpha=0.5)
        smoothed = smoother.update({Category.HAPPY: 50.0})
        smoothed[Category.HAPPY] = 99.0

        assert smoother.state[Category.HAPPY] == pytest.approx(25.0)

    def test_reset(self):
        """Verify reset clears state and counters."""
        smoother = ExponentialSmoother(alpha=0.5)
        smoother.update({Category.HAPPY: 50.0})

        smoother.reset()

        assert smoother.state == {}
        assert smoother.update_count == 0
        assert smoother.get_metrics()["smoothed"] == {}
