"""
Signals Module
==============

Signal processing for the per-frame emotion stream.

This module transforms raw classifier scores into temporally-stable
signals suitable for engagement classification.
"""

from engagement_monitor.signals.normalizer import normalize_proportions
from engagement_monitor.signals.smoother import ExponentialSmoother

__all__ = ["normalize_proportions", "ExponentialSmoother"]
