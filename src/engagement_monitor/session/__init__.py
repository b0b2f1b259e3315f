"""
Session Module
==============

Session-long counters and dwell time per emotion category.
"""

from engagement_monitor.session.accumulator import SessionAccumulator

__all__ = ["SessionAccumulator"]
