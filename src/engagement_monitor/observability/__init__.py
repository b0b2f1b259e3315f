"""
Observability Module
====================

Display-oriented helpers for the engagement monitor.

This module provides:
    - format_duration: m:ss dwell time formatting
    - timeline_series: Per-category chart series from the history window
    - status_text: One-line loop status

DESIGN RULES:
    - Does NOT import pipeline logic
    - Does NOT influence classification
"""

from engagement_monitor.observability.report import (
    format_duration,
    status_text,
    timeline_series,
)


__all__ = [
    "format_duration",
    "status_text",
    "timeline_series",
]
