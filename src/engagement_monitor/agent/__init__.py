"""
Agent Module
============

Deterministic engagement-state reasoning over the smoothed emotion mix.

This module implements the core per-tick logic:
    - pipeline.py: LangGraph workflow owning all derived state
    - classifier.py: Nearest-profile classification with hysteresis

Key Design Decisions:
    - LangGraph is used for STRUCTURE, not LLM reasoning
    - One explicit process_tick() call per sample
    - Strict-improvement hysteresis prevents label flicker
"""

from engagement_monitor.agent.classifier import (
    ClassificationResult,
    StateClassifier,
    profile_distance,
)
from engagement_monitor.agent.pipeline import EngagementPipeline, create_pipeline

__all__ = [
    "ClassificationResult",
    "EngagementPipeline",
    "StateClassifier",
    "create_pipeline",
    "profile_distance",
]
