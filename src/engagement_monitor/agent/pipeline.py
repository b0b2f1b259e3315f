"""
Engagement Pipeline
===================

Sequential per-tick pipeline owning all derived state.

LangGraph is used for CONTROL FLOW only: one invocation per tick walks the
reading through the stages below. All mutable state lives in the stage
objects owned by the pipeline, and every call returns a snapshot for the
presentation layer.

Graph Structure:
    START → accumulate_session → normalize_reading
          ─(usable)─→ smooth_proportions → classify_state → record_history → END
          ─(degenerate)──────────────────────────────────→ record_history → END

Owned State:
    - SessionAccumulator  (counts + dwell time)
    - ExponentialSmoother (SmoothedState)
    - StateClassifier     (EngagementState)
    - HistoryWindow       (rolling raw readings)
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypedDict

from langgraph.graph import END, StateGraph

from engagement_monitor.agent.classifier import ClassificationResult, StateClassifier
from engagement_monitor.models.emotion import Category, ScoreVector
from engagement_monitor.models.history import HistoryPoint
from engagement_monitor.models.outcome import TickOutcome
from engagement_monitor.models.output import (
    DominantReading,
    HistorySample,
    PipelineSnapshot,
)
from engagement_monitor.models.profile import ReferenceProfile, default_profiles
from engagement_monitor.observability.report import format_duration, timeline_series
from engagement_monitor.session.accumulator import SessionAccumulator
from engagement_monitor.signals.normalizer import normalize_proportions
from engagement_monitor.signals.smoother import ExponentialSmoother
from engagement_monitor.stream.history import HistoryWindow


logger = logging.getLogger(__name__)


class TickGraphState(TypedDict):
    """
    State passed through the tick graph.

    Attributes:
        reading: Raw scores of this tick
        elapsed_ms: Time since the previous successful tick
        timestamp_ms: Time of this tick
        dominant: Dominant category and score of the reading
        proportions: Non-neutral percentages (empty if degenerate)
        smoothed: Smoothed state after this tick
        classification: Classifier result for this tick
        outcome: RECORDED or DEGENERATE
        history_size: Points in the history window after this tick
    """
    reading: ScoreVector
    elapsed_ms: float
    timestamp_ms: float
    dominant: Optional[DominantReading]
    proportions: Dict[Category, float]
    smoothed: Dict[Category, float]
    classification: Optional[ClassificationResult]
    outcome: Optional[TickOutcome]
    history_size: int


class EngagementPipeline:
    """
    Explicit sequential pipeline advanced by one process_tick() per sample.

    Example:
        pipeline = EngagementPipeline(alpha=0.1, window_ms=15000)

        snapshot = pipeline.process_tick(reading, elapsed_ms=300, timestamp_ms=now)
        print(snapshot.engagement_state, snapshot.session.overall_dwell)
    """

    def __init__(
        self,
        profiles: Optional[Sequence[ReferenceProfile]] = None,
        alpha: float = 0.1,
        window_ms: float = 15000.0,
        log_every_n_ticks: int = 50,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            profiles: Reference table (uses the built-in table if None)
            alpha: Smoothing factor in (0, 1]
            window_ms: History retention window
            log_every_n_ticks: Log state every N ticks
        """
        self.accumulator = SessionAccumulator()
        self.smoother = ExponentialSmoother(alpha=alpha)
        self.classifier = StateClassifier(
            default_profiles() if profiles is None else profiles
        )
        self.history = HistoryWindow(window_ms=window_ms)
        self.log_every_n_ticks = log_every_n_ticks

        self._graph = self._build_graph()

        self._tick: int = 0
        self._last_timestamp_ms: float = 0.0
        self._last_outcome: Optional[TickOutcome] = None
        self._latest: Optional[DominantReading] = None
        self._last_proportions: Dict[Category, float] = {}

        logger.info("EngagementPipeline initialized")

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(TickGraphState)

        workflow.add_node("accumulate_session", self._accumulate_session_node)
        workflow.add_node("normalize_reading", self._normalize_reading_node)
        workflow.add_node("smooth_proportions", self._smooth_proportions_node)
        workflow.add_node("classify_state", self._classify_state_node)
        workflow.add_node("record_history", self._record_history_node)

        workflow.set_entry_point("accumulate_session")
        workflow.add_edge("accumulate_session", "normalize_reading")
        workflow.add_conditional_edges(
            "normalize_reading",
            self._route_after_normalize,
            {"usable": "smooth_proportions", "degenerate": "record_history"},
        )
        workflow.add_edge("smooth_proportions", "classify_state")
        workflow.add_edge("classify_state", "record_history")
        workflow.add_edge("record_history", END)

        return workflow.compile()

    def _accumulate_session_node(self, state: TickGraphState) -> Dict[str, Any]:
        reading = state["reading"]
        category = self.accumulator.record(reading, state["elapsed_ms"])
        return {
            "dominant": DominantReading(
                category=category,
                score=reading.scores[category],
                timestamp_ms=state["timestamp_ms"],
            ),
        }

    def _normalize_reading_node(self, state: TickGraphState) -> Dict[str, Any]:
        proportions = normalize_proportions(state["reading"])
        if not proportions:
            logger.debug("Degenerate reading: all non-neutral scores are zero")
        return {
            "proportions": proportions,
            "outcome": TickOutcome.RECORDED if proportions else TickOutcome.DEGENERATE,
        }

    def _route_after_normalize(self, state: TickGraphState) -> str:
        return "usable" if state.get("proportions") else "degenerate"

    def _smooth_proportions_node(self, state: TickGraphState) -> Dict[str, Any]:
        return {"smoothed": self.smoother.update(state["proportions"])}

    def _classify_state_node(self, state: TickGraphState) -> Dict[str, Any]:
        return {"classification": self.classifier.classify(state["smoothed"])}

    def _record_history_node(self, state: TickGraphState) -> Dict[str, Any]:
        self.history.append(state["timestamp_ms"], state["reading"])
        return {"history_size": self.history.size}

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def process_tick(
        self,
        reading: ScoreVector,
        elapsed_ms: float,
        timestamp_ms: float,
    ) -> PipelineSnapshot:
        """
        Apply one successful reading to every stage.

        This is the main entry point for tick-by-tick processing.

        Args:
            reading: Raw scores from the score source
            elapsed_ms: Time since the previous successful tick (clamped >= 0)
            timestamp_ms: Time of this tick

        Returns:
            Snapshot of all derived state after the tick
        """
        result = self._graph.invoke({
            "reading": reading,
            "elapsed_ms": max(0.0, float(elapsed_ms)),
            "timestamp_ms": float(timestamp_ms),
            "dominant": None,
            "proportions": {},
            "smoothed": self.smoother.state,
            "classification": None,
            "outcome": None,
            "history_size": self.history.size,
        })

        self._tick += 1
        self._last_timestamp_ms = float(timestamp_ms)
        self._last_outcome = result["outcome"]
        self._latest = result["dominant"]
        self._last_proportions = dict(result["proportions"])

        if self._tick % self.log_every_n_ticks == 0:
            overall = self.accumulator.overall_dominant()
            logger.info(
                f"Pipeline [tick {self._tick}]: "
                f"state={self.classifier.state}, "
                f"overall={overall.value if overall else 'none'}, "
                f"history={self.history.size}"
            )

        return self.snapshot()

    def record_missed_tick(
        self,
        outcome: TickOutcome,
        timestamp_ms: float,
    ) -> PipelineSnapshot:
        """
        Note a tick that produced no reading.

        No stage is touched; only the tick counter and outcome change.

        Args:
            outcome: NO_DETECTION or SOURCE_ERROR
            timestamp_ms: Time of the tick
        """
        if outcome not in (TickOutcome.NO_DETECTION, TickOutcome.SOURCE_ERROR):
            raise ValueError(f"{outcome.value} is not a missed-tick outcome")

        self._tick += 1
        self._last_timestamp_ms = float(timestamp_ms)
        self._last_outcome = outcome
        self._last_proportions = {}
        return self.snapshot()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def tick_count(self) -> int:
        """Ticks processed since construction (all outcomes)."""
        return self._tick

    @property
    def last_outcome(self) -> Optional[TickOutcome]:
        """Outcome of the most recent tick."""
        return self._last_outcome

    @property
    def latest(self) -> Optional[DominantReading]:
        """Dominant category and score of the last successful tick."""
        return self._latest

    @property
    def engagement_state(self) -> str:
        """Current engagement state label."""
        return self.classifier.state

    def overall_dominant(self) -> Optional[Category]:
        """Category with the most ticks this session."""
        return self.accumulator.overall_dominant()

    def formatted_dwell(self) -> str:
        """Dwell time of the overall dominant category as m:ss."""
        overall = self.accumulator.overall_dominant()
        if overall is None:
            return format_duration(0)
        return format_duration(self.accumulator.duration_ms(overall))

    def history_snapshot(self) -> Tuple[HistoryPoint, ...]:
        """Ordered, immutable history window."""
        return self.history.snapshot()

    def timeline(self, reference_ms: Optional[float] = None) -> Dict[Category, List[Tuple[float, float]]]:
        """Per-category chart series ending at reference_ms (default: last tick)."""
        reference = self._last_timestamp_ms if reference_ms is None else reference_ms
        return timeline_series(self.history.snapshot(), reference, self.history.window_ms)

    def snapshot(self) -> PipelineSnapshot:
        """Point-in-time copy of all derived state."""
        return PipelineSnapshot(
            timestamp_ms=self._last_timestamp_ms,
            tick=self._tick,
            outcome=self._last_outcome,
            latest=self._latest,
            session=self.accumulator.summary(),
            proportions=dict(self._last_proportions),
            smoothed=self.smoother.state,
            engagement_state=self.classifier.state,
            engagement_score=self.classifier.score,
            history=[
                HistorySample(
                    timestamp_ms=point.timestamp_ms,
                    scores=dict(point.scores.scores),
                )
                for point in self.history.snapshot()
            ],
        )

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear session totals, smoothed state, engagement state and history."""
        self.accumulator.reset()
        self.smoother.reset()
        self.classifier.reset()
        cleared = self.history.clear()
        self._latest = None
        self._last_proportions = {}
        logger.info(f"EngagementPipeline reset (cleared {cleared} history points)")

    def get_metrics(self) -> Dict[str, Any]:
        """Get pipeline metrics for observability."""
        return {
            "tick_count": self._tick,
            "last_outcome": self._last_outcome.value if self._last_outcome else None,
            "engagement_state": self.classifier.state,
            "state_changes": self.classifier.change_count,
            "smoother_updates": self.smoother.update_count,
            "history": self.history.metrics(),
        }


def create_pipeline(config: Any) -> EngagementPipeline:
    """
    Create the pipeline from settings.

    Args:
        config: Settings instance (see engagement_monitor.config)

    Returns:
        Configured EngagementPipeline
    """
    return EngagementPipeline(
        profiles=config.profiles,
        alpha=config.smoothing.alpha,
        window_ms=config.history.window_ms,
    )
