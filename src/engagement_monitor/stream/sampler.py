"""
Sampling Loop
=============

Driver that pulls readings from a ScoreSource on a fixed cadence.

This module provides the SamplingLoop class which:
    - Invokes the score source once per tick, strictly sequentially
    - Measures elapsed time since the previous successful tick
    - Feeds each reading to the EngagementPipeline
    - Survives source failures without crediting dwell time
    - Supports pause/resume and cooperative stop

Timing Rules:
    - Target period between ticks (300 ms by default); a slow source
      stretches the achieved period
    - elapsed = now - baseline, clamped >= 0; the baseline moves to the
      start of every successful tick
    - On a source failure the baseline moves to the time of the failure
    - On resume the baseline moves to the resume time, so the paused gap
      is never credited

Cancellation:
    The active flag is checked at the top of every iteration. Once a
    pause or stop is observed no further source calls are made.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from engagement_monitor.models.outcome import TickOutcome
from engagement_monitor.models.output import PipelineSnapshot
from engagement_monitor.observability.report import status_text
from engagement_monitor.perception.engine import ScoreSource

if TYPE_CHECKING:
    from engagement_monitor.agent.pipeline import EngagementPipeline


logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Monotonic wall-clock time in milliseconds."""
    return time.monotonic() * 1000.0


class SamplingLoopMetrics:
    """Metrics for SamplingLoop observability."""

    __slots__ = (
        "ticks",
        "readings",
        "degenerate_readings",
        "no_detections",
        "source_errors",
        "last_error",
        "last_tick_ms",
    )

    def __init__(self) -> None:
        self.ticks: int = 0
        self.readings: int = 0
        self.degenerate_readings: int = 0
        self.no_detections: int = 0
        self.source_errors: int = 0
        self.last_error: Optional[str] = None
        self.last_tick_ms: Optional[float] = None

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "ticks": self.ticks,
            "readings": self.readings,
            "degenerate_readings": self.degenerate_readings,
            "no_detections": self.no_detections,
            "source_errors": self.source_errors,
            "last_error": self.last_error,
            "last_tick_ms": self.last_tick_ms,
        }


class SamplingLoop:
    """
    Fixed-cadence sampler feeding the engagement pipeline.

    Attributes:
        source: ScoreSource to pull readings from
        pipeline: EngagementPipeline receiving each reading
        period_ms: Target delay between ticks
        source_timeout_ms: Optional per-call timeout (None = wait forever)
        metrics: Operational metrics

    Example:
        loop = SamplingLoop(source=MockScoreSource(seed=7), pipeline=pipeline)

        loop.start()            # background task
        loop.pause()
        loop.resume()
        await loop.stop(release_source=True)
    """

    def __init__(
        self,
        source: ScoreSource,
        pipeline: "EngagementPipeline",
        period_ms: float = 300.0,
        source_timeout_ms: Optional[float] = None,
        clock: Callable[[], float] = monotonic_ms,
        on_snapshot: Optional[Callable[[PipelineSnapshot], Awaitable[None]]] = None,
    ) -> None:
        """
        Initialize sampling loop.

        Args:
            source: Score source (external classifier)
            pipeline: Pipeline owning the derived state
            period_ms: Target period between ticks. Must be > 0.
            source_timeout_ms: Per-call timeout; a timeout counts as a failure
            clock: Millisecond clock, monotonic
            on_snapshot: Async callback receiving every tick's snapshot
        """
        if period_ms <= 0:
            raise ValueError("period_ms must be positive")
        if source_timeout_ms is not None and source_timeout_ms <= 0:
            raise ValueError("source_timeout_ms must be positive")

        self.source = source
        self.pipeline = pipeline
        self.period_ms = period_ms
        self.source_timeout_ms = source_timeout_ms
        self._clock = clock
        self._on_snapshot = on_snapshot

        # State
        self._running: bool = False
        self._stop_requested: bool = False
        self._active: bool = True
        self._stop_event: asyncio.Event = asyncio.Event()
        self._wake_event: asyncio.Event = asyncio.Event()
        self._baseline_ms: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._last_snapshot: PipelineSnapshot = pipeline.snapshot()

        # Metrics
        self.metrics = SamplingLoopMetrics()

    @property
    def running(self) -> bool:
        """Whether the loop task is alive."""
        return self._running

    @property
    def active(self) -> bool:
        """Whether sampling is enabled (not paused)."""
        return self._active

    @property
    def status(self) -> str:
        """One-line status text for the presentation layer."""
        return status_text(self._active and self._running, self.metrics.last_error)

    @property
    def last_snapshot(self) -> PipelineSnapshot:
        """Snapshot produced by the most recent tick."""
        return self._last_snapshot

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self) -> Optional[asyncio.Task]:
        """
        Start sampling as a background task.

        Must be called from inside a running event loop. Calling start()
        on a running loop only re-enables sampling.
        """
        self.resume()
        return self._task

    def pause(self) -> None:
        """Stop invoking the source after the current iteration."""
        if not self._active:
            return
        self._active = False
        self._wake_event.clear()
        logger.info("SamplingLoop paused")

    def resume(self) -> None:
        """
        Re-enable sampling; the paused gap is not credited as dwell time.

        Starts the background task if no loop is running, so it must be
        called from inside a running event loop.
        """
        if not self._active:
            self._active = True
            self._baseline_ms = self._clock()
            self._wake_event.set()
            logger.info("SamplingLoop resumed")
        self._ensure_task()

    def _ensure_task(self) -> None:
        """Create the run task unless a loop is alive and not stopping."""
        task_alive = self._task is not None and not self._task.done()
        if not self._stop_requested and (self._running or task_alive):
            return

        # A stopping task still owns the loop state until it exits
        previous = self._task if task_alive else None
        self._stop_requested = False
        self._task = asyncio.create_task(
            self._run_after(previous), name="sampling_loop"
        )

    async def _run_after(self, previous: Optional[asyncio.Task]) -> None:
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)
            if self._stop_requested:
                return
        await self.run()

    def toggle(self) -> bool:
        """Flip the active flag. Returns the new value."""
        if self._active:
            self.pause()
        else:
            self.resume()
        return self._active

    def reset(self) -> PipelineSnapshot:
        """Clear pipeline state; sampling continues undisturbed."""
        self.pipeline.reset()
        self._last_snapshot = self.pipeline.snapshot()
        return self._last_snapshot

    def request_stop(self) -> None:
        """Signal the run loop to exit at the top of its next iteration."""
        self._running = False
        self._stop_requested = True
        self._stop_event.set()
        self._wake_event.set()

    async def stop(
        self,
        release_source: bool = False,
        timeout_s: float = 5.0,
    ) -> None:
        """
        Stop sampling gracefully.

        Args:
            release_source: Call the source's close() once stopped
            timeout_s: Wait this long for an in-flight tick before cancelling
        """
        logger.info("SamplingLoop stopping...")
        self.request_stop()

        if self._task is not None and not self._task.done():
            try:
                await asyncio.wait_for(self._task, timeout=timeout_s)
            except asyncio.TimeoutError:
                # wait_for has already cancelled the task
                logger.warning(f"SamplingLoop did not stop within {timeout_s}s; cancelled")

        if release_source:
            close = getattr(self.source, "close", None)
            if close is not None:
                result = close()
                if asyncio.iscoroutine(result):
                    await result

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """
        Sample until stopped.

        Runs indefinitely; pausing suspends without consuming the source.
        Call stop() or request_stop() to terminate.
        """
        self._running = True
        self._stop_requested = False
        self._stop_event.clear()
        self._baseline_ms = self._clock()

        logger.info(
            f"SamplingLoop starting: period={self.period_ms}ms, "
            f"timeout={self.source_timeout_ms}ms"
        )

        try:
            while self._running:
                if not self._active:
                    await self._wake_event.wait()
                    continue

                await self._tick()

                if not self._running:
                    break
                await self._delay()
        finally:
            self._running = False
            logger.info("SamplingLoop stopped")

    async def _delay(self) -> None:
        """Fixed inter-tick delay, cut short by stop."""
        try:
            await asyncio.wait_for(
                self._stop_event.wait(),
                timeout=self.period_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            pass

    async def _read(self):
        if self.source_timeout_ms is None:
            return await self.source.read_scores()
        return await asyncio.wait_for(
            self.source.read_scores(),
            timeout=self.source_timeout_ms / 1000.0,
        )

    async def _tick(self) -> None:
        """Run one tick: read, measure, fan out, publish."""
        now = self._clock()
        baseline = self._baseline_ms if self._baseline_ms is not None else now
        elapsed_ms = max(0.0, now - baseline)
        self._baseline_ms = now
        self.metrics.ticks += 1

        try:
            reading = await self._read()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Failed tick: not dwell time for any category
            self._baseline_ms = self._clock()
            self.metrics.source_errors += 1
            self.metrics.last_error = str(e) or type(e).__name__
            logger.warning(f"Score source error (tick {self.metrics.ticks}): {self.metrics.last_error}")
            snapshot = self.pipeline.record_missed_tick(
                TickOutcome.SOURCE_ERROR, self._baseline_ms
            )
            await self._publish(snapshot)
            return

        timestamp_ms = self._clock()
        self.metrics.last_tick_ms = timestamp_ms
        self.metrics.last_error = None

        if reading is None:
            self.metrics.no_detections += 1
            logger.debug(f"No subject detected (tick {self.metrics.ticks})")
            snapshot = self.pipeline.record_missed_tick(
                TickOutcome.NO_DETECTION, timestamp_ms
            )
        else:
            snapshot = self.pipeline.process_tick(reading, elapsed_ms, timestamp_ms)
            self.metrics.readings += 1
            if snapshot.outcome is TickOutcome.DEGENERATE:
                self.metrics.degenerate_readings += 1

        await self._publish(snapshot)

    async def _publish(self, snapshot: PipelineSnapshot) -> None:
        self._last_snapshot = snapshot
        if self._on_snapshot is None:
            return
        try:
            await self._on_snapshot(snapshot)
        except Exception as e:
            logger.error(f"Snapshot callback error: {e}")
