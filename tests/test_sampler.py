"""
Sampling Loop Tests
===================

Tests for tick timing, failure handling and pause/resume.

The loop runs for real on asyncio with a 1 ms period, but every
timestamp comes from a FakeClock that only the scripted source advances.
"""

import asyncio

import pytest

from engagement_monitor.agent import EngagementPipeline
from engagement_monitor.models import Category, TickOutcome
from engagement_monitor.perception import ScoreSourceError
from engagement_monitor.stream import SamplingLoop


def _run(loop):
    """Run the loop until its scripted source is exhausted."""
    loop.source.on_exhausted = loop.request_stop
    asyncio.run(asyncio.wait_for(loop.run(), timeout=5.0))


class TestSamplingLoopConfig:
    """Tests for loop construction."""

    def test_period_validation(self, scripted_source, fake_clock):
        """Verify the period must be positive."""
        with pytest.raises(ValueError):
            SamplingLoop(scripted_source([]), EngagementPipeline(), period_ms=0, clock=fake_clock)

    def test_timeout_validation(self, scripted_source, fake_clock):
        """Verify a source timeout must be positive when given."""
        with pytest.raises(ValueError):
            SamplingLoop(
                scripted_source([]), EngagementPipeline(),
                source_timeout_ms=0, clock=fake_clock,
            )

    def test_initial_state(self, scripted_source, fake_clock):
        """Verify a fresh loop is active but not running."""
        loop = SamplingLoop(scripted_source([]), EngagementPipeline(), clock=fake_clock)

        assert loop.active is True
        assert loop.running is False
        assert loop.status == "Stopped…"
        assert loop.last_snapshot.tick == 0


class TestSamplingLoopTiming:
    """Tests for elapsed-time measurement."""

    def test_elapsed_since_previous_tick(self, scripted_source, fake_clock, happy_reading):
        """Verify each tick is credited with the time since the previous one."""
        source = scripted_source([
            (100, happy_reading),
            (120, happy_reading),
            (80, happy_reading),
        ])
        pipeline = EngagementPipeline()
        loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock)

        _run(loop)

        assert pipeline.accumulator.count(Category.HAPPY) == 3
        assert pipeline.accumulator.duration_ms(Category.HAPPY) == pytest.approx(220.0)
        assert loop.metrics.ticks == 3
        assert loop.metrics.readings == 3
        assert loop.running is False

    def test_failure_resets_baseline(self, scripted_source, fake_clock, happy_reading):
        """Verify time spent on a failed tick is never credited."""
        source = scripted_source([
            (100, happy_reading),
            (100, happy_reading),
            (500, ScoreSourceError("boom")),
            (50, happy_reading),
        ])
        pipeline = EngagementPipeline()
        outcomes, statuses = [], []

        async def on_snapshot(snapshot):
            outcomes.append(snapshot.outcome)
            statuses.append(loop.status)

        loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock, on_snapshot=on_snapshot)

        _run(loop)

        assert pipeline.accumulator.count(Category.HAPPY) == 3
        assert pipeline.accumulator.duration_ms(Category.HAPPY) == pytest.approx(100.0)
        assert outcomes == [
            TickOutcome.RECORDED,
            TickOutcome.RECORDED,
            TickOutcome.SOURCE_ERROR,
            TickOutcome.RECORDED,
        ]
        assert statuses[2] == "Error: boom"
        assert loop.metrics.source_errors == 1
        assert loop.metrics.last_error is None

    def test_consecutive_failures(self, scripted_source, fake_clock, happy_reading):
        """Verify the loop keeps going through repeated failures."""
        source = scripted_source([
            (100, RuntimeError("a")),
            (100, RuntimeError("b")),
            (100, RuntimeError()),
            (100, happy_reading),
        ])
        pipeline = EngagementPipeline()
        loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock)

        _run(loop)

        assert source.calls == 4
        assert loop.metrics.source_errors == 3
        assert pipeline.accumulator.count(Category.HAPPY) == 1
        assert pipeline.accumulator.duration_ms(Category.HAPPY) == 0.0
        assert pipeline.tick_count == 4

    def test_error_without_message(self, scripted_source, fake_clock):
        """Verify an empty exception message falls back to its type name."""
        source = scripted_source([(10, RuntimeError())])
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        _run(loop)

        assert loop.metrics.last_error == "RuntimeError"

    def test_no_detection(self, scripted_source, fake_clock, happy_reading):
        """Verify a no-detection tick records nothing."""
        source = scripted_source([
            (100, happy_reading),
            (100, None),
            (100, happy_reading),
        ])
        pipeline = EngagementPipeline()
        loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock)

        _run(loop)

        assert loop.metrics.no_detections == 1
        assert loop.metrics.readings == 2
        assert pipeline.accumulator.count(Category.HAPPY) == 2
        assert pipeline.history.size == 2
        assert pipeline.tick_count == 3

    def test_degenerate_counted(self, scripted_source, fake_clock, neutral_reading):
        """Verify degenerate readings are tracked separately."""
        source = scripted_source([(100, neutral_reading)])
        pipeline = EngagementPipeline()
        loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock)

        _run(loop)

        assert loop.metrics.degenerate_readings == 1
        assert pipeline.last_outcome is TickOutcome.DEGENERATE

    def test_timeout_is_failure(self, scripted_source, fake_clock, happy_reading, hang):
        """Verify a source call exceeding the timeout is treated as a failure."""
        source = scripted_source([
            (100, happy_reading),
            (100, hang(1.0)),
            (100, happy_reading),
        ])
        pipeline = EngagementPipeline()
        outcomes = []

        async def on_snapshot(snapshot):
            outcomes.append(snapshot.outcome)

        loop = SamplingLoop(
            source, pipeline,
            period_ms=1, source_timeout_ms=10,
            clock=fake_clock, on_snapshot=on_snapshot,
        )

        _run(loop)

        assert outcomes[1] is TickOutcome.SOURCE_ERROR
        assert loop.metrics.source_errors == 1
        assert pipeline.accumulator.count(Category.HAPPY) == 2
        assert pipeline.accumulator.duration_ms(Category.HAPPY) == 0.0

    def test_callback_error_not_fatal(self, scripted_source, fake_clock, happy_reading):
        """Verify a failing subscriber does not stop sampling."""
        source = scripted_source([(100, happy_reading), (100, happy_reading)])

        async def on_snapshot(snapshot):
            raise RuntimeError("subscriber down")

        loop = SamplingLoop(
            source, EngagementPipeline(),
            period_ms=1, clock=fake_clock, on_snapshot=on_snapshot,
        )

        _run(loop)

        assert source.calls == 2
        assert loop.last_snapshot.tick == 2


class TestSamplingLoopControl:
    """Tests for pause, resume, reset and stop."""

    def test_resume_discards_paused_gap(self, scripted_source, fake_clock, happy_reading, sad_reading):
        """Verify time spent paused is not credited to any category."""
        source = scripted_source([
            (100, happy_reading),
            (100, happy_reading),
            (100, sad_reading),
        ])
        pipeline = EngagementPipeline()

        async def on_snapshot(snapshot):
            if snapshot.tick == 2:
                loop.pause()
                fake_clock.advance(60_000)
                loop.resume()

        loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock, on_snapshot=on_snapshot)

        _run(loop)

        assert pipeline.accumulator.duration_ms(Category.HAPPY) == pytest.approx(100.0)
        assert pipeline.accumulator.duration_ms(Category.SAD) == 0.0
        assert pipeline.accumulator.count(Category.SAD) == 1

    def test_paused_loop_does_not_sample(self, scripted_source, fake_clock, happy_reading):
        """Verify no source calls happen while paused."""
        source = scripted_source([(100, happy_reading), (100, happy_reading)])
        pipeline = EngagementPipeline()

        async def scenario():
            paused = asyncio.Event()

            async def on_snapshot(snapshot):
                if snapshot.tick == 1:
                    loop.pause()
                    paused.set()

            loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock, on_snapshot=on_snapshot)
            source.on_exhausted = loop.request_stop

            task = loop.start()
            await asyncio.wait_for(paused.wait(), timeout=5.0)
            await asyncio.sleep(0.05)

            assert source.calls == 1
            assert loop.running is True
            assert loop.status == "Stopped…"

            fake_clock.advance(5_000)
            loop.resume()
            await asyncio.wait_for(task, timeout=5.0)

        asyncio.run(scenario())

        assert source.calls == 2
        assert pipeline.accumulator.count(Category.HAPPY) == 2
        assert pipeline.accumulator.duration_ms(Category.HAPPY) == 0.0

    def test_toggle(self, scripted_source, fake_clock, happy_reading):
        """Verify toggle flips the active flag."""
        source = scripted_source([(0, happy_reading)] * 10_000)
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        async def scenario():
            assert loop.toggle() is False
            assert loop.active is False
            assert loop.toggle() is True
            assert loop.active is True
            await loop.stop()

        asyncio.run(scenario())

    def test_resume_starts_never_started_loop(self, scripted_source, fake_clock, happy_reading):
        """Verify resuming a loop that was never started begins sampling."""
        source = scripted_source([(0, happy_reading)] * 10_000)
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        async def scenario():
            loop.pause()
            await asyncio.sleep(0.02)
            assert source.calls == 0

            loop.resume()
            await asyncio.sleep(0.05)

            assert loop.active is True
            assert loop.running is True
            assert loop.status == "Detecting…"
            assert source.calls > 0
            await loop.stop()

        asyncio.run(scenario())

    def test_toggle_on_starts_never_started_loop(self, scripted_source, fake_clock, happy_reading):
        """Verify toggling back on begins sampling when no loop is running."""
        source = scripted_source([(0, happy_reading)] * 10_000)
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        async def scenario():
            loop.toggle()
            loop.toggle()
            await asyncio.sleep(0.05)

            assert loop.running is True
            assert source.calls > 0
            await loop.stop()

        asyncio.run(scenario())

    def test_resume_after_stop(self, scripted_source, fake_clock, happy_reading):
        """Verify a stopped loop can be resumed."""
        source = scripted_source([(0, happy_reading)] * 10_000)
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        async def scenario():
            loop.start()
            await asyncio.sleep(0.02)
            await loop.stop()
            calls = source.calls

            loop.resume()
            await asyncio.sleep(0.05)

            assert loop.running is True
            assert source.calls > calls
            await loop.stop()

        asyncio.run(scenario())

    def test_start_while_stopping(self, scripted_source, fake_clock, happy_reading):
        """Verify start() right after request_stop() leaves one loop running."""
        source = scripted_source([(0, happy_reading)] * 10_000)
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        async def scenario():
            first = loop.start()
            await asyncio.sleep(0.02)

            loop.request_stop()
            second = loop.start()
            await asyncio.sleep(0.05)

            assert second is not first
            assert first.done()
            assert loop.running is True
            calls = source.calls
            await asyncio.sleep(0.02)
            assert source.calls > calls

            await loop.stop()
            assert second.done()
            assert loop.running is False

        asyncio.run(scenario())

    def test_stop_while_restart_pending(self, scripted_source, fake_clock, happy_reading):
        """Verify a stop issued before a pending restart begins cancels it."""
        source = scripted_source([(0, happy_reading)] * 10_000)
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        async def scenario():
            loop.start()
            await asyncio.sleep(0.02)

            loop.request_stop()
            pending = loop.start()
            await loop.stop()
            calls = source.calls
            await asyncio.sleep(0.02)

            assert pending.done()
            assert loop.running is False
            assert source.calls == calls

        asyncio.run(scenario())

    def test_reset_clears_pipeline(self, scripted_source, fake_clock, happy_reading):
        """Verify reset leaves the active flag alone and clears derived state."""
        source = scripted_source([(100, happy_reading), (100, happy_reading)])
        pipeline = EngagementPipeline()
        loop = SamplingLoop(source, pipeline, period_ms=1, clock=fake_clock)
        _run(loop)

        snapshot = loop.reset()

        assert snapshot.session.overall_dominant is None
        assert snapshot.history == []
        assert loop.last_snapshot is snapshot
        assert loop.active is True

    def test_stop_releases_source(self, scripted_source, fake_clock, happy_reading):
        """Verify stop() ends the task and closes the source."""
        source = scripted_source([(0, happy_reading)] * 1000)
        loop = SamplingLoop(source, EngagementPipeline(), period_ms=1, clock=fake_clock)

        async def scenario():
            loop.start()
            await asyncio.sleep(0.02)
            await loop.stop(release_source=True)

        asyncio.run(scenario())

        assert loop.running is False
        assert source.closed is True
        assert source.calls >= 1
