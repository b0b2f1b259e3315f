"""
Test Configuration
==================

Pytest fixtures and test configuration for the engagement monitor.
"""

import asyncio
from typing import Callable, List, Optional, Tuple

import pytest

from engagement_monitor.models.emotion import ScoreVector


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


class Hang:
    """Scripted result that blocks the source for a while."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds


class ScriptedSource:
    """
    Score source replaying a fixed script.

    Each step is ``(advance_ms, result)``: the clock is advanced by
    ``advance_ms`` during the call, then ``result`` is returned (a
    ScoreVector or None), raised (an exception) or waited on (a Hang).
    ``on_exhausted`` is called while serving the final step.
    """

    def __init__(self, clock: FakeClock, steps: List[Tuple[float, object]]) -> None:
        self.clock = clock
        self._steps = list(steps)
        self.calls = 0
        self.closed = False
        self.on_exhausted: Optional[Callable[[], None]] = None

    async def read_scores(self) -> Optional[ScoreVector]:
        self.calls += 1
        advance_ms, result = self._steps.pop(0)
        self.clock.advance(advance_ms)
        if not self._steps and self.on_exhausted is not None:
            self.on_exhausted()

        if isinstance(result, Hang):
            await asyncio.sleep(result.seconds)
            return None
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_clock():
    """Provide a FakeClock starting at 0 ms."""
    return FakeClock()


@pytest.fixture
def scripted_source(fake_clock):
    """Factory building a ScriptedSource on the shared fake clock."""
    def _make(steps):
        return ScriptedSource(fake_clock, steps)
    return _make


@pytest.fixture
def hang():
    """Factory for a scripted result that blocks the source."""
    return Hang


@pytest.fixture
def angry_reading():
    """Mostly-angry reading with a little happy, surprised and neutral."""
    return ScoreVector.from_mapping({
        "angry": 0.7,
        "disgusted": 0.0,
        "fearful": 0.0,
        "happy": 0.1,
        "neutral": 0.1,
        "sad": 0.0,
        "surprised": 0.1,
    })


@pytest.fixture
def happy_reading():
    """Clearly happy reading."""
    return ScoreVector.from_mapping({"happy": 0.8, "surprised": 0.1, "neutral": 0.1})


@pytest.fixture
def sad_reading():
    """Clearly sad reading."""
    return ScoreVector.from_mapping({"sad": 0.6, "neutral": 0.3, "fearful": 0.1})


@pytest.fixture
def neutral_reading():
    """Degenerate reading: every non-neutral score is zero."""
    return ScoreVector.from_mapping({"neutral": 1.0})
