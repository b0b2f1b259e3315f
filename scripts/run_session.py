#!/usr/bin/env python3
"""
Session Simulation Script
=========================

Standalone script to run the engagement pipeline against the mock source.

This script:
    1. Builds the pipeline and sampling loop from configuration
    2. Samples for a configurable duration
    3. Logs the engagement state every few seconds
    4. Reports a final session summary

Usage:
    python scripts/run_session.py --duration 30
    python scripts/run_session.py --seed 7 --period-ms 100 --failure-rate 0.05
"""

import argparse
import asyncio
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from engagement_monitor.agent import EngagementPipeline
from engagement_monitor.config import settings
from engagement_monitor.models import CATEGORIES
from engagement_monitor.observability import format_duration
from engagement_monitor.perception import MockScoreSource
from engagement_monitor.stream import SamplingLoop


logger = logging.getLogger(__name__)


async def run_session(
    duration: float,
    period_ms: float,
    seed: int,
    failure_rate: float,
    report_interval: float,
) -> dict:
    """
    Run a simulated session.

    Args:
        duration: Session length in seconds
        period_ms: Sampling period
        seed: Mock source seed
        failure_rate: Probability of a simulated source failure
        report_interval: Seconds between progress reports

    Returns:
        Final loop metrics dict
    """
    logger.info("=" * 60)
    logger.info("Engagement Session Simulation")
    logger.info("=" * 60)
    logger.info(f"Duration: {duration} seconds")
    logger.info(f"Period: {period_ms} ms, seed={seed}, failure_rate={failure_rate}")
    logger.info("=" * 60)

    pipeline = EngagementPipeline(
        profiles=settings.profiles,
        alpha=settings.smoothing.alpha,
        window_ms=settings.history.window_ms,
    )
    loop = SamplingLoop(
        source=MockScoreSource(seed=seed, failure_rate=failure_rate),
        pipeline=pipeline,
        period_ms=period_ms,
        source_timeout_ms=settings.sampling.source_timeout_ms,
    )
    loop.start()

    start = time.monotonic()
    next_report = start + report_interval
    while time.monotonic() - start < duration:
        await asyncio.sleep(0.1)
        if time.monotonic() >= next_report:
            snapshot = loop.last_snapshot
            logger.info(
                f"[{time.monotonic() - start:5.1f}s] state={snapshot.engagement_state} "
                f"ticks={snapshot.tick} status={loop.status}"
            )
            next_report += report_interval

    await loop.stop(release_source=True)

    summary = pipeline.accumulator.summary()
    logger.info("=" * 60)
    logger.info("Session Summary")
    logger.info("=" * 60)
    for category in CATEGORIES:
        totals = summary.totals[category]
        logger.info(
            f"  {category.value:<10} count={totals.count:<5} "
            f"dwell={format_duration(totals.duration_ms)}"
        )
    overall = summary.overall_dominant.value if summary.overall_dominant else "none"
    logger.info(f"Overall dominant: {overall} ({summary.overall_dwell})")
    logger.info(f"Engagement state: {pipeline.engagement_state}")
    logger.info(f"Loop metrics: {loop.metrics.to_dict()}")

    return loop.metrics.to_dict()


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate an engagement session")
    parser.add_argument("--duration", type=float, default=20.0, help="Seconds to run")
    parser.add_argument(
        "--period-ms", type=float, default=settings.sampling.period_ms,
        help="Sampling period (milliseconds)",
    )
    parser.add_argument("--seed", type=int, default=7, help="Mock source seed")
    parser.add_argument(
        "--failure-rate", type=float, default=0.0,
        help="Probability of a simulated source failure per tick",
    )
    parser.add_argument(
        "--report-interval", type=float, default=5.0,
        help="Seconds between progress reports",
    )
    args = parser.parse_args()

    try:
        asyncio.run(run_session(
            duration=args.duration,
            period_ms=args.period_ms,
            seed=args.seed,
            failure_rate=args.failure_rate,
            report_interval=args.report_interval,
        ))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
