"""
Engagement Monitor Main Application
===================================

FastAPI entry point exposing the sampling pipeline to a presentation layer.

Components:
    ScoreSource  → SamplingLoop → EngagementPipeline → snapshots

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /snapshot  - Full pipeline snapshot of the latest tick
    GET  /session   - Session totals, overall dominant category, dwell time
    GET  /state     - Current engagement state
    GET  /history   - Rolling history window (+ chart series)
    GET  /metrics   - Loop and pipeline metrics
    POST /start     - Start (or re-enable) sampling
    POST /pause     - Pause sampling
    POST /resume    - Resume sampling
    POST /toggle    - Flip pause/resume
    POST /reset     - Clear session, smoothing, state and history
    WS   /ws/snapshot - Real-time snapshot stream
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from engagement_monitor.config import Settings, settings
from engagement_monitor.agent import EngagementPipeline, create_pipeline
from engagement_monitor.perception import MockScoreSource, ScoreSource
from engagement_monitor.stream import SamplingLoop


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_pipeline: Optional[EngagementPipeline] = None
_sampling_loop: Optional[SamplingLoop] = None
_startup_time: float = 0.0
_shutdown_flag: bool = False


# =============================================================================
# Getters
# =============================================================================

def get_pipeline() -> Optional[EngagementPipeline]:
    return _pipeline

def get_sampling_loop() -> Optional[SamplingLoop]:
    return _sampling_loop


# =============================================================================
# Score Source Factory
# =============================================================================

def create_score_source(config: Settings) -> ScoreSource:
    """
    Create score source based on config.

    Fails fast on an unknown backend.
    """
    backend = config.source.backend

    if backend == "mock":
        mock = config.source.mock
        logger.info("Using MockScoreSource")
        return MockScoreSource(
            seed=mock.seed,
            no_detection_rate=mock.no_detection_rate,
            failure_rate=mock.failure_rate,
            drift_period_ticks=mock.drift_period_ticks,
            latency_ms=mock.latency_ms,
        )

    raise ValueError(f"Unknown score source backend: {backend}")


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _pipeline, _sampling_loop, _startup_time, _shutdown_flag

    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    _pipeline = create_pipeline(settings)
    _sampling_loop = SamplingLoop(
        source=create_score_source(settings),
        pipeline=_pipeline,
        period_ms=settings.sampling.period_ms,
        source_timeout_ms=settings.sampling.source_timeout_ms,
    )

    if settings.sampling.autostart:
        _sampling_loop.start()
    else:
        _sampling_loop.pause()

    logger.info("All components started")

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _sampling_loop:
        await _sampling_loop.stop(release_source=True)

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="EngagementMonitor",
    description="Smoothed emotion-mix engagement monitoring",
    version=settings.app.version,
    lifespan=lifespan,
)


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Pipeline not initialized"}, status_code=503)


def _control_response(loop: SamplingLoop) -> JSONResponse:
    return JSONResponse({
        "active": loop.active,
        "running": loop.running,
        "status": loop.status,
    })


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "EngagementMonitor",
        "version": settings.app.version,
        "name": settings.app.name,
        "source_backend": settings.source.backend,
        "profiles": [p.name for p in settings.profiles],
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/snapshot")
async def snapshot() -> JSONResponse:
    """Full snapshot of the latest tick."""
    loop = get_sampling_loop()
    if loop is None:
        return _not_ready()
    return JSONResponse(loop.last_snapshot.model_dump(mode="json"))


@app.get("/session")
async def session() -> JSONResponse:
    """Session counters, overall dominant category and its dwell time."""
    pipeline = get_pipeline()
    if pipeline is None:
        return _not_ready()

    summary = pipeline.accumulator.summary()
    latest = pipeline.latest
    return JSONResponse({
        "latest": latest.model_dump(mode="json") if latest else None,
        "latest_percent": round(latest.score * 100) if latest else None,
        "overall_dominant": (
            summary.overall_dominant.value if summary.overall_dominant else "none"
        ),
        "overall_dwell": summary.overall_dwell,
        "totals": {
            category.value: totals.model_dump(mode="json")
            for category, totals in summary.totals.items()
        },
    })


@app.get("/state")
async def state() -> JSONResponse:
    """Current engagement state and smoothed proportions."""
    pipeline = get_pipeline()
    if pipeline is None:
        return _not_ready()

    return JSONResponse({
        "engagement_state": pipeline.engagement_state,
        "distance": (
            round(pipeline.classifier.score, 3)
            if pipeline.classifier.score is not None else None
        ),
        "smoothed": {c.value: round(v, 3) for c, v in pipeline.smoother.state.items()},
    })


@app.get("/history")
async def history() -> JSONResponse:
    """Rolling history window plus per-category chart series."""
    pipeline = get_pipeline()
    if pipeline is None:
        return _not_ready()

    points = pipeline.history_snapshot()
    series = pipeline.timeline()
    return JSONResponse({
        "window_ms": pipeline.history.window_ms,
        "points": [p.to_dict() for p in points],
        "series": {
            category.value: [[round(x, 4), round(y, 4)] for x, y in values]
            for category, values in series.items()
        },
    })


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    loop = get_sampling_loop()
    pipeline = get_pipeline()
    if loop is None or pipeline is None:
        return _not_ready()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "source_backend": settings.source.backend,
        "period_ms": loop.period_ms,
        "active": loop.active,
        "status": loop.status,
        "loop": loop.metrics.to_dict(),
        "pipeline": pipeline.get_metrics(),
    })


@app.post("/start")
async def start() -> JSONResponse:
    """Start sampling, or re-enable it if paused."""
    loop = get_sampling_loop()
    if loop is None:
        return _not_ready()
    loop.start()
    return _control_response(loop)


@app.post("/pause")
async def pause() -> JSONResponse:
    """Pause sampling after the current tick."""
    loop = get_sampling_loop()
    if loop is None:
        return _not_ready()
    loop.pause()
    return _control_response(loop)


@app.post("/resume")
async def resume() -> JSONResponse:
    """Resume sampling; the paused gap is not counted as dwell time."""
    loop = get_sampling_loop()
    if loop is None:
        return _not_ready()
    loop.resume()
    return _control_response(loop)


@app.post("/toggle")
async def toggle() -> JSONResponse:
    """Flip between paused and sampling."""
    loop = get_sampling_loop()
    if loop is None:
        return _not_ready()
    loop.toggle()
    return _control_response(loop)


@app.post("/reset")
async def reset() -> JSONResponse:
    """Clear session totals, smoothed state, engagement state and history."""
    loop = get_sampling_loop()
    if loop is None:
        return _not_ready()
    snapshot = loop.reset()
    return JSONResponse(snapshot.model_dump(mode="json"))


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/snapshot")
async def snapshot_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time snapshots."""
    await websocket.accept()
    logger.info("Client connected to /ws/snapshot")

    try:
        while not _shutdown_flag:
            loop = get_sampling_loop()
            if loop is not None:
                await websocket.send_json(loop.last_snapshot.model_dump(mode="json"))

            # Next send after 1s unless the client disconnects
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            if message["type"] == "websocket.disconnect":
                break

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/snapshot")


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "engagement_monitor.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
