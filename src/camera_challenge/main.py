"""
CameraChallenge Capture Client
==============================

FastAPI entry point for the camera challenge game.

The process owns the local camera. User actions arrive as HTTP calls;
the capture cadence runs as an asyncio task inside the server loop.

Endpoints:
    GET  /              - Service information
    GET  /health        - Liveness probe
    GET  /game          - Current game status and gallery metadata
    POST /game/start    - Start (or restart) a challenge
    POST /game/stop     - Stop the running challenge early
    GET  /game/archive  - Download all counted photos as a ZIP
    GET  /game/gallery/{index} - One counted photo (1-based)
    GET  /game/preview  - Current camera frame (mirroring applied)
    GET  /metrics       - Pipeline and timer counters

Teardown:
    Lifespan exit and SIGTERM both release the timer and the camera,
    whatever phase the game is in.
"""

import logging
import os
import random
import signal
import threading
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response

from camera_challenge.config import settings
from camera_challenge.capture import (
    ARCHIVE_FILENAME,
    DeviceAccessError,
    EmptyArchiveRequest,
    FramePipeline,
    RelayClient,
    SecurityPolicyError,
    acquire_camera,
    build_archive,
)
from camera_challenge.models.status import GALLERY_URL
from camera_challenge.scheduler import CaptureScheduler, InvalidPhaseError
from camera_challenge.session import Session


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_scheduler: Optional[CaptureScheduler] = None
_relay_client: Optional[RelayClient] = None
_previous_sigterm_handler = None
_startup_time: float = 0.0


def get_scheduler() -> Optional[CaptureScheduler]:
    return _scheduler


# =============================================================================
# Component Factory
# =============================================================================

def create_scheduler() -> CaptureScheduler:
    """Build session, pipeline and scheduler from settings."""
    global _relay_client

    _relay_client = RelayClient(
        url=settings.relay.url,
        timeout=settings.relay.timeout_seconds,
    )
    pipeline = FramePipeline(
        relay=_relay_client,
        image_format=settings.camera.image_format,
        quality=settings.camera.jpeg_quality,
    )

    def open_camera():
        return acquire_camera(
            settings.camera.source,
            relay_url=settings.relay.url,
            mirror=settings.camera.mirror,
        )

    return CaptureScheduler(
        session=Session(),
        pipeline=pipeline,
        camera_factory=open_camera,
        quota=settings.game.quota,
        tick_interval=settings.game.tick_interval_seconds,
        background_policy=settings.game.background_policy,
        rng=random.Random(settings.game.seed),
    )


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Release camera and timer, then defer to the server's own handler."""
    logger.info("Received SIGTERM, releasing camera and timer...")
    if _scheduler is not None:
        _scheduler.session.teardown()

    if callable(_previous_sigterm_handler):
        _previous_sigterm_handler(signum, frame)
    elif _previous_sigterm_handler != signal.SIG_IGN:
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
        os.kill(os.getpid(), signal.SIGTERM)


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager; shutdown is the one teardown path."""
    global _scheduler, _relay_client, _previous_sigterm_handler, _startup_time

    # Signal handlers can only be installed from the main thread
    if threading.current_thread() is threading.main_thread():
        _previous_sigterm_handler = signal.signal(signal.SIGTERM, _handle_sigterm)

    _startup_time = time.time()
    logger.info(f"Starting {settings.app.name} {settings.app.version}")
    logger.info(f"Relay URL: {settings.relay.url}")

    if _scheduler is None:
        _scheduler = create_scheduler()

    yield

    logger.info("Shutting down gracefully...")

    await _scheduler.teardown()
    _scheduler = None

    if _relay_client is not None:
        _relay_client.close()
        _relay_client = None

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="CameraChallenge",
    description="Timed camera challenge with chat relay and photo archive",
    version=settings.app.version,
    lifespan=lifespan,
)


def _not_initialized() -> JSONResponse:
    return JSONResponse({"error": "Scheduler not initialized"}, status_code=503)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "CameraChallenge",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "quota": settings.game.quota,
        "tick_interval_seconds": settings.game.tick_interval_seconds,
        "background_policy": settings.game.background_policy.value,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe - always 200 while the process is running."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/game")
async def game_status() -> JSONResponse:
    """Current phase, prompt, counters and gallery metadata."""
    scheduler = get_scheduler()
    if scheduler is None:
        return _not_initialized()
    return JSONResponse(scheduler.snapshot().model_dump(mode="json"))


@app.post("/game/start")
async def start_game() -> JSONResponse:
    """
    Start a challenge.

    Returns 403 for an insecure relay origin, 503 when the camera cannot
    be acquired and 409 while another start is still acquiring the camera.
    """
    scheduler = get_scheduler()
    if scheduler is None:
        return _not_initialized()

    try:
        await scheduler.start()
    except SecurityPolicyError as e:
        return JSONResponse(
            {"error": e.user_message, "kind": "security_policy",
             "game": scheduler.snapshot().model_dump(mode="json")},
            status_code=403,
        )
    except DeviceAccessError as e:
        return JSONResponse(
            {"error": e.user_message, "kind": e.kind.value,
             "game": scheduler.snapshot().model_dump(mode="json")},
            status_code=503,
        )
    except InvalidPhaseError as e:
        return JSONResponse({"error": str(e)}, status_code=409)

    return JSONResponse(scheduler.snapshot().model_dump(mode="json"))


@app.post("/game/stop")
async def stop_game() -> JSONResponse:
    """Stop the running challenge and finalize the gallery."""
    scheduler = get_scheduler()
    if scheduler is None:
        return _not_initialized()

    try:
        scheduler.stop()
    except InvalidPhaseError as e:
        return JSONResponse({"error": str(e)}, status_code=409)

    return JSONResponse(scheduler.snapshot().model_dump(mode="json"))


@app.get("/game/archive")
async def download_archive() -> Response:
    """All counted photos as a single ZIP attachment."""
    scheduler = get_scheduler()
    if scheduler is None:
        return _not_initialized()

    try:
        archive = build_archive(list(scheduler.session.captured_frames))
    except EmptyArchiveRequest as e:
        return JSONResponse({"error": e.user_message}, status_code=404)

    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{ARCHIVE_FILENAME}"'},
    )


@app.get(GALLERY_URL)
async def gallery_image(index: int) -> Response:
    """One counted photo, in capture order starting at 1."""
    scheduler = get_scheduler()
    if scheduler is None:
        return _not_initialized()

    frames = scheduler.session.captured_frames
    if not 1 <= index <= len(frames):
        return JSONResponse(
            {"error": f"No photo {index} (gallery has {len(frames)})"},
            status_code=404,
        )

    frame = frames[index - 1]
    return Response(content=frame.data, media_type=frame.format.mime_type)


@app.get("/game/preview")
async def preview() -> Response:
    """Current camera frame, encoded exactly like a captured still."""
    scheduler = get_scheduler()
    if scheduler is None:
        return _not_initialized()

    image = await scheduler.pipeline.preview(scheduler.session)
    if image is None:
        return JSONResponse({"error": "Camera not ready"}, status_code=503)

    return Response(content=image, media_type=scheduler.pipeline.image_format.mime_type)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    scheduler = get_scheduler()
    if scheduler is None:
        return _not_initialized()

    session = scheduler.session
    pipeline = scheduler.pipeline

    timer_metrics = {}
    if session.timer is not None:
        timer_metrics = {
            "ticks": session.timer.ticks,
            "dropped_ticks": session.timer.dropped_ticks,
        }

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "phase": session.phase.value,
        "frame_count": session.frame_count,
        "pending_dispatches": pipeline.pending_dispatches,
        "recent_dispatch_failures": [
            {"label": r.label, "error": r.error, "finished_at": r.finished_at}
            for r in pipeline.recent_failures()
        ],
        **pipeline.metrics.to_dict(),
        **timer_metrics,
    })


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    import uvicorn

    uvicorn.run(
        "camera_challenge.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
