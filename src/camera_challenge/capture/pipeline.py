"""
Frame Pipeline
==============

Capture, local append and best-effort relay of one frame per tick.

This module provides the FramePipeline class which:
    - Reads the latest camera frame in a worker thread (no-op until ready)
    - Encodes it with the session camera's mirror preference
    - Appends counted frames to the session gallery
    - Dispatches every frame to the relay as a detached task

Design Rules:
    - The gallery append happens before dispatch and is never undone
    - Dispatch failures are caught inside the task, logged and recorded
      in a bounded diagnostics channel; they never reach the scheduler
    - Dispatches are unordered and carry no sequence number
    - A frame read across a stop, restart or teardown is discarded
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Protocol, Set

from camera_challenge.capture.encoder import (
    DEFAULT_JPEG_QUALITY,
    FrameEncodeError,
    encode_frame,
    encode_image,
)
from camera_challenge.capture.relay_client import DispatchError
from camera_challenge.models.frame import EncodedFrame, ImageFormat
from camera_challenge.session import Session


logger = logging.getLogger(__name__)


class FrameRelay(Protocol):
    """Anything that can deliver one encoded frame (see RelayClient)."""

    async def send(self, frame: EncodedFrame) -> None:
        ...


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one relay dispatch, kept for diagnostics only."""

    label: str
    ok: bool
    error: Optional[str]
    finished_at: float


class PipelineMetrics:
    """Metrics for FramePipeline observability."""

    __slots__ = (
        "frames_captured",
        "frames_counted",
        "frames_skipped",
        "dispatch_ok",
        "dispatch_failed",
    )

    def __init__(self) -> None:
        self.frames_captured: int = 0
        self.frames_counted: int = 0
        self.frames_skipped: int = 0
        self.dispatch_ok: int = 0
        self.dispatch_failed: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_captured": self.frames_captured,
            "frames_counted": self.frames_counted,
            "frames_skipped": self.frames_skipped,
            "dispatch_ok": self.dispatch_ok,
            "dispatch_failed": self.dispatch_failed,
        }


class FramePipeline:
    """
    Turns camera frames into gallery entries and relay uploads.

    Attributes:
        relay: Relay client used for dispatch
        image_format: Still image format for every capture
        quality: JPEG quality
        metrics: Operational counters
        diagnostics: Most recent dispatch results (bounded)

    Example:
        pipeline = FramePipeline(RelayClient(settings.relay.url))

        captured = await pipeline.capture_and_send(
            session, counts_toward_game=True, label="😎 Cool pose!"
        )

        # Before shutdown, let in-flight uploads settle
        await pipeline.drain()
    """

    def __init__(
        self,
        relay: FrameRelay,
        image_format: ImageFormat = ImageFormat.JPEG,
        quality: int = DEFAULT_JPEG_QUALITY,
        max_diagnostics: int = 50,
    ) -> None:
        self.relay = relay
        self.image_format = image_format
        self.quality = quality

        self.metrics = PipelineMetrics()
        self.diagnostics: Deque[DispatchResult] = deque(maxlen=max_diagnostics)
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_dispatches(self) -> int:
        return len(self._pending)

    async def capture_and_send(
        self,
        session: Session,
        counts_toward_game: bool,
        label: str,
    ) -> bool:
        """
        Capture one still and relay it.

        Args:
            session: Session owning the camera and the gallery
            counts_toward_game: Append to the gallery and bump frame_count
            label: Caption sent with the frame

        Returns:
            True if a frame was produced, False if the camera was not ready
        """
        camera = session.camera
        phase, timer = session.phase, session.timer
        image = await asyncio.to_thread(camera.read) if camera is not None else None

        if image is None or 0 in camera.dimensions:
            self.metrics.frames_skipped += 1
            logger.warning("Video not ready yet, skipping capture")
            return False

        # Stop, restart or teardown while the device was being read
        if session.phase is not phase or session.timer is not timer or camera.released:
            self.metrics.frames_skipped += 1
            logger.info("Session changed during capture, discarding frame")
            return False

        try:
            frame = encode_frame(
                image,
                label=label,
                fmt=self.image_format,
                quality=self.quality,
                mirror=camera.mirror,
            )
        except FrameEncodeError as e:
            self.metrics.frames_skipped += 1
            logger.error(f"Frame encode failed: {e}")
            return False

        self.metrics.frames_captured += 1

        if counts_toward_game:
            session.record_frame(frame)
            self.metrics.frames_counted += 1

        task = asyncio.create_task(
            self._dispatch(frame),
            name=f"dispatch-{self.metrics.frames_captured}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        return True

    async def _dispatch(self, frame: EncodedFrame) -> None:
        """Send one frame; failures end here."""
        try:
            await self.relay.send(frame)
        except (DispatchError, OSError) as e:
            self._record(frame, error=str(e))
            logger.error(f"Upload failed for {frame!r}: {e}")
            return
        except Exception as e:
            self._record(frame, error=f"{type(e).__name__}: {e}")
            logger.exception(f"Unexpected upload error for {frame!r}")
            return

        self._record(frame, error=None)
        logger.info(f"Image sent successfully: {frame.label}")

    def _record(self, frame: EncodedFrame, error: Optional[str]) -> None:
        if error is None:
            self.metrics.dispatch_ok += 1
        else:
            self.metrics.dispatch_failed += 1
        self.diagnostics.append(
            DispatchResult(
                label=frame.label,
                ok=error is None,
                error=error,
                finished_at=time.time(),
            )
        )

    async def drain(self) -> None:
        """Wait for every in-flight dispatch to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def preview(self, session: Session) -> Optional[bytes]:
        """
        Encode the current frame for display without touching the gallery.

        Uses the same encoder and mirror preference as captured stills.
        """
        camera = session.camera
        if camera is None:
            return None

        image = await asyncio.to_thread(camera.read)
        if image is None:
            return None

        return encode_image(
            image,
            fmt=self.image_format,
            quality=self.quality,
            mirror=camera.mirror,
        )

    def recent_failures(self) -> List[DispatchResult]:
        return [result for result in self.diagnostics if not result.ok]
