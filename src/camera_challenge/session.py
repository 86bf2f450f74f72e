"""
Session State
=============

Process-wide state for one capture client lifetime.

Ownership:
    - camera: acquired once, reused across games, released on teardown
    - timer: at most one running cadence at a time

Invariants:
    - len(captured_frames) == frame_count
    - timer is not None iff a cadence is running
    - a running timer always has a held camera; teardown() releases both
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from camera_challenge.models.frame import EncodedFrame
from camera_challenge.models.phase import GameOutcome, Phase
from camera_challenge.models.prompts import ChallengePrompt

if TYPE_CHECKING:
    from camera_challenge.capture.camera import Camera
    from camera_challenge.scheduler.timer import PeriodicTask


logger = logging.getLogger(__name__)


class Session:
    """
    Mutable session state shared by the scheduler and the frame pipeline.

    The frame pipeline only ever appends to ``captured_frames`` and bumps
    ``frame_count``; every other field belongs to the scheduler.
    """

    def __init__(self) -> None:
        self.phase: Phase = Phase.IDLE
        self.frame_count: int = 0
        self.captured_frames: List[EncodedFrame] = []
        self.camera: Optional["Camera"] = None
        self.timer: Optional["PeriodicTask"] = None

        self.prompt: Optional[ChallengePrompt] = None
        self.outcome: Optional[GameOutcome] = None
        self.status: str = "Press start to begin!"
        self.gallery_ready: bool = False

    @property
    def camera_acquired(self) -> bool:
        return self.camera is not None and not self.camera.released

    @property
    def timer_running(self) -> bool:
        return self.timer is not None

    def record_frame(self, frame: EncodedFrame) -> None:
        """Append a counted frame to the gallery."""
        self.captured_frames.append(frame)
        self.frame_count += 1

    def reset_game(self) -> None:
        """Discard the previous game's counters and gallery."""
        self.frame_count = 0
        self.captured_frames = []
        self.prompt = None
        self.outcome = None
        self.gallery_ready = False

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def teardown(self) -> None:
        """
        Release every owned resource regardless of phase.

        Cancels the cadence before releasing the camera so no tick can
        run against a released device. Idempotent.
        """
        self.cancel_timer()

        if self.camera is not None:
            self.camera.release()
            self.camera = None

        self.phase = Phase.IDLE
        self.prompt = None
        logger.info("Session torn down: timer cancelled, camera released")
