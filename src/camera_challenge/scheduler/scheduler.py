"""
Capture Scheduler
=================

State machine that decides when frames are captured and what they count for.

Phases:
    IDLE → PRIMING → ACTIVE → (FINISHED_BACKGROUND | STOPPED_BACKGROUND | IDLE)

Key Rules:
    - start() resets the game, acquires the camera if needed and arms the timer
    - Each ACTIVE tick captures one counted frame with the current prompt,
      then either finishes the game (quota reached) or draws a new prompt
    - Background ticks capture uncounted frames that are relayed only
    - stop() ends the game early with whatever was captured
    - The background policy decides whether the cadence survives a finished
      or stopped game; it is configuration, never inferred

Failure Semantics:
    - Camera acquisition errors leave the session IDLE with no timer and
      are re-raised to the caller of start()
    - Dispatch errors are absorbed by the frame pipeline and never reach here
"""

import asyncio
import logging
import random
from typing import Callable, Optional

from camera_challenge.capture.camera import (
    Camera,
    DeviceAccessError,
    DeviceAccessKind,
    SecurityPolicyError,
)
from camera_challenge.capture.pipeline import FramePipeline
from camera_challenge.models.phase import BackgroundPolicy, GameOutcome, Phase
from camera_challenge.models.prompts import BACKGROUND_LABEL, random_prompt
from camera_challenge.models.status import GALLERY_URL, GalleryEntry, GameStatus
from camera_challenge.scheduler.timer import PeriodicTask
from camera_challenge.session import Session


logger = logging.getLogger(__name__)


CameraFactory = Callable[[], Camera]


class InvalidPhaseError(Exception):
    """Raised when an operation is not valid in the current phase."""

    def __init__(self, operation: str, phase: Phase) -> None:
        self.operation = operation
        self.phase = phase
        super().__init__(f"Cannot {operation} while {phase.value}")


class CaptureScheduler:
    """
    Owns the game phase and the capture cadence of a session.

    Attributes:
        session: Session state (camera, timer, gallery)
        pipeline: Frame pipeline invoked once per tick
        quota: Counted frames that complete a game
        tick_interval: Seconds between ticks
        background_policy: What happens to the cadence after a game ends

    Example:
        scheduler = CaptureScheduler(
            session=Session(),
            pipeline=FramePipeline(RelayClient(settings.relay.url)),
            camera_factory=lambda: acquire_camera(0, settings.relay.url),
            quota=5,
            tick_interval=5.0,
        )

        await scheduler.start()
        ...
        scheduler.stop()
        await scheduler.teardown()
    """

    def __init__(
        self,
        session: Session,
        pipeline: FramePipeline,
        camera_factory: CameraFactory,
        quota: int = 5,
        tick_interval: float = 5.0,
        background_policy: BackgroundPolicy = BackgroundPolicy.HALT,
        rng: Optional[random.Random] = None,
    ) -> None:
        if quota < 1:
            raise ValueError("quota must be >= 1")
        if tick_interval <= 0:
            raise ValueError("tick_interval must be > 0")

        self.session = session
        self.pipeline = pipeline
        self.quota = quota
        self.tick_interval = tick_interval
        self.background_policy = background_policy
        self._camera_factory = camera_factory
        self._rng = rng or random.Random()

        logger.info(
            f"CaptureScheduler initialized: quota={quota}, "
            f"interval={tick_interval}s, policy={background_policy.value}"
        )

    @property
    def phase(self) -> Phase:
        return self.session.phase

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Start (or restart) a game.

        Raises:
            InvalidPhaseError: If a start() is already acquiring the camera
            SecurityPolicyError: If the relay origin is insecure
            DeviceAccessError: If the camera cannot be acquired
        """
        session = self.session
        if session.phase is Phase.PRIMING:
            raise InvalidPhaseError("start", session.phase)

        session.cancel_timer()
        session.reset_game()
        session.phase = Phase.PRIMING
        session.status = "Requesting camera permission…"

        if not session.camera_acquired:
            try:
                camera = await asyncio.to_thread(self._camera_factory)
            except (SecurityPolicyError, DeviceAccessError) as e:
                self._abort_priming(e.user_message)
                logger.error(f"Camera acquisition failed: {e}")
                raise
            except Exception as e:
                error = DeviceAccessError(DeviceAccessKind.UNKNOWN, str(e))
                self._abort_priming(error.user_message)
                logger.exception("Unexpected camera acquisition failure")
                raise error from e

            if session.phase is not Phase.PRIMING:
                # Torn down while the device was opening
                camera.release()
                logger.warning("Session left PRIMING during acquisition, camera released")
                return

            session.camera = camera

        session.prompt = random_prompt(self._rng)
        session.phase = Phase.ACTIVE
        session.status = (
            f"🎮 Game running! A photo is taken every {self.tick_interval:g} seconds "
            f"(total {self.quota})."
        )

        timer = PeriodicTask(self.tick, self.tick_interval)
        session.timer = timer
        timer.start()

        logger.info(f"Game started, first challenge: {session.prompt}")

    def stop(self) -> None:
        """
        End the running game early.

        Raises:
            InvalidPhaseError: If no game is ACTIVE
        """
        if self.session.phase is not Phase.ACTIVE:
            raise InvalidPhaseError("stop", self.session.phase)

        self._end_game(GameOutcome.STOPPED)

    async def teardown(self) -> None:
        """Release camera and timer from any phase, then settle uploads."""
        timer = self.session.timer
        self.session.teardown()

        if timer is not None:
            await timer.wait_closed()

        await self.pipeline.drain()

    # -------------------------------------------------------------------------
    # Cadence
    # -------------------------------------------------------------------------

    async def tick(self) -> None:
        """One firing of the capture cadence."""
        session = self.session

        if session.phase is Phase.ACTIVE:
            timer = session.timer
            await self.pipeline.capture_and_send(
                session,
                counts_toward_game=True,
                label=str(session.prompt),
            )

            # The game ended or restarted while the frame was being read
            if session.phase is not Phase.ACTIVE or session.timer is not timer:
                return

            if session.frame_count >= self.quota:
                self._end_game(GameOutcome.FINISHED)
            else:
                session.prompt = random_prompt(self._rng)

        elif session.phase.is_background:
            await self.pipeline.capture_and_send(
                session,
                counts_toward_game=False,
                label=BACKGROUND_LABEL,
            )

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def snapshot(self) -> GameStatus:
        """Current session state as an API payload."""
        session = self.session
        return GameStatus(
            phase=session.phase,
            frame_count=session.frame_count,
            quota=self.quota,
            challenge=str(session.prompt) if session.prompt else None,
            status=session.status,
            outcome=session.outcome,
            gallery_ready=session.gallery_ready,
            gallery=[
                GalleryEntry(
                    index=i + 1,
                    format=frame.format,
                    label=frame.label,
                    size_bytes=len(frame.data),
                    captured_at=frame.captured_at,
                    url=GALLERY_URL.format(index=i + 1),
                )
                for i, frame in enumerate(session.captured_frames)
            ],
            timer_running=session.timer_running,
            camera_acquired=session.camera_acquired,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _abort_priming(self, message: str) -> None:
        self.session.phase = Phase.IDLE
        self.session.status = message

    def _end_game(self, outcome: GameOutcome) -> None:
        session = self.session
        session.outcome = outcome
        session.prompt = None
        session.gallery_ready = True

        if self.background_policy is BackgroundPolicy.HALT:
            session.cancel_timer()
            session.phase = Phase.IDLE
        elif outcome is GameOutcome.FINISHED:
            session.phase = Phase.FINISHED_BACKGROUND
        else:
            session.phase = Phase.STOPPED_BACKGROUND

        if outcome is GameOutcome.FINISHED:
            session.status = f"✅ Game finished! All {self.quota} photos captured."
        else:
            session.status = "⏹ Game stopped. Here are your photos!"

        logger.info(
            f"Game {outcome.value} with {session.frame_count}/{self.quota} frames, "
            f"phase={session.phase.value}"
        )
