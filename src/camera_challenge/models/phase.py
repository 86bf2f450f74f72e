"""
Game Phase Models
=================

Discrete phases of the capture state machine and the policy that decides
what happens to the capture cadence once a game is over.

Transitions:
    IDLE → PRIMING:              start() requested, camera being acquired
    PRIMING → ACTIVE:            camera ready, challenge running
    PRIMING → IDLE:              camera acquisition failed
    ACTIVE → FINISHED_BACKGROUND: quota reached   (policy = continue)
    ACTIVE → STOPPED_BACKGROUND:  stop() called   (policy = continue)
    ACTIVE → IDLE:                quota or stop() (policy = halt)
"""

from enum import Enum


class Phase(str, Enum):
    """
    Phases of the capture scheduler.

    Attributes:
        IDLE: No cadence running, ready for start()
        PRIMING: Camera access being requested
        ACTIVE: Challenge running, frames count toward the game
        FINISHED_BACKGROUND: Quota reached, uncounted capture continues
        STOPPED_BACKGROUND: Stopped early, uncounted capture continues
    """

    IDLE = "IDLE"
    PRIMING = "PRIMING"
    ACTIVE = "ACTIVE"
    FINISHED_BACKGROUND = "FINISHED_BACKGROUND"
    STOPPED_BACKGROUND = "STOPPED_BACKGROUND"

    @property
    def is_background(self) -> bool:
        return self in (Phase.FINISHED_BACKGROUND, Phase.STOPPED_BACKGROUND)


class BackgroundPolicy(str, Enum):
    """
    What the cadence does after the quota is reached or stop() is called.

    Attributes:
        HALT: Cancel the timer, return to IDLE
        CONTINUE: Keep ticking, capture and relay uncounted frames
    """

    HALT = "halt"
    CONTINUE = "continue"


class GameOutcome(str, Enum):
    """How the last game ended."""

    FINISHED = "finished"
    STOPPED = "stopped"
