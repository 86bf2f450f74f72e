"""
Data Models
===========

Value types shared by the capture pipeline, the scheduler and the API.

Models:
    Phase:
        - Phase: Scheduler phases (IDLE, PRIMING, ACTIVE, ...)
        - BackgroundPolicy: halt or continue capture after a game ends
        - GameOutcome: finished or stopped

    Frames:
        - ImageFormat: JPEG / PNG with MIME type and extension
        - EncodedFrame: Immutable captured still

    Prompts:
        - ChallengePrompt: One entry of the challenge catalog

    Status:
        - GalleryEntry, GameStatus: API payloads
"""

from camera_challenge.models.phase import BackgroundPolicy, GameOutcome, Phase
from camera_challenge.models.frame import EncodedFrame, ImageFormat
from camera_challenge.models.prompts import (
    BACKGROUND_LABEL,
    CHALLENGES,
    ChallengePrompt,
    random_prompt,
)
from camera_challenge.models.status import GALLERY_URL, GalleryEntry, GameStatus

__all__ = [
    # Phase
    "Phase",
    "BackgroundPolicy",
    "GameOutcome",
    # Frames
    "ImageFormat",
    "EncodedFrame",
    # Prompts
    "ChallengePrompt",
    "CHALLENGES",
    "BACKGROUND_LABEL",
    "random_prompt",
    # Status
    "GalleryEntry",
    "GameStatus",
    "GALLERY_URL",
]
