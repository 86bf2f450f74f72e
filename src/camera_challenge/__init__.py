"""
CameraChallenge
===============

Timed camera challenge game with chat relay and photo archive export.

A capture client owns a local camera, runs a short challenge sequence that
captures one still frame per tick, relays each frame to a chat channel and
lets the user download every counted frame as a single ZIP archive.

Components:
    - models: Phases, encoded frames and the challenge prompt catalog
    - capture: Camera acquisition, frame encoding, relay dispatch, archives
    - scheduler: Periodic task, session ownership, capture state machine
    - relay: Upload endpoint that forwards frames to a chat channel

Example:
    from camera_challenge.config import settings

    # Capture client is started via FastAPI application
    # See main.py for entry point, relay/server.py for the relay
"""

__version__ = "0.1.0"
__author__ = "CameraChallenge Project"

__all__ = [
    "__version__",
]
